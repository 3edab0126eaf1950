"""goforge scaffolder -- composes Go projects from a manifest of frameworks and libraries.

The engine reads a validated manifest, renders the selected framework and
libraries layer by layer into a private staging directory, merges their
config fragments, and returns the result as a deterministic zip archive.

Quick usage::

    from goforge.scaffolder import GenerateRequest, ManifestStore, ProjectGenerator

    store = ManifestStore.load("manifest.json")
    generator = ProjectGenerator(store)
    archive = await generator.generate(
        GenerateRequest(
            project_name="demo-api",
            module_name="github.com/acme/demo-api",
            framework="gin",
            libs=["redis"],
        )
    )
"""

from goforge.scaffolder.archive import pack_directory, pack_directory_async
from goforge.scaffolder.config_merge import ConfigMerger, merge_fragments
from goforge.scaffolder.dependencies import extract_module_path, resolve_dependencies
from goforge.scaffolder.deps_gen import DepsGenerator
from goforge.scaffolder.generator import ProjectGenerator
from goforge.scaffolder.layers import LayerComposer
from goforge.scaffolder.manifest import ManifestStore, load_manifest
from goforge.scaffolder.models import GenerateRequest, Includes, Manifest
from goforge.scaffolder.staging import staging_area
from goforge.scaffolder.templates import TemplateRenderer

__all__ = [
    "ConfigMerger",
    "DepsGenerator",
    "GenerateRequest",
    "Includes",
    "LayerComposer",
    "Manifest",
    "ManifestStore",
    "ProjectGenerator",
    "TemplateRenderer",
    "extract_module_path",
    "load_manifest",
    "merge_fragments",
    "pack_directory",
    "pack_directory_async",
    "resolve_dependencies",
    "staging_area",
]
