"""Dependency-injection package generation.

Renders the generated project's ``internal/deps`` package:

* ``deps.go``: the container struct with one field, init block and close
  block per selected library,
* per-library helper files declared in the metadata,
* ``config.go``: the typed config accessor matching ``config/config.json``.

The per-library snippets live next to the templates in
``deps/deps_meta.json`` and ``deps/config_meta.json``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from goforge.errors import ConfigError, FileSystemError
from goforge.utils import load_json

from .models import (
    ConfigAccessorContext,
    ConfigMetadata,
    DepMetadata,
    DepsContext,
    DepsHelperContext,
    RenderContext,
)
from .templates import TemplateRenderer, output_name

logger = logging.getLogger(__name__)

DEPS_TEMPLATE = "deps/deps.go.j2"
CONFIG_TEMPLATE = "deps/config.go.j2"
DEPS_META_FILE = "deps/deps_meta.json"
CONFIG_META_FILE = "deps/config_meta.json"
HELPER_DIR = "deps"

_DEPS_META_ADAPTER = TypeAdapter(dict[str, DepMetadata])
_CONFIG_META_ADAPTER = TypeAdapter(dict[str, ConfigMetadata])


class DepsGenerator:
    """Generates the ``internal/deps`` package of a project."""

    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    # -- Metadata ----------------------------------------------------------

    def load_deps_metadata(self) -> dict[str, DepMetadata]:
        return self._load_metadata(DEPS_META_FILE, _DEPS_META_ADAPTER)

    def load_config_metadata(self) -> dict[str, ConfigMetadata]:
        return self._load_metadata(CONFIG_META_FILE, _CONFIG_META_ADAPTER)

    def _load_metadata(self, name: str, adapter: TypeAdapter) -> dict:
        path = self.renderer.template_dir / name
        try:
            raw = load_json(path)
        except ValueError as exc:
            raise ConfigError("Failed to parse metadata file", cause=exc, path=name) from exc
        except OSError as exc:
            raise FileSystemError("Failed to read metadata file", cause=exc, path=name) from exc
        try:
            return adapter.validate_python(raw)
        except ValidationError as exc:
            raise ConfigError("Invalid metadata file", cause=exc, path=name) from exc

    # -- Rendering ---------------------------------------------------------

    async def generate(
        self,
        deps_dir: Path,
        context: RenderContext,
        modules: list[str],
    ) -> list[Path]:
        """Render ``deps.go``, the helper files and ``config.go`` into *deps_dir*.

        Only selected libraries contribute; they are visited in request order.
        Import paths are rendered through Jinja (so ``{{ module_name }}``
        expands) and each import appears once across all libraries.

        Returns:
            Paths of the written files.
        """
        selected = context.includes.selected
        written: list[Path] = []

        deps_meta = self.load_deps_metadata()
        seen: set[str] = set()
        deps: dict[str, DepMetadata] = {}
        for key in selected:
            meta = deps_meta.get(key)
            if meta is None:
                continue
            imports = []
            for imp in self._expand_imports(meta.imports, context):
                if imp not in seen:
                    seen.add(imp)
                    imports.append(imp)
            deps[key] = meta.model_copy(update={"imports": tuple(imports)})

        deps_context = context.extend(DepsContext, modules=tuple(modules), deps=deps)
        written.append(
            await self.renderer.render_to_file(DEPS_TEMPLATE, deps_dir / "deps.go", deps_context)
        )

        for key, meta in deps.items():
            helper_context = context.extend(DepsHelperContext, key=key)
            for helper in meta.helper_files:
                template_id = f"{HELPER_DIR}/{Path(helper).name}"
                out = deps_dir / output_name(template_id)
                written.append(
                    await self.renderer.render_to_file(template_id, out, helper_context)
                )

        config_meta = self.load_config_metadata()
        fields: dict[str, ConfigMetadata] = {}
        config_imports: list[str] = []
        for key in selected:
            meta = config_meta.get(key)
            if meta is None:
                continue
            expanded = self._expand_imports(meta.imports, context)
            fields[key] = meta.model_copy(update={"imports": tuple(expanded)})
            config_imports.extend(imp for imp in expanded if imp not in config_imports)

        config_context = context.extend(
            ConfigAccessorContext, config_fields=fields, imports=tuple(config_imports)
        )
        written.append(
            await self.renderer.render_to_file(
                CONFIG_TEMPLATE, deps_dir / "config.go", config_context
            )
        )

        logger.debug(
            "Rendered deps package: %d libraries, %d files", len(deps), len(written)
        )
        return written

    def _expand_imports(self, imports: tuple[str, ...], context: RenderContext) -> list[str]:
        return [self.renderer.render_string(imp, context) for imp in imports]
