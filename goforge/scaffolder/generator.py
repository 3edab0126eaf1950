"""Main scaffolding orchestrator.

Takes a ``GenerateRequest`` and produces the zip archive of a complete Go
project.  Every call works in its own staging directory, which is removed
again no matter how the call ends.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from goforge.errors import AppError, FileSystemError, InvalidRequestError, NotFoundError
from goforge.utils import run_in_thread

from .archive import pack_directory_async
from .deps_gen import DepsGenerator
from .dependencies import resolve_dependencies
from .layers import LayerComposer
from .manifest import ManifestStore
from .models import GenerateRequest, Includes, RenderContext
from .staging import staging_area
from .templates import TemplateRenderer

logger = logging.getLogger(__name__)

DEFAULT_STAGING_PREFIX = "gen-"


class ProjectGenerator:
    """Generation orchestrator.

    The manifest store and renderer are shared read-only between calls, so
    one generator can serve any number of concurrent requests.

    Args:
        store: The loaded manifest.
        renderer: Optional renderer; defaults to one rooted at the
            manifest's ``templates/`` directory.
        staging_prefix: Prefix for staging directory names.
    """

    def __init__(
        self,
        store: ManifestStore,
        renderer: TemplateRenderer | None = None,
        staging_prefix: str = DEFAULT_STAGING_PREFIX,
    ) -> None:
        self.store = store
        self.renderer = renderer or TemplateRenderer(store.template_dir)
        self.staging_prefix = staging_prefix
        self.deps_gen = DepsGenerator(self.renderer)
        self.composer = LayerComposer(
            store.manifest, self.renderer, self.deps_gen, store.base_dir
        )

    # -- Public API --------------------------------------------------------

    def validate(self, request: GenerateRequest) -> Includes:
        """Check *request* against the catalog and build its ``Includes``.

        Raises:
            NotFoundError: Unknown framework or library.
            InvalidRequestError: Two libraries from the same radio group.
        """
        manifest = self.store.manifest
        if request.framework not in manifest.frameworks:
            raise NotFoundError.resource("framework", request.framework)
        for lib in request.libs:
            if lib not in manifest.libs:
                raise NotFoundError.resource("library", lib)

        for category, members in manifest.radio_groups().items():
            chosen = [lib for lib in request.libs if lib in members]
            if len(chosen) > 1:
                raise InvalidRequestError(
                    f"Only one {category.value} library can be selected "
                    f"(got {', '.join(chosen)})",
                    category=category.value,
                    libs=chosen,
                )

        return Includes.from_request(manifest, request)

    async def generate(self, request: GenerateRequest) -> bytes:
        """Generate the project described by *request* and return the zip bytes.

        Raises:
            NotFoundError: Unknown framework or library (before any
                filesystem effect).
            InvalidRequestError: Radio-group violation.
            TemplateError, ConfigError, FileSystemError, InternalError:
                A layer failed; ``context["layer"]`` names it.
        """
        includes = self.validate(request)
        context = RenderContext.from_request(request, includes)
        modules = resolve_dependencies(request, self.store.manifest)

        logger.info(
            "Generating project %s (framework=%s, libs=%s, example=%s)",
            request.project_name,
            request.framework,
            ",".join(request.libs) or "-",
            request.include_example,
        )
        start = time.monotonic()
        try:
            async with staging_area(f"{self.staging_prefix}{request.project_name}-") as root:
                await self._compose(root, context, modules)
                data = await pack_directory_async(root)
        except AppError as exc:
            logger.error(
                "Generation of %s failed: %s",
                request.project_name,
                exc,
                extra={"app_error": exc.log_fields()},
            )
            raise

        logger.info(
            "Generated project %s: %d bytes in %.3fs",
            request.project_name,
            len(data),
            time.monotonic() - start,
        )
        return data

    async def generate_to_file(self, request: GenerateRequest, destination: str | Path) -> Path:
        """Generate and write the archive to *destination*."""
        data = await self.generate(request)
        out = Path(destination)
        try:
            await run_in_thread(_write_bytes, out, data)
        except OSError as exc:
            raise FileSystemError(
                "Failed to write archive", cause=exc, path=str(out)
            ) from exc
        return out

    # -- Internal ----------------------------------------------------------

    async def _compose(self, root: Path, context: RenderContext, modules: list[str]) -> None:
        composer = self.composer

        # 1. Skeleton
        await composer.create_base_structure(root, context)

        # 2-4. Framework, middleware, libraries
        await composer.render_framework(root, context)
        await composer.render_middleware(root, context)
        for lib in context.includes.selected:
            await composer.render_library(root, context, lib)

        # 5. Merged config document
        await composer.write_config(root, context)

        # 6-8. Example layers (no-ops without include_example)
        await composer.render_example_layers(root, context)
        await composer.render_jobs(root, context)
        await composer.render_consumers(root, context)

        # 9-11. Application wiring, deps package, project files
        await composer.render_app(root, context)
        await composer.render_deps(root, context, modules)
        await composer.render_project_files(root, context, modules)


def _write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
