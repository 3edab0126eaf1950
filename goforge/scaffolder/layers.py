"""Layer-by-layer composition of a generated Go project.

Each ``LayerComposer`` method renders one layer of the project into the
staging root.  The orchestrator calls them in a fixed order; every method
attaches a ``layer`` context entry to any error it raises so a failed
generation can be traced back to the layer that broke.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from goforge.errors import AppError, FileSystemError, InternalError
from goforge.utils import run_in_thread

from .config_merge import ConfigMerger
from .deps_gen import DepsGenerator
from .manifest import template_key
from .models import (
    DEFAULT_GO_VERSION,
    DEFAULT_PORT,
    BuildContext,
    ContainerContext,
    LibraryContext,
    Manifest,
    RenderContext,
)
from .templates import TemplateRenderer, output_name

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Project layout
# ---------------------------------------------------------------------------

DIR_CMD = "cmd"
DIR_DOCS = "docs"
DIR_APP = "internal/app"
DIR_INFRA = "internal/infrastructure"
DIR_DEPS = "internal/deps"
DIR_MIDDLEWARE = "internal/middleware"
DIR_CONFIG = "config"
DIR_DOMAIN = "internal/domain"
DIR_ERRORS = "internal/errors"
DIR_USECASE = "internal/usecase"
DIR_REPOSITORY = "internal/infrastructure/repository"
DIR_REPOSITORY_MODELS = "internal/infrastructure/repository/models"
DIR_HANDLER = "internal/adapter/handler"
DIR_JOBS = "internal/jobs"
DIR_CONSUMER = "internal/adapter/consumer"

BASE_DIRS: tuple[str, ...] = (
    DIR_CMD,
    DIR_DOCS,
    DIR_APP,
    DIR_INFRA,
    DIR_DEPS,
    DIR_MIDDLEWARE,
    DIR_CONFIG,
)

EXAMPLE_DIRS: tuple[str, ...] = (
    DIR_DOMAIN,
    DIR_ERRORS,
    DIR_USECASE,
    DIR_REPOSITORY,
    DIR_REPOSITORY_MODELS,
    DIR_HANDLER,
    DIR_JOBS,
    DIR_CONSUMER,
)

MIDDLEWARE: tuple[str, ...] = ("logging", "tracing", "ratelimit")

# Template id -> output path, relative to the project root.
EXAMPLE_FILES: dict[str, str] = {
    "domain/entity.go.j2": f"{DIR_DOMAIN}/entity.go",
    "errors/errors.go.j2": f"{DIR_ERRORS}/errors.go",
    "infrastructure/models/user_model.go.j2": f"{DIR_REPOSITORY_MODELS}/user_model.go",
    "infrastructure/repository/user_repository.go.j2": f"{DIR_REPOSITORY}/user_repository.go",
    "infrastructure/repository/cache_repository.go.j2": f"{DIR_REPOSITORY}/cache_repository.go",
    "usecase/user_usecase.go.j2": f"{DIR_USECASE}/user_usecase.go",
    "handler/user_handler.go.j2": f"{DIR_HANDLER}/user_handler.go",
}

JOB_TEMPLATE = "jobs/example_job.go.j2"
JOB_LIBRARY = "cron"

# Broker library -> consumer template.
CONSUMER_TEMPLATES: dict[str, str] = {
    "rabbitmq": "consumer/rabbitmq_consumer.go.j2",
    "kafka": "consumer/kafka_consumer.go.j2",
    "activemq": "consumer/activemq_consumer.go.j2",
}

# Output file -> (template with examples, template without).
APP_FILES: dict[str, tuple[str, str]] = {
    f"{DIR_APP}/server.go": ("app/server.go.j2", "app/server_simple.go.j2"),
    f"{DIR_APP}/routes.go": ("app/routes.go.j2", "app/routes_sample.go.j2"),
    f"{DIR_APP}/bootstrap.go": ("app/bootstrap.go.j2", "app/bootstrap_sample.go.j2"),
    f"{DIR_CMD}/main.go": ("cmd/main.go.j2", "cmd/main.go.j2"),
}

DOCS_TEMPLATE = "docs/swagger.go.j2"
GO_MOD_TEMPLATE = "go_mod.j2"
DOCKERFILE_TEMPLATE = "Dockerfile.j2"

# Static project files rendered with the base context.
PROJECT_FILES: dict[str, str] = {
    "gitignore.j2": ".gitignore",
    "env_example.j2": ".env.example",
    "README.md.j2": "README.md",
}

CONFIG_FILE = f"{DIR_CONFIG}/config.json"


@contextmanager
def layer_errors(layer: str) -> Iterator[None]:
    """Tag any error escaping the block with the failing *layer*."""
    try:
        yield
    except AppError as exc:
        exc.context.setdefault("layer", layer)
        raise
    except OSError as exc:
        raise FileSystemError(
            f"Failed to generate {layer} layer", cause=exc, layer=layer
        ) from exc
    except Exception as exc:
        raise InternalError(
            f"Unexpected error in {layer} layer", cause=exc, layer=layer
        ) from exc


class LayerComposer:
    """Renders the layers of one project into a staging root.

    Args:
        manifest: The validated catalog.
        renderer: Renderer rooted at the manifest's ``templates/`` directory.
        deps_generator: Generator for the ``internal/deps`` package.
        base_dir: The manifest's directory; config fragments resolve against it.
    """

    def __init__(
        self,
        manifest: Manifest,
        renderer: TemplateRenderer,
        deps_generator: DepsGenerator,
        base_dir: Path,
    ) -> None:
        self.manifest = manifest
        self.renderer = renderer
        self.deps_generator = deps_generator
        self.base_dir = Path(base_dir)

    # -- 1. Directory skeleton ---------------------------------------------

    async def create_base_structure(self, root: Path, context: RenderContext) -> list[Path]:
        dirs = list(BASE_DIRS)
        if context.include_example:
            dirs.extend(EXAMPLE_DIRS)
        paths = [root / d for d in dirs]
        with layer_errors("structure"):
            await run_in_thread(_make_dirs, paths)
        return paths

    # -- 2. Framework ------------------------------------------------------

    async def render_framework(self, root: Path, context: RenderContext) -> list[Path]:
        framework = self.manifest.frameworks[context.framework]
        written: list[Path] = []
        with layer_errors("framework"):
            for template in framework.templates:
                template_id = template_key(template)
                out = root / DIR_APP / output_name(template_id)
                written.append(await self.renderer.render_to_file(template_id, out, context))
        return written

    # -- 3. Middleware -----------------------------------------------------

    async def render_middleware(self, root: Path, context: RenderContext) -> list[Path]:
        """Render each middleware, preferring the framework-specific template."""
        written: list[Path] = []
        with layer_errors("middleware"):
            for name in MIDDLEWARE:
                template_id = self.renderer.select(
                    f"middleware/{context.framework}/{name}.go.j2",
                    f"middleware/{name}.go.j2",
                )
                out = root / DIR_MIDDLEWARE / f"{name}.go"
                written.append(await self.renderer.render_to_file(template_id, out, context))
        return written

    # -- 4. Libraries ------------------------------------------------------

    async def render_library(self, root: Path, context: RenderContext, lib: str) -> list[Path]:
        definition = self.manifest.libs[lib]
        lib_context = context.extend(LibraryContext, lib=lib)
        written: list[Path] = []
        with layer_errors(f"library:{lib}"):
            for template in definition.templates:
                template_id = template_key(template)
                out = root / DIR_INFRA / lib / output_name(template_id)
                written.append(
                    await self.renderer.render_to_file(template_id, out, lib_context)
                )
        return written

    # -- 5. Config document ------------------------------------------------

    async def write_config(self, root: Path, context: RenderContext) -> Path:
        """Merge the framework fragment, then each library's, into config.json."""
        framework = self.manifest.frameworks[context.framework]
        with layer_errors("config"):
            merger = ConfigMerger(self.base_dir)
            merger.merge_all(
                [framework.config_section]
                + [self.manifest.libs[lib].config_section for lib in context.includes.selected]
            )
            return await merger.write(root / CONFIG_FILE)

    # -- 6-8. Example layers -----------------------------------------------

    async def render_example_layers(self, root: Path, context: RenderContext) -> list[Path]:
        if not context.include_example:
            return []
        written: list[Path] = []
        with layer_errors("example"):
            for template_id, rel_path in EXAMPLE_FILES.items():
                written.append(
                    await self.renderer.render_to_file(template_id, root / rel_path, context)
                )
        return written

    async def render_jobs(self, root: Path, context: RenderContext) -> list[Path]:
        if not (context.include_example and context.includes.get(JOB_LIBRARY, False)):
            return []
        with layer_errors("jobs"):
            out = root / DIR_JOBS / "example_job.go"
            return [await self.renderer.render_to_file(JOB_TEMPLATE, out, context)]

    async def render_consumers(self, root: Path, context: RenderContext) -> list[Path]:
        """One consumer per selected message broker."""
        if not context.include_example:
            return []
        written: list[Path] = []
        with layer_errors("consumers"):
            for broker, template_id in CONSUMER_TEMPLATES.items():
                if not context.includes.get(broker, False):
                    continue
                out = root / DIR_CONSUMER / f"user_{broker}_consumer.go"
                written.append(await self.renderer.render_to_file(template_id, out, context))
        return written

    # -- 9. Application wiring ---------------------------------------------

    async def render_app(self, root: Path, context: RenderContext) -> list[Path]:
        written: list[Path] = []
        with layer_errors("app"):
            for rel_path, (full, minimal) in APP_FILES.items():
                template_id = full if context.include_example else minimal
                written.append(
                    await self.renderer.render_to_file(template_id, root / rel_path, context)
                )
        return written

    # -- 10. Dependency container ------------------------------------------

    async def render_deps(
        self, root: Path, context: RenderContext, modules: list[str]
    ) -> list[Path]:
        with layer_errors("deps"):
            return await self.deps_generator.generate(root / DIR_DEPS, context, modules)

    # -- 11. Project files -------------------------------------------------

    async def render_project_files(
        self, root: Path, context: RenderContext, modules: list[str]
    ) -> list[Path]:
        written: list[Path] = []
        with layer_errors("project"):
            written.append(
                await self.renderer.render_to_file(
                    DOCS_TEMPLATE, root / DIR_DOCS / "docs.go", context
                )
            )

            build = context.extend(
                BuildContext, modules=tuple(modules), go_version=DEFAULT_GO_VERSION
            )
            written.append(
                await self.renderer.render_to_file(GO_MOD_TEMPLATE, root / "go.mod", build)
            )

            container = context.extend(
                ContainerContext,
                binary_name=context.project_name,
                port=DEFAULT_PORT,
                go_version=DEFAULT_GO_VERSION,
            )
            written.append(
                await self.renderer.render_to_file(
                    DOCKERFILE_TEMPLATE, root / "Dockerfile", container
                )
            )

            for template_id, rel_path in PROJECT_FILES.items():
                written.append(
                    await self.renderer.render_to_file(template_id, root / rel_path, context)
                )
        return written


def _make_dirs(paths: list[Path]) -> None:
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)
