"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads Jinja2 templates from a
template root (by default ``goforge/scaffolder/templates/``) and renders them
with a typed render context.  Supports single-file rendering, string
rendering for inline template fragments, and fallback selection between
alternative templates.

Rendering is strict: referencing a context field that does not exist is a
``TemplateError``, never an empty string.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jinja2
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from pydantic import BaseModel

from goforge.errors import FileSystemError, TemplateError
from goforge.utils import run_in_thread

# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

ContextLike = BaseModel | Mapping[str, Any]


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    Template ids are paths relative to the template root
    (e.g. ``"app/server.go.j2"``).  The compiled-template cache is owned by
    the Jinja environment; rendering never mutates shared state, so the same
    renderer can serve concurrent generations.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    # -- Single template rendering -----------------------------------------

    def render(self, template_id: str, context: ContextLike) -> str:
        """Render a single template with the provided context.

        Args:
            template_id: Path relative to the template root.
            context: A render-context model or a plain mapping.

        Raises:
            TemplateError: The template is missing, unparsable, or fails.
        """
        template = self._load(template_id)
        try:
            return template.render(**_as_vars(context))
        except jinja2.TemplateError as exc:
            raise TemplateError(
                "Failed to execute template", cause=exc, template=template_id
            ) from exc

    def render_string(self, template_string: str, context: ContextLike) -> str:
        """Render an inline template string with the provided context.

        Used for small fragments that are not stored as files, such as import
        paths carrying a ``{{ module_name }}`` placeholder.
        """
        try:
            return self.env.from_string(template_string).render(**_as_vars(context))
        except jinja2.TemplateError as exc:
            raise TemplateError(
                "Failed to render template fragment", cause=exc, fragment=template_string
            ) from exc

    # -- File-based rendering (async) --------------------------------------

    async def render_to_file(
        self,
        template_id: str,
        output_path: str | Path,
        context: ContextLike,
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.

        Raises:
            TemplateError: Rendering failed.
            FileSystemError: The destination could not be written.
        """
        out = Path(output_path)
        try:
            content = self.render(template_id, context)
        except TemplateError as exc:
            exc.with_context(output=str(out))
            raise
        try:
            await run_in_thread(_write_file, out, content)
        except OSError as exc:
            raise FileSystemError(
                "Failed to write rendered file",
                cause=exc,
                template=template_id,
                output=str(out),
            ) from exc
        return out

    # -- Lookup ------------------------------------------------------------

    def exists(self, template_id: str) -> bool:
        """Return ``True`` if *template_id* exists under the template root."""
        return (self.template_dir / template_id).is_file()

    def select(self, *template_ids: str) -> str:
        """Return the first of *template_ids* that exists.

        Raises:
            TemplateError: None of the candidates exist.
        """
        for template_id in template_ids:
            if self.exists(template_id):
                return template_id
        raise TemplateError(
            "Template not found", template=template_ids[0] if template_ids else "",
            candidates=list(template_ids),
        )

    # -- Internal ----------------------------------------------------------

    def _load(self, template_id: str) -> jinja2.Template:
        try:
            return self.env.get_template(template_id)
        except jinja2.TemplateNotFound as exc:
            raise TemplateError(
                "Template not found", cause=exc, template=template_id
            ) from exc
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateError(
                "Failed to parse template", cause=exc, template=template_id, line=exc.lineno
            ) from exc


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def output_name(template_id: str, extension: str = ".go") -> str:
    """File name a template renders to.

    ``"frameworks/gin/engine.go.j2"`` -> ``"engine.go"``;
    ``"libs/redis/client.j2"`` -> ``"client.go"``.
    """
    name = template_id.rsplit("/", 1)[-1].removesuffix(".j2")
    if not name.endswith(extension):
        name += extension
    return name


def _as_vars(context: ContextLike) -> dict[str, Any]:
    # Iterating a model yields its fields without converting nested objects.
    return dict(context)


def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
