"""Error taxonomy shared by the engine and the HTTP service.

Every failure inside a generation is raised as an ``AppError`` subclass that
carries its kind, the HTTP status it maps to, and a dictionary of structured
context (offending path, template, library name, layer...).  The context is
meant for operator-facing logs; callers only ever see ``public_message``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Machine-readable error codes."""

    VALIDATION = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFIG = "CONFIG_ERROR"
    TEMPLATE = "TEMPLATE_ERROR"
    FILESYSTEM = "FILESYSTEM_ERROR"
    INTERNAL = "INTERNAL_ERROR"


class AppError(Exception):
    """Base class for every error raised by goforge.

    Args:
        message: Short, caller-safe sentence describing the failure.
        cause: Optional underlying exception (kept for logging only).
        **context: Structured diagnostic fields.
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.cause = cause
        self.context: dict[str, Any] = dict(context)
        super().__init__(message)

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message

    @property
    def public_message(self) -> str:
        """Message safe to return to API callers (no internals)."""
        return self.message

    def with_context(self, **context: Any) -> "AppError":
        """Attach extra context fields and return ``self`` for chaining."""
        self.context.update(context)
        return self

    def log_fields(self) -> dict[str, Any]:
        """Flatten the error into a dict suitable for ``logger.*(extra=...)``."""
        fields: dict[str, Any] = {
            "error_code": self.kind.value,
            "error_message": self.message,
            **self.context,
        }
        if self.cause is not None:
            fields["internal_error"] = repr(self.cause)
        return fields


class InvalidRequestError(AppError):
    """A request field is malformed or violates policy."""

    kind = ErrorKind.VALIDATION
    status_code = 400


class NotFoundError(AppError):
    """A requested framework or library is absent from the manifest."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404

    @classmethod
    def resource(cls, resource: str, name: str) -> "NotFoundError":
        return cls(f"{resource} '{name}' not found", resource=resource, resource_name=name)


class ConfigError(AppError):
    """The manifest or a config fragment is malformed or incompatible."""

    kind = ErrorKind.CONFIG


class TemplateError(AppError):
    """A template is missing, unparsable, or failed to render."""

    kind = ErrorKind.TEMPLATE


class FileSystemError(AppError):
    """Staging or archival I/O failed."""

    kind = ErrorKind.FILESYSTEM


class InternalError(AppError):
    """Anything not covered by a more specific kind."""

    kind = ErrorKind.INTERNAL
