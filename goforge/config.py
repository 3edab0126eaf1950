"""goforge service configuration.

Typed settings for the scaffolding service. Like the rest of the project the
settings use Pydantic v2 models so they are validated at construction time
and can be read from a JSON file or from environment variables.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_MANIFEST_PATH = Path(__file__).parent / "scaffolder" / "manifest.json"

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Settings consumed by the HTTP service and the CLI.

    The composition engine itself never reads these; it receives an already
    loaded ``ManifestStore``.
    """

    manifest_path: Path = Field(default=DEFAULT_MANIFEST_PATH)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False, description="Emit structured JSON logs")
    rate_limit_enabled: bool = Field(default=True)
    rate_limit: str = Field(
        default="60/minute", description="slowapi limit string applied per client IP"
    )
    staging_prefix: str = Field(default="gen-", min_length=1)

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> "Settings":
        """Load settings from a JSON file (keys as in the model fields).

        Raises:
            OSError: The file cannot be read.
            pydantic.ValidationError: The content is not valid settings.
        """
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            GOFORGE_MANIFEST_PATH (or MANIFEST_PATH), GOFORGE_HOST,
            GOFORGE_PORT (or PORT), GOFORGE_LOG_LEVEL (or LOG_LEVEL),
            GOFORGE_LOG_JSON, GOFORGE_RATE_LIMIT, GOFORGE_RATE_LIMIT_ENABLED.
        """
        kwargs: dict[str, Any] = {}

        manifest = _env("GOFORGE_MANIFEST_PATH", "MANIFEST_PATH")
        if manifest:
            kwargs["manifest_path"] = Path(manifest)
        if os.environ.get("GOFORGE_HOST"):
            kwargs["host"] = os.environ["GOFORGE_HOST"]
        port = _env("GOFORGE_PORT", "PORT")
        if port:
            kwargs["port"] = int(port)
        level = _env("GOFORGE_LOG_LEVEL", "LOG_LEVEL")
        if level:
            kwargs["log_level"] = level
        if os.environ.get("GOFORGE_LOG_JSON"):
            kwargs["log_json"] = os.environ["GOFORGE_LOG_JSON"].strip().lower() in _TRUTHY
        if os.environ.get("GOFORGE_RATE_LIMIT"):
            kwargs["rate_limit"] = os.environ["GOFORGE_RATE_LIMIT"]
        if os.environ.get("GOFORGE_RATE_LIMIT_ENABLED"):
            kwargs["rate_limit_enabled"] = (
                os.environ["GOFORGE_RATE_LIMIT_ENABLED"].strip().lower() in _TRUTHY
            )

        return cls(**kwargs)


def _env(*names: str) -> str | None:
    """Return the first non-empty environment variable among *names*."""
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None
