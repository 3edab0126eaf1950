"""Manifest loading and structural validation.

The manifest is read once at startup, validated in full, and only then
published as an immutable ``Manifest``.  Any violation (bad JSON, wrong
version, a template that does not exist, a config fragment that is not a
JSON object...) fails the whole load with ``ConfigError``.

Template and config paths inside the manifest are relative to the
manifest's own directory and must live under ``templates/``.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from goforge.errors import ConfigError, FileSystemError
from goforge.utils import load_json

from .models import FrameworkDef, LibDef, Manifest

logger = logging.getLogger(__name__)

MANIFEST_VERSION = "1.0.0"
MIN_MANIFEST_VERSION = "1.0.0"

TEMPLATE_ROOT = "templates"
TEMPLATE_EXTENSION = ".j2"
CONFIG_EXTENSION = ".json"


def parse_version(version: str) -> tuple[int, ...]:
    """Parse a dotted version (``"1.2.0"``) into an integer tuple.

    Raises:
        ValueError: If any component is not a non-negative integer.
    """
    parts = version.strip().split(".")
    if not parts or any(not p.isdigit() for p in parts):
        raise ValueError(f"invalid version: {version!r}")
    return tuple(int(p) for p in parts)


def template_key(manifest_path: str) -> str:
    """Turn a manifest template path into a renderer template id.

    ``"templates/frameworks/gin/engine.go.j2"`` -> ``"frameworks/gin/engine.go.j2"``
    """
    return manifest_path.removeprefix(f"{TEMPLATE_ROOT}/")


class ManifestStore:
    """Holds one validated, immutable manifest and where it was loaded from.

    ``document`` is the manifest JSON exactly as read from disk, including
    keys the ``Manifest`` model does not declare.
    """

    def __init__(
        self, manifest: Manifest, base_dir: Path, document: dict[str, Any] | None = None
    ) -> None:
        self._manifest = manifest
        self.base_dir = Path(base_dir)
        self._document = (
            document if document is not None else manifest.model_dump(mode="json")
        )

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    def get(self) -> Manifest:
        return self._manifest

    @property
    def document(self) -> dict[str, Any]:
        """A copy of the raw manifest JSON."""
        return copy.deepcopy(self._document)

    @property
    def template_dir(self) -> Path:
        return self.base_dir / TEMPLATE_ROOT

    @classmethod
    def load(cls, path: str | Path) -> "ManifestStore":
        """Read, validate, and publish the manifest at *path*.

        Raises:
            FileSystemError: If the file cannot be read.
            ConfigError: If the content is malformed, incompatible, or
                references missing/invalid resources.
        """
        manifest_path = Path(path)
        try:
            raw = load_json(manifest_path)
        except FileNotFoundError as exc:
            raise FileSystemError(
                "Failed to read manifest file", cause=exc, path=str(manifest_path)
            ) from exc
        except ValueError as exc:
            raise ConfigError(
                "Failed to parse manifest file", cause=exc, path=str(manifest_path)
            ) from exc
        except OSError as exc:
            raise FileSystemError(
                "Failed to read manifest file", cause=exc, path=str(manifest_path)
            ) from exc

        if not isinstance(raw, dict):
            raise ConfigError("Manifest must be a JSON object", path=str(manifest_path))

        try:
            manifest = Manifest.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(
                "Manifest validation failed", cause=exc, path=str(manifest_path)
            ) from exc

        base_dir = manifest_path.resolve().parent
        validate_manifest(manifest, base_dir)
        logger.info(
            "Loaded manifest %s (version %s): %d frameworks, %d libraries",
            manifest_path,
            manifest.version,
            len(manifest.frameworks),
            len(manifest.libs),
        )
        return cls(manifest, base_dir, document=raw)


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate the manifest at *path*, returning just the model."""
    return ManifestStore.load(path).manifest


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_manifest(manifest: Manifest, base_dir: Path) -> None:
    """Check the version and every framework/library definition.

    Raises:
        ConfigError: On the first violation found.
    """
    try:
        version = parse_version(manifest.version)
    except ValueError as exc:
        raise ConfigError(
            f"Manifest version {manifest.version!r} is not a valid version",
            cause=exc,
            manifest_version=manifest.version,
        ) from exc
    if version < parse_version(MIN_MANIFEST_VERSION):
        raise ConfigError(
            f"Manifest version {manifest.version} is not supported. "
            f"Minimum supported version is {MIN_MANIFEST_VERSION}",
            manifest_version=manifest.version,
            supported_version=MANIFEST_VERSION,
        )

    for name, framework in sorted(manifest.frameworks.items()):
        _validate_definition("framework", name, framework, base_dir)
    for name, lib in sorted(manifest.libs.items()):
        _validate_definition("library", name, lib, base_dir)


def _validate_definition(
    kind: str, name: str, definition: FrameworkDef | LibDef, base_dir: Path
) -> None:
    if not name.strip():
        raise ConfigError(f"{kind.capitalize()} name cannot be empty")

    def fail(reason: str, **context: str) -> ConfigError:
        return ConfigError(f"Invalid {kind} '{name}': {reason}", **{kind: name}, **context)

    for template in definition.templates:
        if not template.startswith(f"{TEMPLATE_ROOT}/"):
            raise fail(f"template path must be under {TEMPLATE_ROOT}/", path=template)
        if not template.endswith(TEMPLATE_EXTENSION):
            raise fail(f"template path must end with {TEMPLATE_EXTENSION}", path=template)
        if not (base_dir / template).is_file():
            raise fail("template file does not exist", path=template)

    section = definition.config_section
    if section is None:
        return
    if not section.startswith(f"{TEMPLATE_ROOT}/"):
        raise fail(f"config section path must be under {TEMPLATE_ROOT}/", path=section)
    if not section.endswith(CONFIG_EXTENSION):
        raise fail("config section must be a JSON file", path=section)
    section_path = base_dir / section
    if not section_path.is_file():
        raise fail("config section file does not exist", path=section)
    try:
        fragment = load_json(section_path)
    except (OSError, ValueError) as exc:
        raise fail("config section is not valid JSON", path=section) from exc
    if not isinstance(fragment, dict):
        raise fail("config section must contain a JSON object", path=section)
