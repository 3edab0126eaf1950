"""Pydantic models for the composition engine.

Covers the manifest catalog (frameworks, libraries), the generate request,
the ``Includes`` flag set, and the typed render contexts handed to the
template renderer.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    GetCoreSchemaHandler,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import core_schema

DEFAULT_GO_VERSION = "1.22"
DEFAULT_PORT = 8080

PROJECT_NAME_PATTERN = re.compile(r"^[a-z0-9-]+$")
MODULE_NAME_PATTERN = re.compile(
    r"^[a-z0-9][a-z0-9._-]*/[a-z0-9][a-z0-9._-]*(/[a-z0-9][a-z0-9._-]*)*$"
)
MIN_PROJECT_NAME_LENGTH = 1
MAX_PROJECT_NAME_LENGTH = 50
MIN_MODULE_NAME_LENGTH = 3
MAX_MODULE_NAME_LENGTH = 200


# ---------------------------------------------------------------------------
# Manifest catalog
# ---------------------------------------------------------------------------


class LibCategory(str, Enum):
    DATABASE = "database"
    CACHING = "caching"
    MESSAGING = "messaging"
    UTILITIES = "utilities"
    OBSERVABILITY = "observability"
    OTHER = "other"


class FrameworkDef(BaseModel):
    """A selectable web framework."""

    model_config = ConfigDict(frozen=True)

    imports: tuple[str, ...] = Field(..., min_length=1)
    config_section: str | None = None
    templates: tuple[str, ...] = Field(..., min_length=1)
    display_name: str = ""
    icon: str = ""

    @field_validator("config_section", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LibDef(FrameworkDef):
    """An optional library; ``is_radio`` libraries are exclusive per category."""

    category: LibCategory = LibCategory.OTHER
    is_radio: bool = False


class Manifest(BaseModel):
    """The whole catalog, immutable once loaded.

    ``frameworks`` and ``libs`` are published as read-only mappings; the
    store shares one instance between every request.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., min_length=1)
    libs: Mapping[str, LibDef] = Field(default_factory=dict, validate_default=True)
    frameworks: Mapping[str, FrameworkDef] = Field(..., min_length=1)

    @field_validator("libs", "frameworks")
    @classmethod
    def _read_only(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @field_serializer("libs", "frameworks")
    def _as_dict(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return dict(value)

    def radio_groups(self) -> dict[LibCategory, list[str]]:
        """Map each category to its mutually exclusive library names."""
        groups: dict[LibCategory, list[str]] = {}
        for name in sorted(self.libs):
            lib = self.libs[name]
            if lib.is_radio:
                groups.setdefault(lib.category, []).append(name)
        return groups


# ---------------------------------------------------------------------------
# Generate request
# ---------------------------------------------------------------------------


def _reject_traversal(value: str, field: str) -> None:
    if "\x00" in value or ".." in value or "\\" in value:
        raise ValueError(f"{field} contains path traversal or null byte sequences")


class GenerateRequest(BaseModel):
    """A user's selection. Accepts both ``projectName`` and ``project_name``."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=False,
    )

    project_name: str
    module_name: str
    framework: str
    architecture: str = "clean"
    libs: tuple[str, ...] = ()
    include_example: bool = False

    @field_validator("project_name")
    @classmethod
    def _check_project_name(cls, value: str) -> str:
        if not value:
            raise ValueError("projectName is required")
        _reject_traversal(value, "projectName")
        if "/" in value:
            raise ValueError("projectName contains path traversal or null byte sequences")
        if len(value) > MAX_PROJECT_NAME_LENGTH:
            raise ValueError(
                f"projectName must be at most {MAX_PROJECT_NAME_LENGTH} characters"
            )
        if not PROJECT_NAME_PATTERN.match(value):
            raise ValueError(
                "projectName must contain only lowercase alphanumeric characters and hyphens"
            )
        return value

    @field_validator("module_name")
    @classmethod
    def _check_module_name(cls, value: str) -> str:
        if not value:
            raise ValueError("moduleName is required")
        _reject_traversal(value, "moduleName")
        if not MIN_MODULE_NAME_LENGTH <= len(value) <= MAX_MODULE_NAME_LENGTH:
            raise ValueError(
                f"moduleName must be between {MIN_MODULE_NAME_LENGTH} and "
                f"{MAX_MODULE_NAME_LENGTH} characters"
            )
        if not MODULE_NAME_PATTERN.match(value):
            raise ValueError("moduleName must be a valid Go module path (e.g. github.com/user/repo)")
        return value

    @field_validator("framework")
    @classmethod
    def _check_framework(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("framework is required")
        return value

    @field_validator("libs", mode="before")
    @classmethod
    def _dedupe_libs(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str) or not isinstance(value, Iterable):
            return value
        seen: dict[str, None] = {}
        for item in value:
            if isinstance(item, str) and not item.strip():
                raise ValueError("library names must not be empty")
            seen.setdefault(item, None)
        return tuple(seen)


# ---------------------------------------------------------------------------
# Includes
# ---------------------------------------------------------------------------


class Includes(Mapping[str, bool]):
    """Which libraries were selected, keyed by every library in the manifest.

    The key set is closed: looking up a name that is not a manifest library
    raises ``KeyError`` (and therefore fails a strict template render) rather
    than quietly reading as ``False``.
    """

    __slots__ = ("_flags", "_selected")

    def __init__(self, known: Iterable[str], selected: Iterable[str] = ()) -> None:
        known_names = sorted(set(known))
        chosen = tuple(dict.fromkeys(selected))
        unknown = [name for name in chosen if name not in known_names]
        if unknown:
            raise ValueError(f"unknown libraries: {', '.join(unknown)}")
        self._flags = {name: name in chosen for name in known_names}
        self._selected = chosen

    @classmethod
    def from_request(cls, manifest: Manifest, request: GenerateRequest) -> "Includes":
        return cls(manifest.libs.keys(), request.libs)

    @property
    def selected(self) -> tuple[str, ...]:
        """Selected library names in request order."""
        return self._selected

    def __getitem__(self, name: str) -> bool:
        return self._flags[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._flags)

    def __len__(self) -> int:
        return len(self._flags)

    def __repr__(self) -> str:
        return f"Includes(selected={list(self._selected)!r})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.is_instance_schema(
            cls,
            serialization=core_schema.plain_serializer_function_ser_schema(dict),
        )


# ---------------------------------------------------------------------------
# Deps metadata
# ---------------------------------------------------------------------------


class DepMetadata(BaseModel):
    """Per-library snippets for the generated dependency container."""

    model_config = ConfigDict(frozen=True)

    imports: tuple[str, ...] = ()
    struct_field: str = ""
    init_lines: tuple[str, ...] = ()
    close_lines: tuple[str, ...] = ()
    helper_files: tuple[str, ...] = ()


class ConfigMetadata(BaseModel):
    """Per-library field for the generated config accessor."""

    model_config = ConfigDict(frozen=True)

    imports: tuple[str, ...] = ()
    config_field: str = ""


# ---------------------------------------------------------------------------
# Render contexts
# ---------------------------------------------------------------------------


class RenderContext(BaseModel):
    """Fields every layer's templates can rely on."""

    model_config = ConfigDict(frozen=True)

    module_name: str
    project_name: str
    framework: str
    architecture: str
    include_example: bool
    includes: Includes

    @classmethod
    def from_request(cls, request: GenerateRequest, includes: Includes) -> "RenderContext":
        return cls(
            module_name=request.module_name,
            project_name=request.project_name,
            framework=request.framework,
            architecture=request.architecture,
            include_example=request.include_example,
            includes=includes,
        )

    def extend(self, context_cls: type[RenderContext], **extra: Any) -> Any:
        """Build a more specific context carrying the same base fields."""
        base = {name: getattr(self, name) for name in RenderContext.model_fields}
        return context_cls(**base, **extra)


class LibraryContext(RenderContext):
    lib: str


class BuildContext(RenderContext):
    modules: tuple[str, ...]
    go_version: str = DEFAULT_GO_VERSION


class ContainerContext(RenderContext):
    binary_name: str
    port: int = DEFAULT_PORT
    go_version: str = DEFAULT_GO_VERSION


class DepsContext(RenderContext):
    modules: tuple[str, ...]
    deps: dict[str, DepMetadata]


class DepsHelperContext(RenderContext):
    key: str


class ConfigAccessorContext(RenderContext):
    config_fields: dict[str, ConfigMetadata]
    imports: tuple[str, ...] = ()
