"""Go module dependency resolution.

Collects the import paths declared by the selected framework and libraries,
normalises each to a module path, adds the baseline modules every generated
project needs, and returns a sorted, de-duplicated list.
"""

from __future__ import annotations

import re

from .models import GenerateRequest, Manifest

BASELINE_DEPENDENCIES: tuple[str, ...] = (
    "github.com/google/uuid",
    "github.com/sirupsen/logrus",
    "github.com/spf13/viper",
)

_VERSION_SEGMENT = re.compile(r"^v\d+$")
_MAX_MODULE_SEGMENTS = 3


def extract_module_path(import_path: str) -> str:
    """Approximate the module (repository root) that provides *import_path*.

    * A path whose last segment is a major-version suffix is already a module
      path: ``github.com/redis/go-redis/v9`` is returned unchanged.
    * A path with a host-like first segment is cut to at most three segments:
      ``github.com/gin-gonic/gin/binding`` -> ``github.com/gin-gonic/gin``.
    * Anything else (no dot) is returned unchanged.

    The three-segment cut is a heuristic.  A module whose path legitimately
    has more segments without a version suffix will be truncated.
    """
    segments = import_path.split("/")
    if _VERSION_SEGMENT.match(segments[-1]):
        return import_path
    if "." in import_path and len(segments) >= 2:
        return "/".join(segments[:_MAX_MODULE_SEGMENTS])
    return import_path


def resolve_dependencies(request: GenerateRequest, manifest: Manifest) -> list[str]:
    """Return the sorted module set needed by *request*.

    Unknown framework/library names contribute nothing here; the orchestrator
    rejects them before resolution.
    """
    modules: set[str] = set(BASELINE_DEPENDENCIES)

    framework = manifest.frameworks.get(request.framework)
    if framework is not None:
        modules.update(extract_module_path(imp) for imp in framework.imports)

    for name in request.libs:
        lib = manifest.libs.get(name)
        if lib is not None:
            modules.update(extract_module_path(imp) for imp in lib.imports)

    return sorted(modules)
