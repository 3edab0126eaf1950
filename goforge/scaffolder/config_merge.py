"""Merging of per-framework and per-library config fragments.

Fragments are JSON objects overlaid at the top level only: a later
fragment's key replaces an earlier one wholesale (no deep merge).  The
baseline logging fragment is applied first, so it has the lowest precedence.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from goforge.errors import ConfigError, FileSystemError
from goforge.utils import dump_json, load_json, run_in_thread

logger = logging.getLogger(__name__)

BASELINE_FRAGMENT: dict[str, Any] = {
    "logging": {
        "level": "info",
        "format": "json",
        "output": "stdout",
    },
}


class ConfigMerger:
    """Accumulates fragments for one generation call.

    Args:
        base_dir: Directory that relative fragment paths are resolved against
            (the manifest's directory).
        baseline: Initial document; defaults to ``BASELINE_FRAGMENT``.
    """

    def __init__(self, base_dir: str | Path, baseline: dict[str, Any] | None = None) -> None:
        self.base_dir = Path(base_dir)
        self._document: dict[str, Any] = copy.deepcopy(
            BASELINE_FRAGMENT if baseline is None else baseline
        )

    @property
    def document(self) -> dict[str, Any]:
        """A copy of the merged document so far."""
        return copy.deepcopy(self._document)

    def merge(self, fragment_path: str | None) -> dict[str, Any]:
        """Overlay the fragment at *fragment_path* and return it.

        An empty path means "no fragment declared" and is a no-op.

        Raises:
            FileSystemError: The declared fragment cannot be read.
            ConfigError: The fragment is not a JSON object.
        """
        if not fragment_path:
            return {}

        path = self.base_dir / fragment_path
        try:
            fragment = load_json(path)
        except ValueError as exc:
            raise ConfigError(
                "Failed to parse config section", cause=exc, path=fragment_path
            ) from exc
        except OSError as exc:
            raise FileSystemError(
                "Failed to read config section file", cause=exc, path=fragment_path
            ) from exc

        if not isinstance(fragment, dict):
            raise ConfigError("Config section must be a JSON object", path=fragment_path)

        overridden = sorted(key for key in fragment if key in self._document)
        if overridden:
            logger.debug("Fragment %s overrides keys %s", fragment_path, overridden)
        self._document.update(fragment)
        return fragment

    def merge_all(self, fragment_paths: Iterable[str | None]) -> dict[str, Any]:
        """Merge *fragment_paths* in order and return the merged document."""
        for fragment_path in fragment_paths:
            self.merge(fragment_path)
        return self.document

    async def write(self, destination: str | Path) -> Path:
        """Write the merged document as indented JSON.

        Raises:
            FileSystemError: The destination is not writable.
        """
        out = Path(destination)
        content = dump_json(self._document)
        try:
            await run_in_thread(_write_text, out, content)
        except OSError as exc:
            raise FileSystemError(
                "Failed to write config file", cause=exc, path=str(out)
            ) from exc
        return out


def merge_fragments(
    fragment_paths: Iterable[str | None],
    base_dir: str | Path,
    *,
    baseline: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """One-shot merge of *fragment_paths* in order (later wins)."""
    return ConfigMerger(base_dir, baseline=baseline).merge_all(fragment_paths)


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
