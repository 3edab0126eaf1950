"""Per-call staging directories.

Each generation owns exactly one temporary directory for its whole lifetime.
``staging_area`` creates it and removes it again on every exit path:
normal return, an exception, or task cancellation.

Everything written into the directory goes through
``goforge.utils.run_in_thread``, which holds a cancelled task until its worker
thread has finished, so nothing is written after the directory is removed.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from goforge.errors import FileSystemError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def staging_area(prefix: str = "gen-") -> AsyncIterator[Path]:
    """Yield a fresh, exclusively-owned staging directory.

    Raises:
        FileSystemError: The directory could not be created.
    """
    # Created without awaiting: no cancellation point between mkdtemp and the try.
    try:
        root = Path(tempfile.mkdtemp(prefix=prefix))
    except OSError as exc:
        raise FileSystemError(
            "Failed to create staging directory", cause=exc, prefix=prefix
        ) from exc

    logger.debug("Created staging directory %s", root)
    try:
        yield root
    finally:
        # Must not await: cleanup runs during cancellation too.
        remove_tree(root)


def remove_tree(root: Path) -> None:
    """Delete *root* recursively, logging (not raising) on failure."""
    try:
        shutil.rmtree(root)
    except FileNotFoundError:
        return
    except OSError:
        logger.warning("Failed to remove staging directory %s", root, exc_info=True)
        return
    logger.debug("Removed staging directory %s", root)
