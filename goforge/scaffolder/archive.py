"""Packing a staging tree into a deterministic zip archive."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

from goforge.errors import FileSystemError
from goforge.utils import run_in_thread

# Zip timestamps cannot predate 1980; a fixed stamp keeps archives reproducible.
FIXED_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
FILE_MODE = 0o644


def collect_files(root: str | Path) -> list[tuple[str, Path]]:
    """Return ``(relative_posix_path, absolute_path)`` for every regular file.

    Directories are structural only and never listed.  The result is sorted
    by relative path so traversal order does not depend on the filesystem.
    """
    base = Path(root)
    entries = [
        (path.relative_to(base).as_posix(), path)
        for path in base.rglob("*")
        if path.is_file() and not path.is_symlink()
    ]
    entries.sort(key=lambda entry: entry[0])
    return entries


def pack_directory(root: str | Path) -> bytes:
    """Zip every regular file under *root* and return the archive bytes.

    Raises:
        FileSystemError: Any file could not be read (no partial archive is
            returned).
    """
    base = Path(root)
    if not base.is_dir():
        raise FileSystemError("Staging directory does not exist", path=str(base))

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for rel_path, path in collect_files(base):
            try:
                data = path.read_bytes()
            except OSError as exc:
                raise FileSystemError(
                    "Failed to read file for archive", cause=exc, path=rel_path
                ) from exc
            info = zipfile.ZipInfo(rel_path, date_time=FIXED_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = (0o100000 | FILE_MODE) << 16
            archive.writestr(info, data)
    return buffer.getvalue()


async def pack_directory_async(root: str | Path) -> bytes:
    """``pack_directory`` in a worker thread."""
    return await run_in_thread(pack_directory, root)
