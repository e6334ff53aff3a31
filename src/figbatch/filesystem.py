"""Read-only access to the directory holding referenced files.

A :class:`RootDirectory` resolves bare filenames (no directory parts) to
:class:`FileHandle` objects. Blocking filesystem calls run in a worker
thread so each resolution and each read is a suspension point for the
event loop.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from collections.abc import AsyncIterator
from pathlib import Path

from figbatch.constants import HASH_CHUNK_SIZE
from figbatch.models import DataError

logger = logging.getLogger(__name__)

# Sandboxed interpreters without a native filesystem to browse.
_SANDBOXED_PLATFORMS = frozenset({"emscripten", "wasi"})


def file_access_supported() -> bool:
    """Whether this host can read local files at all."""
    return sys.platform not in _SANDBOXED_PLATFORMS


class FileHandle:
    """A resolved, readable file inside a root directory."""

    def __init__(self, path: Path, size: int) -> None:
        self.path = path
        self.name = path.name
        self.size = size

    def __repr__(self) -> str:
        return f"FileHandle({self.name!r}, size={self.size})"

    async def read(self, offset: int, length: int) -> bytes:
        """Read up to *length* bytes starting at *offset*."""
        return await asyncio.to_thread(self._read_sync, offset, length)

    def _read_sync(self, offset: int, length: int) -> bytes:
        with open(self.path, "rb") as f:
            f.seek(offset)
            return f.read(length)

    async def iter_chunks(self, chunk_size: int = HASH_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Yield the file's content in *chunk_size* pieces."""
        offset = 0
        while offset < self.size:
            chunk = await self.read(offset, chunk_size)
            if not chunk:
                break
            yield chunk
            offset += len(chunk)


class RootDirectory:
    """The user-granted directory that spreadsheet filenames resolve against."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"RootDirectory({str(self.path)!r})"

    async def get_file_handle(self, name: str) -> FileHandle:
        """Resolve *name* to a handle.

        Raises:
            DataError: ``InvalidFilenameFormat`` if *name* is not a bare filename.
            FileNotFoundError: If no regular file of that name exists.
            OSError: For any other access problem.
        """
        if not name or name != os.path.basename(name) or name in (".", ".."):
            raise DataError(
                f"Invalid filename format: {name!r} must be a bare filename",
                "InvalidFilenameFormat",
            )
        return await asyncio.to_thread(self._resolve_sync, name)

    def _resolve_sync(self, name: str) -> FileHandle:
        path = self.path / name
        st = path.stat()
        if not path.is_file():
            raise FileNotFoundError(f"Not a regular file: {path}")
        if not os.access(path, os.R_OK):
            raise PermissionError(f"File is not readable: {path}")
        logger.debug("Resolved %s (%d bytes)", path, st.st_size)
        return FileHandle(path, st.st_size)
