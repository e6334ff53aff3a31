"""Chunked multi-part upload of a record's files.

Files go strictly one at a time, in list order. For each file:

1. resolve the handle in the root directory
2. MD5 over 1 MiB chunks
3. ``POST`` initiation -> ``location``
4. ``GET`` location -> manifest of parts, read from ``upload_url`` when
   the location response carries none
5. ``PUT`` each part's inclusive byte range, ascending part order
6. ``POST`` completion

A fresh :class:`~figbatch.models.UploadFileStatus` snapshot goes to the
progress callback after each step. A truthy return requests
cancellation, which takes effect at that step boundary; a call already
in flight is never interrupted.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Sequence
from dataclasses import replace

from figbatch.constants import HASH_CHUNK_SIZE
from figbatch.filesystem import FileHandle, RootDirectory, file_access_supported
from figbatch.models import UploadFileStatus
from figbatch.upload.client import RepositoryClient, RepositoryError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[UploadFileStatus], bool | None]


class FileAccessUnsupportedError(RuntimeError):
    """Raised when the host cannot read local files."""


class NoRootDirError(RuntimeError):
    """Raised when files must be uploaded but no root directory was given."""


async def compute_md5(handle: FileHandle, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Hex MD5 of a file, streamed in *chunk_size* reads."""
    digest = hashlib.md5()
    async for chunk in handle.iter_chunks(chunk_size):
        digest.update(chunk)
    return digest.hexdigest()


async def upload_files(
    files: Sequence[str],
    root_dir: RootDirectory | None,
    article_id: int | str,
    client: RepositoryClient,
    on_progress: ProgressCallback | None = None,
) -> list[UploadFileStatus]:
    """Upload *files* to record *article_id*.

    Returns:
        The last snapshot of every file that was attempted. A failed
        file's snapshot carries ``error``.

    Raises:
        FileAccessUnsupportedError: If the host cannot read local files.
        NoRootDirError: If *root_dir* is ``None``.
    """
    if not file_access_supported():
        raise FileAccessUnsupportedError("This host cannot read local files")
    if root_dir is None:
        raise NoRootDirError("A root directory is required to upload files")

    def report(snapshot: UploadFileStatus) -> bool:
        return bool(on_progress(snapshot)) if on_progress is not None else False

    results: list[UploadFileStatus] = []
    total = len(files)
    for index, name in enumerate(files):
        status = UploadFileStatus(file_index=index, total_files=total, name=name)
        try:
            if report(status):
                logger.info("Upload cancelled before %s", name)
                return results

            handle = await root_dir.get_file_handle(name)
            md5 = await compute_md5(handle)
            status = replace(status, content_hash=md5)
            if report(status):
                return results

            location = await client.initiate_file_upload(article_id, handle.name, handle.size, md5)
            status = replace(status, remote_status="initiated")
            if report(status):
                return results

            manifest = await client.get_upload_manifest(location)
            if not manifest.parts and handle.size > 0:
                raise RepositoryError(
                    f"Upload manifest for {name} lists no parts for {handle.size} bytes"
                )
            status = replace(
                status, remote_status=manifest.status, part_count=len(manifest.parts)
            )
            if report(status):
                return results

            for part in manifest.parts:
                content = await handle.read(part.start_offset, part.length)
                await client.upload_part(manifest.part_url(part), content)
                status = replace(status, part_number=part.part_no)
                if report(status):
                    return results

            await client.complete_file_upload(article_id, manifest.file_id)
            status = replace(status, remote_status="completed")
            logger.info("Uploaded %s (%d/%d) to record %s", name, index + 1, total, article_id)
        except Exception as exc:
            logger.error("Upload of %s failed: %s", name, exc)
            status = replace(status, error=str(exc))

        results.append(status)
        if report(status):
            return results
    return results
