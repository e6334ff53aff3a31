"""Resolve referenced files and tally their size for the quota check."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from figbatch.filesystem import file_access_supported
from figbatch.models import CheckResult, CheckStatus, DataError, Flow
from figbatch.validation.checks.base import Emit, RowCheck, ValidationContext

if TYPE_CHECKING:
    from figbatch.validation.row import RowTask

logger = logging.getLogger(__name__)


class FileRefCheck(RowCheck):
    """Every entry of the ``files`` field must name a readable file.

    Reads ``context.root_dir``; adds each resolved file's size to
    ``row.scratch.quota_used``. Bad entries are reported one by one
    without stopping the scan.
    """

    name = "Check Files"

    async def run(self, row: RowTask, emit: Emit, context: ValidationContext) -> None:
        files = (row.data or {}).get("files")
        if not files:
            emit(CheckResult(CheckStatus.SKIPPED, details="No files referenced"))
            return
        if not isinstance(files, list):
            files = [files]

        if not file_access_supported():
            emit(CheckResult(
                CheckStatus.FAILED,
                error=DataError(
                    "This host cannot read local files", "UnsupportedBrowser"
                ),
            ))
            return

        root = context.root_dir
        if root is None:
            emit(CheckResult(
                CheckStatus.FAILED,
                error=DataError(
                    "Files are referenced but no root directory was selected", "NoRootDir"
                ),
            ))
            return

        if emit(CheckResult(CheckStatus.IN_PROGRESS)) is Flow.HALT:
            return

        all_ok = True
        for filename in files:
            error: DataError | None = None
            if not isinstance(filename, str):
                error = DataError(
                    f"Invalid filename format: {filename!r} is a "
                    f"{type(filename).__name__}, not a string",
                    "InvalidFilenameFormat",
                )
            else:
                try:
                    handle = await root.get_file_handle(filename)
                except DataError as exc:
                    error = exc
                except FileNotFoundError:
                    error = DataError(f"File not found: {filename}", "FileNotFound")
                except OSError as exc:
                    error = DataError(
                        f'Problem accessing "{filename}": {exc.strerror or exc}',
                        "FileAccessError",
                    )
                else:
                    if handle.size == 0:
                        if emit(CheckResult(
                            CheckStatus.IN_PROGRESS, warning=f"File is empty: {filename}"
                        )) is Flow.HALT:
                            return
                    row.scratch.quota_used += handle.size
                    continue

            all_ok = False
            logger.debug("Row %s: %s", row.id, error.message)
            if emit(CheckResult(CheckStatus.IN_PROGRESS, error=error)) is Flow.HALT:
                return

        if all_ok:
            emit(CheckResult(CheckStatus.SUCCESS, details="All referenced files are readable"))
        else:
            emit(CheckResult(
                CheckStatus.FAILED, details="One or more referenced files could not be used"
            ))
