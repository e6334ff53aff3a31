"""Per-record upload driver.

For each row selected for upload: create the record, then hand its files
to :func:`~figbatch.upload.files.upload_files`. Rows run under an
``asyncio.Semaphore`` (one at a time by default).

Cancellation is advisory. ``cancel_row`` marks the row cancelled at
once; a request already in flight finishes and its result is discarded,
and the file orchestrator stops at its next progress boundary.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from figbatch.config import RepositoryConfig
from figbatch.filesystem import RootDirectory
from figbatch.models import UploadFileStatus, UploadRowState, UploadStatus
from figbatch.report import build_summary_csv, write_summary_csv
from figbatch.upload.client import RepositoryClient
from figbatch.upload.files import upload_files
from figbatch.upload.payload import UploadRowData
from figbatch.validation.duplicates import DuplicateReview

logger = logging.getLogger(__name__)

_FINAL = frozenset({
    UploadStatus.COMPLETED, UploadStatus.ERROR, UploadStatus.SKIPPED, UploadStatus.CANCELLED,
})


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RecordUploadOrchestrator:
    """Uploads prepared rows and tracks each row's :class:`UploadRowState`.

    Args:
        client: Repository API client.
        rows: Prepared upload data, one entry per valid row.
        root_dir: Directory the rows' filenames resolve against.
        config: Repository settings (concurrency).
        review: Duplicate review; its skip selection marks rows skipped
            and it must be acknowledged before :meth:`upload_all`.
        progress: Optional :class:`UploadProgressTracker`.
    """

    def __init__(
        self,
        client: RepositoryClient,
        rows: Sequence[UploadRowData],
        root_dir: RootDirectory | None = None,
        config: RepositoryConfig | None = None,
        review: DuplicateReview | None = None,
        progress: Any | None = None,
    ) -> None:
        self._client = client
        self._root_dir = root_dir
        self._config = config or RepositoryConfig()
        self._review = review
        self._progress = progress
        self._semaphore = asyncio.Semaphore(self._config.max_concurrent_rows)
        self._cancelled: set[str] = set()

        skip = review.skip_rows if review is not None else set()
        self._data = {r.id: r for r in rows}
        self.rows: dict[str, UploadRowState] = {
            r.id: UploadRowState(
                id=r.id,
                row_number=r.row_number,
                title=r.title,
                status=UploadStatus.SKIPPED if r.id in skip else UploadStatus.PENDING,
            )
            for r in rows
        }

    # ------------------------------------------------------------------
    # Status helpers
    # ------------------------------------------------------------------

    def _set(self, state: UploadRowState, status: UploadStatus) -> bool:
        """Move *state* to *status* unless the row was cancelled."""
        if state.status is UploadStatus.CANCELLED:
            return False
        state.status = status
        return True

    def _mark_cancelled(self, state: UploadRowState) -> None:
        state.status = UploadStatus.CANCELLED
        state.completed_at = state.completed_at or _now()
        if self._progress is not None:
            self._progress.record_cancelled(state.title)

    # ------------------------------------------------------------------
    # Uploading
    # ------------------------------------------------------------------

    async def upload_row(self, row_id: str) -> UploadRowState:
        """Create the record for *row_id* and upload its files."""
        state = self.rows[row_id]
        data = self._data[row_id]
        if state.status is not UploadStatus.PENDING:
            return state

        async with self._semaphore:
            if row_id in self._cancelled:
                self._mark_cancelled(state)
                return state

            state.status = UploadStatus.UPLOADING
            state.started_at = _now()
            state.error = None
            if self._progress is not None:
                self._progress.record_started(state.title)

            try:
                result = await self._client.create_article(data.payload)
                if not self._set(state, UploadStatus.CREATED):
                    logger.info("Row %s cancelled; discarding created record", row_id)
                    return state
                state.result = result
                logger.info("Row %s: created record %s", row_id, result.get("entity_id"))

                if data.files:
                    def on_progress(snapshot: UploadFileStatus) -> bool:
                        state.file_progress = snapshot
                        if self._progress is not None:
                            self._progress.file_progress(snapshot)
                        return row_id in self._cancelled

                    snapshots = await upload_files(
                        data.files, self._root_dir, result["entity_id"], self._client, on_progress
                    )
                    failed = [s for s in snapshots if s.error]
                    if failed:
                        raise RuntimeError("; ".join(f"{s.name}: {s.error}" for s in failed))

                if self._set(state, UploadStatus.COMPLETED):
                    state.completed_at = _now()
                    if self._progress is not None:
                        self._progress.record_completed(state.title)
            except Exception as exc:
                logger.error("Row %s upload failed: %s", row_id, exc)
                if self._set(state, UploadStatus.ERROR):
                    state.error = str(exc)
                    if self._progress is not None:
                        self._progress.record_failed(state.title, str(exc))
        return state

    async def upload_all(self) -> dict[str, int]:
        """Upload every pending row.

        Raises:
            DuplicatesNotAcknowledgedError: If the duplicate review has
                unacknowledged matches.
        """
        if self._review is not None:
            self._review.require_acknowledged()

        if self._progress is not None:
            for state in self.rows.values():
                if state.status is UploadStatus.SKIPPED:
                    self._progress.record_skipped(state.title)

        pending = [r for r, s in self.rows.items() if s.status is UploadStatus.PENDING]
        logger.info("Uploading %d records (%d skipped)", len(pending), len(self.rows) - len(pending))
        await asyncio.gather(*(self.upload_row(row_id) for row_id in pending))
        return self.summary

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel_row(self, row_id: str) -> None:
        state = self.rows[row_id]
        if state.status in _FINAL:
            return
        self._cancelled.add(row_id)
        self._mark_cancelled(state)
        logger.info("Row %s cancelled", row_id)

    def cancel_all(self) -> None:
        for row_id in list(self.rows):
            self.cancel_row(row_id)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @property
    def summary(self) -> dict[str, int]:
        counts = {status.value: 0 for status in UploadStatus}
        for state in self.rows.values():
            counts[state.status.value] += 1
        return counts

    def summary_csv(self) -> str:
        return build_summary_csv(self.rows.values())

    def write_summary(self, path: Path) -> Path:
        return write_summary_csv(self.rows.values(), path)
