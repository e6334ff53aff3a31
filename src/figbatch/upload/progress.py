"""Rich progress display for a record upload run.

Two tiers:

* **Records** -- overall progress across all rows
* **Files** -- part-level progress of the file currently uploading
"""

from __future__ import annotations

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from figbatch.models import UploadFileStatus


class UploadProgressTracker:
    """Two-tier Rich progress tracker for record uploads.

    Usage::

        with UploadProgressTracker(total_records=12) as tracker:
            tracker.record_started("My dataset")
            tracker.file_progress(snapshot)
            tracker.record_completed("My dataset")
    """

    def __init__(self, total_records: int) -> None:
        self._total_records = total_records
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TextColumn("{task.fields[status]}", style="dim"),
        )
        self._records_task: TaskID | None = None
        self._file_task: TaskID | None = None
        self._stats: dict[str, int] = {
            "completed": 0,
            "failed": 0,
            "skipped": 0,
            "cancelled": 0,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._progress.start()
        self._records_task = self._progress.add_task(
            "[green]Records", total=self._total_records, status="starting..."
        )

    def stop(self) -> None:
        self._progress.stop()

    def __enter__(self) -> UploadProgressTracker:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def record_started(self, title: str | None) -> None:
        if self._records_task is not None:
            self._progress.update(self._records_task, status=_truncate(title or ""))

    def file_progress(self, snapshot: UploadFileStatus) -> None:
        """Show part progress of the file in *snapshot*."""
        label = (
            f"[blue]File {snapshot.file_index + 1}/{snapshot.total_files}"
        )
        if self._file_task is None:
            self._file_task = self._progress.add_task(label, total=None, status="")
        status = snapshot.remote_status or "hashing"
        if snapshot.error:
            status = f"[red]FAIL[/red] {snapshot.error}"
        self._progress.update(
            self._file_task,
            description=label,
            total=snapshot.part_count or None,
            completed=snapshot.part_number,
            status=f"{_truncate(snapshot.name)} {status}",
        )

    def _finish(self, key: str, status: str) -> None:
        self._stats[key] += 1
        if self._records_task is not None:
            self._progress.advance(self._records_task, 1)
            self._progress.update(self._records_task, status=status)
        if self._file_task is not None:
            self._progress.update(self._file_task, visible=False)
            self._file_task = None

    def record_completed(self, title: str | None) -> None:
        self._finish("completed", _truncate(title or ""))

    def record_failed(self, title: str | None, error: str) -> None:
        self._finish("failed", f"[red]FAIL[/red] {_truncate(title or '')}: {error}")

    def record_skipped(self, title: str | None) -> None:
        self._finish("skipped", f"[yellow]skipped[/yellow] {_truncate(title or '')}")

    def record_cancelled(self, title: str | None) -> None:
        self._finish("cancelled", f"[yellow]cancelled[/yellow] {_truncate(title or '')}")

    @property
    def stats(self) -> dict[str, int]:
        """Return a copy of the current statistics."""
        return dict(self._stats)


def _truncate(text: str, max_len: int = 40) -> str:
    """Shorten *text* for display, keeping its end."""
    if len(text) <= max_len:
        return text
    return "..." + text[-(max_len - 3):]
