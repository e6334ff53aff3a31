"""Registry of row tasks for one loaded spreadsheet.

The registry owns the visible :class:`~figbatch.models.RowStatus` of each
row, receives every row's patches, enforces the batch error and warning
thresholds, and runs the aggregate checks after joining all row tasks.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from figbatch.models import DataError, Field, Flow, RowPatch, RowState, RowStatus
from figbatch.sheet import SheetError, build_column_map, read_sheet
from figbatch.validation.aggregate import AggregateCheck, QuotaCheck, TitlesAreUnique
from figbatch.validation.checks.base import RowCheck, ValidationContext
from figbatch.validation.row import RowTask

logger = logging.getLogger(__name__)


def _is_blank(cells: Sequence[Any]) -> bool:
    return all(c is None or (isinstance(c, str) and not c.strip()) for c in cells)


class RowRegistry:
    """Loads rows, runs them concurrently, and tracks batch-level state."""

    def __init__(
        self,
        fields: Sequence[Field],
        context: ValidationContext | None = None,
        quota_remaining: int = 0,
        checks: Sequence[RowCheck] | None = None,
    ) -> None:
        self.fields = list(fields)
        self.context = context or ValidationContext()
        self.quota_remaining = quota_remaining
        self._checks = checks

        self.session = 0
        self.rows: list[RowStatus] = []
        self.tasks: list[RowTask] = []
        self.load_errors: list[str] = []
        self.load_warnings: list[str] = []
        self.aggregate_checks: list[AggregateCheck] = []
        self.halted = False
        self.working = False
        self.row_checks_completed = False

        self._by_id: dict[str, RowStatus] = {}
        self._error_count = 0
        self._warning_count = 0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Discard all rows; patches from discarded rows are answered HALT."""
        for task in self.tasks:
            task.terminate()
        self.session += 1
        self.rows = []
        self.tasks = []
        self._by_id = {}
        self.load_errors = []
        self.load_warnings = []
        self.aggregate_checks = []
        self.halted = False
        self.row_checks_completed = False
        self._error_count = 0
        self._warning_count = 0

    def load(self, header: Sequence[str], data_rows: Sequence[Sequence[Any]]) -> list[RowStatus]:
        """Create one row task per non-blank data row.

        Problems that prevent loading are recorded in ``load_errors``.
        """
        self.reset()
        try:
            column_map, dropped = build_column_map(header, self.fields)
        except SheetError as exc:
            self.load_errors.append(str(exc))
            return []
        if dropped:
            self.load_warnings.append(f"Ignoring unrecognized columns: {', '.join(dropped)}")

        for index, cells in enumerate(data_rows):
            if _is_blank(cells):
                continue
            row_id = f"upload{self.session}-{index}"
            row_number = index + 2
            status = RowStatus(id=row_id, row_number=row_number)
            self.rows.append(status)
            self._by_id[row_id] = status
            self.tasks.append(RowTask(
                row_id,
                cells,
                column_map,
                self.fields,
                self.update,
                context=self.context,
                row_number=row_number,
                checks=self._checks,
            ))

        if not self.rows:
            self.load_errors.append("No data found in spreadsheet.")
        logger.info("Loaded %d rows (session %d)", len(self.rows), self.session)
        return self.rows

    def load_sheet(self, path: Path) -> list[RowStatus]:
        """Read a spreadsheet file and :meth:`load` its first sheet."""
        try:
            sheet = read_sheet(path)
        except SheetError as exc:
            self.reset()
            self.load_errors.append(str(exc))
            return []
        return self.load(sheet.header, sheet.rows)

    # ------------------------------------------------------------------
    # Patches from row tasks
    # ------------------------------------------------------------------

    def update(self, row_id: str, patch: RowPatch) -> Flow:
        """Apply a row's patch and tell the row whether to continue."""
        status = self._by_id.get(row_id)
        if status is None or self.halted:
            return Flow.HALT

        if patch.status is not None and status.status is not RowState.PARSING:
            logger.warning(
                "Row %s: refusing %s -> %s", row_id, status.status.value, patch.status.value
            )
            return Flow.HALT

        if patch.warnings is not None:
            self._warning_count += max(0, len(patch.warnings) - len(status.warnings))
            status.warnings = list(patch.warnings)
        if patch.errors is not None:
            status.errors = list(patch.errors)
        if patch.title is not None:
            status.title = patch.title
        if patch.status is not None:
            status.status = patch.status
            if patch.status is RowState.ERROR:
                self._error_count += 1

        config = self.context.config
        if self._error_count >= config.max_error_count:
            logger.warning("Halting: %d rows in error", self._error_count)
            self.halt()
            return Flow.HALT
        if self._warning_count >= config.max_warning_count:
            logger.warning("Halting: %d warnings", self._warning_count)
            self.halt()
            return Flow.HALT
        return Flow.CONTINUE

    def halt(self) -> None:
        """Stop every row; rows still parsing end in error."""
        self.halted = True
        for task in self.tasks:
            task.terminate()
        for status in self.rows:
            if status.status is RowState.PARSING:
                status.status = RowState.ERROR
                status.errors.append(
                    DataError("Validation halted before this row finished", "HaltedError")
                )

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def check(self) -> bool:
        """Run every row task, join them, then run the aggregate checks.

        Returns:
            True if every row and every aggregate check is valid.
        """
        if not self.tasks:
            if not self.load_errors:
                self.load_errors.append("No rows loaded")
            return False

        self.working = True
        try:
            await asyncio.gather(*(task.run_all_checks() for task in self.tasks))
        finally:
            self.working = False

        if self.halted:
            logger.info("Batch halted; skipping aggregate checks")
            return False

        self.row_checks_completed = True
        by_number = {task.row_number: task for task in self.tasks}
        self.aggregate_checks = [
            TitlesAreUnique(by_number),
            QuotaCheck(by_number, self.quota_remaining),
        ]
        for aggregate in self.aggregate_checks:
            aggregate.check()
        return self.valid

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_task(self, row_id: str) -> RowTask | None:
        return next((t for t in self.tasks if t.id == row_id), None)

    @property
    def completed(self) -> bool:
        return self.row_checks_completed and all(c.complete for c in self.aggregate_checks)

    @property
    def valid(self) -> bool:
        return (
            self.completed
            and not self.load_errors
            and all(r.status is RowState.VALID for r in self.rows)
            and all(c.errors == [] for c in self.aggregate_checks)
        )

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return self._warning_count
