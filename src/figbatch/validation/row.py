"""Per-row validation task.

A :class:`RowTask` runs the read step and then each registered check, in
order, for one spreadsheet row. Checks report through an emit sink; after
every emit the row recomputes its error and warning lists and forwards a
:class:`~figbatch.models.RowPatch` to its registry, whose :class:`Flow`
answer decides whether the row keeps going.

Rows never look at each other. Cross-row rules live in
:mod:`figbatch.validation.aggregate` and run after the registry's join.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from figbatch.models import (
    CheckResult,
    CheckStatus,
    DataError,
    Field,
    Flow,
    RowPatch,
    RowScratch,
    RowState,
)
from figbatch.sheet import ColumnMap
from figbatch.validation.checks import ROW_CHECKS
from figbatch.validation.checks.base import Emit, RowCheck, ValidationContext
from figbatch.validation.checks.read_data import ReadDataCheck
from figbatch.validation.fsm import create_fsm

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[str, RowPatch], Flow]


class RowTask:
    """Runs validation for one data row and reports to an update callback."""

    def __init__(
        self,
        row_id: str,
        cells: Sequence[Any],
        column_map: ColumnMap,
        fields: Sequence[Field],
        update: UpdateCallback,
        context: ValidationContext | None = None,
        row_number: int = 0,
        checks: Sequence[RowCheck] | None = None,
    ) -> None:
        self.id = row_id
        self.row_number = row_number
        self.cells = list(cells)
        self.column_map = column_map
        self.fields = list(fields)
        self.context = context or ValidationContext()
        self.data: dict[str, Any] | None = None
        self.scratch = RowScratch()
        self.terminated = False

        self._update = update
        self._read_check = ReadDataCheck()
        self._checks: tuple[RowCheck, ...] = tuple(ROW_CHECKS if checks is None else checks)
        self._fsm = create_fsm()

        self.checks: dict[str, list[CheckResult]] = {
            c.name: [CheckResult(CheckStatus.PENDING)]
            for c in (self._read_check, *self._checks)
        }

    def __repr__(self) -> str:
        return f"RowTask({self.id!r}, state={self._fsm.current_state.value!r})"

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> RowState | None:
        """Lifecycle state, or ``None`` before the checks start."""
        value = self._fsm.current_state.value
        return None if value == "pending" else RowState(value)

    @property
    def complete(self) -> bool:
        """True iff every check's last history entry is terminal."""
        return all(h and h[-1].status.terminal for h in self.checks.values())

    @property
    def errors(self) -> list[DataError]:
        return [r.error for h in self.checks.values() for r in h if r.error is not None]

    @property
    def warnings(self) -> list[str]:
        return [r.warning for h in self.checks.values() for r in h if r.warning is not None]

    def field(self, name: str) -> Field | None:
        return next((f for f in self.fields if f.name == name), None)

    def last_result(self, check_name: str) -> CheckResult | None:
        history = self.checks.get(check_name)
        return history[-1] if history else None

    # ------------------------------------------------------------------
    # Sink
    # ------------------------------------------------------------------

    def _patch(self, patch: RowPatch) -> Flow:
        if self.terminated:
            return Flow.HALT
        flow = self._update(self.id, patch)
        if flow is Flow.HALT:
            self.terminate()
        return flow

    def emitter(self, check_name: str) -> Emit:
        """Build the emit sink for one check of this row."""

        def emit(result: CheckResult) -> Flow:
            if self.terminated:
                return Flow.HALT
            history = self.checks.setdefault(check_name, [])
            if history and history[-1].status.terminal:
                logger.debug(
                    "Row %s: ignoring %s result after %s finished",
                    self.id, result.status.value, check_name,
                )
                return Flow.HALT
            history.append(result)
            return self._patch(RowPatch(errors=self.errors, warnings=self.warnings))

        return emit

    def report_title(self, title: str) -> Flow:
        return self._patch(RowPatch(title=title))

    def terminate(self) -> None:
        """Stop this row: later patches become no-ops answered with HALT."""
        if self.terminated:
            return
        self.terminated = True
        if not self._fsm.settled:
            self._fsm.halt()
        logger.debug("Row %s terminated", self.id)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def run_check(self, check: RowCheck) -> None:
        """Run a single check and make sure it leaves a terminal result."""
        if self.terminated:
            return
        emit = self.emitter(check.name)
        await check.run(self, emit, self.context)
        last = self.last_result(check.name)
        if not self.terminated and (last is None or not last.status.terminal):
            emit(CheckResult(
                CheckStatus.FAILED,
                error=DataError(f"{check.name} finished without a result", "UnhandledError"),
            ))

    def _skip_remaining(self) -> None:
        for check in self._checks:
            if self.terminated:
                return
            self.emitter(check.name)(CheckResult(
                CheckStatus.SKIPPED,
                details=f"Skipping {check.name}: row data could not be read",
            ))

    def _finish(self, state: RowState) -> None:
        if self.terminated:
            return
        if state is RowState.VALID:
            self._fsm.succeed()
        else:
            self._fsm.fail()
        self._patch(RowPatch(status=state, errors=self.errors, warnings=self.warnings))

    async def run_all_checks(self) -> None:
        """Run the read step, then every registered check in order.

        The row ends valid iff no check's last result is failed. Any
        unexpected exception ends the row in error with an
        ``UnhandledError``.
        """
        if self.terminated or self._fsm.current_state.value != "pending":
            return
        self._fsm.begin()

        try:
            await self.run_check(self._read_check)
            if self.last_result(self._read_check.name).status is CheckStatus.FAILED:
                self._skip_remaining()
            else:
                for check in self._checks:
                    if self.terminated:
                        return
                    await self.run_check(check)

            failed = any(
                h and h[-1].status is CheckStatus.FAILED for h in self.checks.values()
            )
            self._finish(RowState.ERROR if failed else RowState.VALID)
        except Exception as exc:
            logger.exception("Row %s: unexpected error during checks", self.id)
            error = DataError(str(exc) or "Unknown error during parsing", "UnhandledError")
            if self.terminated:
                return
            if not self._fsm.settled:
                self._fsm.fail()
            self._patch(RowPatch(
                status=RowState.ERROR,
                errors=[*self.errors, error],
                warnings=self.warnings,
            ))
            self.terminate()
