"""Coerce select-field values onto the field's option list."""

from __future__ import annotations

from typing import TYPE_CHECKING

from figbatch.fuzzy import fuzzy_coerce, string_to_fuzzy_regex
from figbatch.models import CheckResult, CheckStatus, DataError, Flow
from figbatch.validation.checks.base import Emit, RowCheck, ValidationContext

if TYPE_CHECKING:
    from figbatch.validation.row import RowTask


class SelectValuesCheck(RowCheck):
    """Every value of a field with options must loosely match one option.

    A loose match ("cc-by 4.0." for "CC BY 4.0") is written back into
    ``row.data`` and reported as an in-progress notice.
    """

    name = "Check Select Values"

    async def run(self, row: RowTask, emit: Emit, context: ValidationContext) -> None:
        if emit(CheckResult(CheckStatus.IN_PROGRESS)) is Flow.HALT:
            return
        if row.data is None:
            emit(CheckResult(CheckStatus.SKIPPED, details="No row data to check"))
            return

        all_ok = True
        for key, value in list(row.data.items()):
            field = row.field(key)
            if field is None or not field.options or value is None:
                continue

            patterns = [string_to_fuzzy_regex(o) for o in field.options]
            values = value if isinstance(value, list) else [value]
            for index, item in enumerate(values):
                raw = str(item)
                coerced = fuzzy_coerce(raw, field.options, compiled_regexes=patterns)
                if coerced not in field.options:
                    all_ok = False
                    result = CheckResult(
                        CheckStatus.IN_PROGRESS,
                        error=DataError(
                            f"{raw} is not a valid option for {key}", "InvalidOptionError"
                        ),
                    )
                elif coerced != item:
                    if isinstance(value, list):
                        value[index] = coerced
                    else:
                        row.data[key] = coerced
                    result = CheckResult(
                        CheckStatus.IN_PROGRESS, details=f'Coerced "{raw}" to "{coerced}"'
                    )
                else:
                    continue
                if emit(result) is Flow.HALT:
                    return

        if all_ok:
            emit(CheckResult(
                CheckStatus.SUCCESS, details="All select fields have legitimate values"
            ))
        else:
            emit(CheckResult(
                CheckStatus.FAILED, details="One or more select fields have invalid values"
            ))
