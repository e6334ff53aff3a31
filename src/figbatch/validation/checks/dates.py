"""Calendar date format for date-typed fields."""

from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import TYPE_CHECKING, Any

from figbatch.models import CheckResult, CheckStatus, DataError, Flow
from figbatch.validation.checks.base import Emit, RowCheck, ValidationContext

if TYPE_CHECKING:
    from figbatch.validation.row import RowTask

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def normalize_date(value: Any) -> str:
    """Return *value* as ``YYYY-MM-DD``.

    Accepts date objects, datetimes at exactly midnight, and strings
    already in ``YYYY-MM-DD`` form naming a real calendar day.

    Raises:
        ValueError: For anything else.
    """
    if isinstance(value, datetime):
        if value.time() != time(0):
            raise ValueError(f"{value.isoformat()} has a time of day; expected a date")
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    if not _ISO_DATE.fullmatch(text):
        raise ValueError(f'"{text}" is not a date in YYYY-MM-DD format')
    try:
        date.fromisoformat(text)
    except ValueError:
        raise ValueError(f'"{text}" is not a valid calendar date') from None
    return text


class DateFormatCheck(RowCheck):
    """Every non-empty ``date`` field must hold a ``YYYY-MM-DD`` date.

    Date cell objects are normalized in place.
    """

    name = "Check Dates"

    async def run(self, row: RowTask, emit: Emit, context: ValidationContext) -> None:
        if emit(CheckResult(CheckStatus.IN_PROGRESS)) is Flow.HALT:
            return
        if row.data is None:
            emit(CheckResult(CheckStatus.SKIPPED, details="No row data to check"))
            return

        all_ok = True
        for field in row.fields:
            if field.field_type != "date":
                continue
            value = row.data.get(field.name)
            if value is None or value == "":
                continue
            try:
                normalized = normalize_date(value)
            except ValueError as exc:
                all_ok = False
                result = CheckResult(
                    CheckStatus.IN_PROGRESS,
                    error=DataError(f"{field.name}: {exc}", "InvalidDateError"),
                )
            else:
                if normalized == value:
                    continue
                row.data[field.name] = normalized
                result = CheckResult(
                    CheckStatus.IN_PROGRESS,
                    details=f"Normalized {field.name} to {normalized}",
                )
            if emit(result) is Flow.HALT:
                return

        if all_ok:
            emit(CheckResult(CheckStatus.SUCCESS, details="All dates are valid"))
        else:
            emit(CheckResult(CheckStatus.FAILED, details="One or more dates are invalid"))
