"""First step of every row: expand positional cells into field values."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from figbatch.constants import ARRAY_DELIMITER
from figbatch.models import CheckResult, CheckStatus, DataError, Field, Flow
from figbatch.schemas import unrecognized_keys
from figbatch.sheet import ColumnMap
from figbatch.validation.checks.base import Emit, RowCheck, ValidationContext

if TYPE_CHECKING:
    from figbatch.validation.row import RowTask

logger = logging.getLogger(__name__)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return isinstance(value, list) and not value


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _summarize(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def _read_json(field: Field, value: Any, warnings: list[str]) -> Any:
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as exc:
            raise DataError(
                f'Cannot parse JSON in field "{field.name}": {exc.msg}',
                "InvalidInputData",
            ) from exc
    else:
        parsed = value

    if field.schema is None:
        return parsed

    items = parsed if field.is_array and isinstance(parsed, list) else [parsed]
    validated = []
    for index, item in enumerate(items, start=1):
        try:
            model = field.schema.model_validate(item)
        except ValidationError as exc:
            raise DataError(
                f'Invalid JSON in field "{field.name}": {_summarize(exc)}',
                "InvalidInputData",
            ) from exc
        extra = unrecognized_keys(model)
        if extra:
            warnings.append(
                f'Unrecognized keys in field "{field.name}" item {index}: {", ".join(extra)}'
            )
        validated.append(model.model_dump(exclude_none=True, exclude=set(extra)))
    return validated if field.is_array else validated[0]


def _read_value(field: Field, header: str, value: Any, warnings: list[str]) -> Any:
    if _is_empty(value):
        if field.is_mandatory:
            raise DataError(
                f'Missing value for mandatory field "{field.name}" (column "{header}")',
                "InvalidInputData",
            )
        return None

    if field.field_type == "JSON":
        return _read_json(field, value, warnings)

    if field.is_array:
        raw = value if isinstance(value, list) else _text(value).split(ARRAY_DELIMITER)
        items = [s for s in (_text(v) for v in raw) if s]
        if not items and field.is_mandatory:
            raise DataError(
                f'Missing value for mandatory field "{field.name}" (column "{header}")',
                "InvalidInputData",
            )
        return items

    # Date cells stay as parsed so the date check can normalize them.
    if field.field_type == "date" and isinstance(value, (date, datetime)):
        return value
    return _text(value)


def expand_row(
    cells: Sequence[Any], column_map: ColumnMap, fields: Sequence[Field]
) -> tuple[dict[str, Any], list[str]]:
    """Map positional *cells* onto field values.

    Returns:
        Tuple of (row data keyed by field name, non-fatal warnings).

    Raises:
        DataError: ``InvalidInputData`` for an overlong row, an empty
            mandatory field, or unparseable/invalid JSON.
    """
    if len(cells) > len(column_map):
        raise DataError(
            f"Row has {len(cells)} cells but the sheet has only {len(column_map)} headers",
            "InvalidInputData",
        )

    by_name = {f.name: f for f in fields}
    data: dict[str, Any] = {}
    warnings: list[str] = []
    for index, (header, name) in enumerate(column_map):
        if name is None:
            continue
        value = cells[index] if index < len(cells) else None
        data[name] = _read_value(by_name[name], header, value, warnings)

    for f in fields:
        data.setdefault(f.name, None)
    return data, warnings


class ReadDataCheck(RowCheck):
    """Populate ``row.data``; a failure here skips every later check."""

    name = "Read data"

    async def run(self, row: RowTask, emit: Emit, context: ValidationContext) -> None:
        try:
            data, warnings = expand_row(row.cells, row.column_map, row.fields)
        except DataError as exc:
            logger.debug("Row %s: read failed: %s", row.id, exc.message)
            emit(CheckResult(CheckStatus.FAILED, error=exc))
            return

        row.data = data
        if data.get("title"):
            row.report_title(str(data["title"]))

        for warning in warnings:
            if emit(CheckResult(CheckStatus.IN_PROGRESS, warning=warning)) is Flow.HALT:
                return
        emit(CheckResult(CheckStatus.SUCCESS, details="Row data read"))
