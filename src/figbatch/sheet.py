"""Spreadsheet reading and header-to-field mapping.

The first row of the first sheet is the header; every following row is a
positional list of cell values with trailing empty cells trimmed.
"""

from __future__ import annotations

import logging
import math
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from figbatch.fuzzy import fuzzy_coerce
from figbatch.models import Field

logger = logging.getLogger(__name__)

ColumnMap = list[tuple[str, str | None]]


class SheetError(Exception):
    """Raised when a spreadsheet cannot be turned into header + data rows."""


@dataclass
class SheetData:
    """Raw header and data rows from one sheet."""

    header: list[str]
    rows: list[list[Any]] = field(default_factory=list)


def _cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NaT:
        return None
    return value


def _trim(values: Sequence[Any]) -> list[Any]:
    cells = [_cell(v) for v in values]
    while cells and (cells[-1] is None or cells[-1] == ""):
        cells.pop()
    return cells


def read_sheet(path: Path) -> SheetData:
    """Read the first sheet of an ``.xlsx`` workbook or a ``.csv`` file.

    Raises:
        SheetError: If the file cannot be read or has no header row.
    """
    path = Path(path)
    try:
        if path.suffix.lower() == ".csv":
            df = pd.read_csv(path, header=None, dtype=object, keep_default_na=False)
        else:
            df = pd.read_excel(
                path, sheet_name=0, header=None, dtype=object, engine="openpyxl"
            )
    except pd.errors.EmptyDataError as exc:
        raise SheetError("No headers found in spreadsheet.") from exc
    except (ValueError, ImportError, OSError, zipfile.BadZipFile, InvalidFileException) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        raise SheetError(f"Could not read spreadsheet {path.name}: {exc}") from exc

    records = [_trim(row) for row in df.itertuples(index=False, name=None)]
    if not records or not records[0]:
        raise SheetError("No headers found in spreadsheet.")

    header = ["" if h is None else str(h).strip() for h in records[0]]
    rows = records[1:]
    while rows and all(c is None or c == "" for c in rows[-1]):
        rows.pop()
    logger.info("Read %d data rows with %d columns from %s", len(rows), len(header), path)
    return SheetData(header=header, rows=rows)


def to_field_name(header: str, field_names: Sequence[str]) -> str | None:
    """Map a spreadsheet header onto a field name, or ``None`` if unknown."""
    if header in field_names:
        return header
    coerced = fuzzy_coerce(header, field_names)
    return coerced if coerced in field_names else None


def build_column_map(
    header: Sequence[str], fields: Sequence[Field]
) -> tuple[ColumnMap, list[str]]:
    """Map each header cell to a field name.

    Returns:
        Tuple of (column map, dropped header names).

    Raises:
        SheetError: If any mandatory field has no column.
    """
    names = [f.name for f in fields]
    column_map: ColumnMap = [(h, to_field_name(h, names)) for h in header]

    mapped = {name for _, name in column_map if name}
    missing = [f.name for f in fields if f.is_mandatory and f.name not in mapped]
    if missing:
        raise SheetError(f"Missing mandatory columns: {', '.join(missing)}")

    dropped = [h for h, name in column_map if name is None and h]
    return column_map, dropped
