"""Tests for expanding positional spreadsheet cells into field values."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from figbatch.models import DataError
from figbatch.sheet import build_column_map
from figbatch.validation.checks.read_data import expand_row


def _expand(fields, cells: dict):
    column_map, _ = build_column_map(list(cells), fields)
    return expand_row(list(cells.values()), column_map, fields)


class TestExpandRow:
    """Cell-to-field mapping, arrays, JSON fields and mandatory values."""

    def test_valid_row(self, fields, valid_cells):
        data, warnings = _expand(fields, valid_cells)
        assert warnings == []
        assert data["title"] == "Soil samples 2023"
        assert data["categories"] == ["Biology"]
        assert data["keywords"] == ["soil", "samples"]
        assert data["files"] == ["data.csv"]
        assert data["authors"] == [{"name": "Ada Lovelace"}]
        assert data["Collection date"] == "2023-05-01"

    def test_fields_without_column_are_none(self, fields, valid_cells):
        data, _ = _expand(fields, valid_cells)
        assert data["funding"] is None
        assert data["references"] is None

    def test_array_split_drops_empty_items(self, fields, valid_cells):
        valid_cells["keywords"] = " soil ;; samples ; "
        data, _ = _expand(fields, valid_cells)
        assert data["keywords"] == ["soil", "samples"]

    def test_too_many_cells(self, fields, valid_cells):
        column_map, _ = build_column_map(list(valid_cells), fields)
        cells = [*valid_cells.values(), "extra"]
        with pytest.raises(DataError) as exc_info:
            expand_row(cells, column_map, fields)
        assert exc_info.value.kind == "InvalidInputData"

    def test_short_row_is_padded(self, fields, valid_cells):
        column_map, _ = build_column_map(list(valid_cells), fields)
        cells = list(valid_cells.values())[:-2]
        data, _ = expand_row(cells, column_map, fields)
        assert data["Short code"] is None

    @pytest.mark.parametrize("column", ["title", "description", "license", "authors"])
    def test_empty_mandatory_field(self, fields, valid_cells, column):
        valid_cells[column] = "  "
        with pytest.raises(DataError) as exc_info:
            _expand(fields, valid_cells)
        assert exc_info.value.kind == "InvalidInputData"
        assert column in exc_info.value.message

    def test_unparseable_json(self, fields, valid_cells):
        valid_cells["authors"] = "[{name: Ada}]"
        with pytest.raises(DataError, match="Cannot parse JSON"):
            _expand(fields, valid_cells)

    def test_json_failing_schema(self, fields, valid_cells):
        valid_cells["authors"] = '[{"id": "not-a-number"}]'
        with pytest.raises(DataError, match="Invalid JSON"):
            _expand(fields, valid_cells)

    def test_unrecognized_json_keys_warn(self, fields, valid_cells):
        valid_cells["authors"] = '[{"name": "Ada", "affiliation": "Analytical Society"}]'
        data, warnings = _expand(fields, valid_cells)
        assert len(warnings) == 1
        assert "Unrecognized" in warnings[0]
        assert "affiliation" in warnings[0]
        assert data["authors"] == [{"name": "Ada"}]

    def test_single_json_object_in_array_field(self, fields, valid_cells):
        valid_cells["authors"] = '{"name": "Ada"}'
        data, _ = _expand(fields, valid_cells)
        assert data["authors"] == [{"name": "Ada"}]

    def test_non_string_text_is_stringified(self, fields, valid_cells):
        valid_cells["title"] = datetime(2023, 5, 1, 12, 0)
        valid_cells["Short code"] = 1234.0
        data, _ = _expand(fields, valid_cells)
        assert data["title"] == "2023-05-01T12:00:00"
        assert data["Short code"] == "1234"

    def test_date_cells_kept_for_date_fields(self, fields, valid_cells):
        valid_cells["Collection date"] = date(2023, 5, 1)
        data, _ = _expand(fields, valid_cells)
        assert data["Collection date"] == date(2023, 5, 1)
