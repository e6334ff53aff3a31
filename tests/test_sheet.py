"""Tests for spreadsheet reading and header mapping."""

from __future__ import annotations

import pandas as pd
import pytest

from figbatch.sheet import SheetError, build_column_map, read_sheet, to_field_name


class TestReadSheet:
    """CSV and workbook input."""

    def test_csv(self, tmp_path):
        path = tmp_path / "records.csv"
        path.write_text("title,description\nA,first\nB,\n\n")
        sheet = read_sheet(path)
        assert sheet.header == ["title", "description"]
        assert sheet.rows == [["A", "first"], ["B"]]

    def test_xlsx(self, tmp_path):
        path = tmp_path / "records.xlsx"
        pd.DataFrame([["title", "keywords"], ["A", "x; y"], ["B", None]]).to_excel(
            path, header=False, index=False
        )
        sheet = read_sheet(path)
        assert sheet.header == ["title", "keywords"]
        assert sheet.rows == [["A", "x; y"], ["B"]]

    def test_empty_csv_has_no_header(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text(",,\n")
        with pytest.raises(SheetError, match="No headers"):
            read_sheet(path)

    def test_corrupt_workbook(self, tmp_path):
        path = tmp_path / "bad.xlsx"
        path.write_bytes(b"not a workbook")
        with pytest.raises(SheetError, match="Could not read spreadsheet bad.xlsx"):
            read_sheet(path)

    def test_legacy_xls_is_rejected(self, tmp_path):
        path = tmp_path / "old.xls"
        path.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64)
        with pytest.raises(SheetError, match="Could not read spreadsheet old.xls"):
            read_sheet(path)


class TestColumnMap:
    """Header-to-field mapping."""

    def test_exact_and_fuzzy_headers(self, fields):
        names = [f.name for f in fields]
        assert to_field_name("title", names) == "title"
        assert to_field_name("Item Type", names) == "item_type"
        assert to_field_name("Related-Materials", names) == "related_materials"
        assert to_field_name("Colour", names) is None

    def test_missing_mandatory_columns(self, fields):
        with pytest.raises(SheetError) as exc_info:
            build_column_map(["title", "description"], fields)
        message = str(exc_info.value)
        assert message.startswith("Missing mandatory columns:")
        assert "authors" in message
        assert "license" in message

    def test_dropped_headers(self, fields, valid_cells):
        header = [*valid_cells, "Notes"]
        column_map, dropped = build_column_map(header, fields)
        assert dropped == ["Notes"]
        assert column_map[-1] == ("Notes", None)
