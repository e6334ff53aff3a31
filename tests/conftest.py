"""Shared pytest fixtures for figbatch tests.

Provides repository enumerations, the field list built from them, a
patch recorder standing in for the registry, row task factories, and a
root directory of real files under ``tmp_path``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from figbatch.config import ValidationConfig
from figbatch.fields import combine_fields
from figbatch.filesystem import RootDirectory
from figbatch.models import Field, Flow, RowPatch
from figbatch.validation.checks.base import ValidationContext
from figbatch.validation.row import RowTask

CATEGORIES = [
    {"id": 1, "title": "Biology", "source_id": "31"},
    {"id": 2, "title": "Chemistry", "source_id": "34"},
]
LICENSES = [
    {"name": "CC BY 4.0", "value": 1},
    {"name": "CC0", "value": 2},
]
ITEM_TYPES = [
    {"name": "dataset", "string_id": "dataset"},
    {"name": "figure", "string_id": "figure"},
]
CUSTOM_FIELDS = [
    {"id": 11, "name": "Collection date", "field_type": "date", "is_mandatory": False},
    {
        "id": 12,
        "name": "Short code",
        "field_type": "text",
        "is_mandatory": False,
        "settings": {"validations": {"min_length": 2, "max_length": 5}},
    },
]


class UpdateRecorder:
    """Stand-in for ``RowRegistry.update`` that records every patch."""

    def __init__(self, answer: Flow = Flow.CONTINUE) -> None:
        self.answer = answer
        self.patches: list[tuple[str, RowPatch]] = []

    def __call__(self, row_id: str, patch: RowPatch) -> Flow:
        self.patches.append((row_id, patch))
        return self.answer

    @property
    def statuses(self) -> list:
        return [p.status for _, p in self.patches if p.status is not None]


@pytest.fixture
def fields() -> list[Field]:
    """Field list for a group with a date and a length-limited custom field."""
    return combine_fields(CATEGORIES, LICENSES, ITEM_TYPES, CUSTOM_FIELDS)


@pytest.fixture
def recorder() -> UpdateRecorder:
    return UpdateRecorder()


@pytest.fixture
def root_dir(tmp_path: Path) -> RootDirectory:
    """Root directory holding ``data.csv`` (100 bytes) and ``empty.txt`` (0 bytes)."""
    (tmp_path / "data.csv").write_bytes(b"x" * 100)
    (tmp_path / "empty.txt").write_bytes(b"")
    return RootDirectory(tmp_path)


@pytest.fixture
def valid_cells() -> dict[str, Any]:
    """Header -> cell value for one fully valid row."""
    return {
        "title": "Soil samples 2023",
        "description": "Samples from plot A",
        "authors": '[{"name": "Ada Lovelace"}]',
        "categories": "Biology",
        "keywords": "soil; samples",
        "license": "CC BY 4.0",
        "item_type": "dataset",
        "files": "data.csv",
        "Collection date": "2023-05-01",
        "Short code": "AB12",
    }


@pytest.fixture
def make_task(fields: list[Field], recorder: UpdateRecorder):
    """Factory for a RowTask whose ``data`` is set directly.

    Used by check tests that skip the read step.
    """

    def _make(
        data: dict[str, Any] | None = None,
        context: ValidationContext | None = None,
        update: Any = None,
        checks: list | None = None,
    ) -> RowTask:
        task = RowTask(
            "upload1-0",
            [],
            [],
            fields,
            update or recorder,
            context=context or ValidationContext(config=ValidationConfig()),
            row_number=2,
            checks=checks,
        )
        task.data = data
        return task

    return _make


@pytest.fixture
def enumerations() -> tuple[list, list, list]:
    """(categories, licenses, item_types) as returned by the repository."""
    return CATEGORIES, LICENSES, ITEM_TYPES
