"""Tests for building record-creation payloads."""

from __future__ import annotations

import pytest

from figbatch.upload.payload import PayloadError, build_article_payload, prepare_upload_data
from figbatch.validation.checks.base import ValidationContext
from figbatch.validation.registry import RowRegistry


def _data(**overrides):
    data = {
        "title": "Soil samples 2023",
        "description": "Samples from plot A",
        "authors": [{"name": "Ada Lovelace"}],
        "categories": ["Biology"],
        "keywords": ["soil"],
        "license": "CC BY 4.0",
        "item_type": "dataset",
        "files": ["data.csv"],
        "funding": None,
        "references": None,
        "related_materials": None,
        "Collection date": "2023-05-01",
        "Short code": None,
    }
    data.update(overrides)
    return data


class TestBuildArticlePayload:
    def test_maps_identifiers(self, fields, enumerations):
        categories, licenses, item_types = enumerations
        payload = build_article_payload(
            _data(), fields, categories, licenses, item_types, group_id=42
        )
        assert payload["categories_by_source_id"] == ["31"]
        assert payload["license"] == 1
        assert payload["defined_type"] == "dataset"
        assert payload["group_id"] == 42
        assert payload["funding_list"] == []
        assert payload["custom_fields_list"] == [
            {"name": "Collection date", "value": "2023-05-01"}
        ]
        assert "files" not in payload

    def test_unknown_category(self, fields, enumerations):
        categories, licenses, item_types = enumerations
        with pytest.raises(PayloadError, match="Physics"):
            build_article_payload(
                _data(categories=["Physics"]), fields, categories, licenses, item_types
            )

    def test_unknown_license(self, fields, enumerations):
        categories, licenses, _ = enumerations
        with pytest.raises(PayloadError, match="GPL"):
            build_article_payload(_data(license="GPL"), fields, categories, licenses)

    def test_group_omitted_when_unset(self, fields, enumerations):
        categories, licenses, _ = enumerations
        payload = build_article_payload(_data(), fields, categories, licenses)
        assert "group_id" not in payload


class TestPrepareUploadData:
    async def test_requires_valid_registry(self, fields, enumerations):
        categories, licenses, _ = enumerations
        registry = RowRegistry(fields, ValidationContext())
        registry.load(["title"], [["A"]])
        with pytest.raises(PayloadError):
            prepare_upload_data(registry, categories, licenses)

    async def test_prepares_rows(self, fields, root_dir, valid_cells, enumerations):
        categories, licenses, item_types = enumerations
        registry = RowRegistry(fields, ValidationContext(root_dir=root_dir), quota_remaining=1000)
        registry.load(list(valid_cells), [list(valid_cells.values())])
        await registry.check()

        [row] = prepare_upload_data(registry, categories, licenses, item_types, group_id=42)
        assert row.id == "upload1-0"
        assert row.title == "Soil samples 2023"
        assert row.files == ["data.csv"]
        assert row.payload["keywords"] == ["soil", "samples"]
