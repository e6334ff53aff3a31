"""Turn validated row data into record-creation payloads."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from figbatch.models import Field, RowState
from figbatch.validation.registry import RowRegistry

logger = logging.getLogger(__name__)

# Fields sent as top-level payload keys rather than in custom_fields_list.
_BUILTIN_FIELDS = frozenset({
    "categories", "license", "item_type", "title", "description", "authors",
    "keywords", "funding", "references", "related_materials", "files",
})


class PayloadError(Exception):
    """Raised when row data cannot be mapped onto repository identifiers."""


@dataclass
class UploadRowData:
    """What the record orchestrator needs for one row."""

    id: str
    row_number: int
    title: str | None
    payload: dict[str, Any]
    files: list[str] = field(default_factory=list)


def _custom_value(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def build_article_payload(
    data: Mapping[str, Any],
    fields: Sequence[Field],
    categories: Iterable[Mapping[str, Any]],
    licenses: Iterable[Mapping[str, Any]],
    item_types: Iterable[Mapping[str, Any]] = (),
    group_id: int | None = None,
) -> dict[str, Any]:
    """Build the ``POST account/articles`` body for one validated row.

    Raises:
        PayloadError: If a category title or license name is unknown.
    """
    source_ids = {c["title"]: c.get("source_id", c.get("id")) for c in categories}
    license_values = {lic["name"]: lic["value"] for lic in licenses}
    type_ids = {t["name"]: t.get("string_id", t["name"]) for t in item_types}

    category_titles = data.get("categories") or []
    unknown = [t for t in category_titles if t not in source_ids]
    if unknown:
        raise PayloadError(f"Unknown categories: {', '.join(unknown)}")

    license_name = data.get("license")
    if license_name is not None and license_name not in license_values:
        raise PayloadError(f"Unknown license: {license_name}")

    custom_fields_list = [
        {"name": f.name, "value": _custom_value(data[f.name])}
        for f in fields
        if f.name not in _BUILTIN_FIELDS
        and f.field_type != "file"
        and data.get(f.name) not in (None, "", [])
    ]

    item_type = data.get("item_type")
    payload: dict[str, Any] = {
        "title": data.get("title"),
        "description": data.get("description"),
        "keywords": data.get("keywords") or [],
        "references": data.get("references") or [],
        "related_materials": data.get("related_materials") or [],
        "categories_by_source_id": [source_ids[t] for t in category_titles],
        "authors": data.get("authors") or [],
        "custom_fields_list": custom_fields_list,
        "defined_type": type_ids.get(item_type, item_type),
        "funding_list": data.get("funding") or [],
        "license": license_values.get(license_name),
        "group_id": group_id,
    }
    return {k: v for k, v in payload.items() if v is not None}


def prepare_upload_data(
    registry: RowRegistry,
    categories: Iterable[Mapping[str, Any]],
    licenses: Iterable[Mapping[str, Any]],
    item_types: Iterable[Mapping[str, Any]] = (),
    group_id: int | None = None,
) -> list[UploadRowData]:
    """Build upload data for every row of a fully valid registry.

    Raises:
        PayloadError: If the registry is not valid or a row cannot be mapped.
    """
    if not registry.valid:
        raise PayloadError("Every row and batch check must be valid before upload")

    categories = list(categories)
    licenses = list(licenses)
    item_types = list(item_types)
    prepared = []
    for status in registry.rows:
        task = registry.get_task(status.id)
        if task is None or task.data is None or status.status is not RowState.VALID:
            raise PayloadError(f"Row {status.row_number} has no validated data")
        try:
            payload = build_article_payload(
                task.data, registry.fields, categories, licenses, item_types, group_id
            )
        except PayloadError as exc:
            raise PayloadError(f"Row {status.row_number}: {exc}") from exc
        prepared.append(UploadRowData(
            id=status.id,
            row_number=status.row_number,
            title=status.title,
            payload=payload,
            files=list(task.data.get("files") or []),
        ))
    logger.info("Prepared %d records for upload", len(prepared))
    return prepared
