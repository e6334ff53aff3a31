"""Field descriptor list built from repository enumerations.

The built-in record fields come first, followed by the target group's
custom fields. A custom field named ``Files`` (any case) is taken over as
the internal ``files`` column; otherwise an optional ``files`` column is
appended.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from figbatch.models import Field, FieldValidations
from figbatch.schemas import AuthorDetails, FundingCreate, RelatedMaterial

_FILES_FIELD = re.compile(r"^files$", re.IGNORECASE)


def _validations(settings: Mapping[str, Any] | None) -> FieldValidations | None:
    raw = (settings or {}).get("validations")
    if not raw:
        return None
    return FieldValidations(
        min_length=raw.get("min_length"),
        max_length=raw.get("max_length"),
    )


def custom_field_from_api(data: Mapping[str, Any]) -> Field:
    """Convert one custom field record from the repository API."""
    settings = data.get("settings") or {}
    options = settings.get("options") if isinstance(settings, Mapping) else None
    return Field(
        name=data["name"],
        field_type=data.get("field_type", "text"),
        is_mandatory=bool(data.get("is_mandatory", False)),
        id=data.get("id"),
        options=list(options) if options else None,
        validations=_validations(settings if isinstance(settings, Mapping) else None),
    )


def combine_fields(
    categories: Iterable[Mapping[str, Any]],
    licenses: Iterable[Mapping[str, Any]],
    item_types: Iterable[Mapping[str, Any]],
    custom_fields: Iterable[Mapping[str, Any]],
) -> list[Field]:
    """Build the full, ordered field list for one target group."""
    converted = [custom_field_from_api(f) for f in custom_fields]

    files_field = next((f for f in converted if _FILES_FIELD.match(f.name)), None)
    if files_field is not None:
        files_field.name = "files"
        files_field.field_type = "file"
        files_field.is_array = True
        files_field.options = None
    else:
        converted.append(Field(name="files", field_type="file", is_array=True))

    return [
        Field(
            name="categories",
            is_mandatory=True,
            is_array=True,
            options=[c["title"] for c in categories],
        ),
        Field(name="license", is_mandatory=True, options=[lic["name"] for lic in licenses]),
        Field(name="item_type", is_mandatory=True, options=[t["name"] for t in item_types]),
        Field(name="title", is_mandatory=True),
        Field(name="description", field_type="textarea", is_mandatory=True),
        Field(
            name="authors",
            field_type="JSON",
            is_mandatory=True,
            is_array=True,
            schema=AuthorDetails,
        ),
        Field(name="keywords", is_array=True),
        Field(name="funding", field_type="JSON", is_array=True, schema=FundingCreate),
        Field(name="references", is_array=True),
        Field(
            name="related_materials",
            field_type="JSON",
            is_array=True,
            schema=RelatedMaterial,
        ),
        *converted,
    ]
