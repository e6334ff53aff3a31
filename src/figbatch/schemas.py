"""Pydantic schemas for JSON-typed spreadsheet columns.

Models allow extra keys so the reader can report them as warnings
instead of rejecting the row.
"""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, StrictBool, StrictInt

BooleanIsh = Union[StrictBool, Literal[0, 1]]

Relation = Literal[
    "IsCitedBy", "Cites", "IsSupplementTo", "IsSupplementedBy", "IsContinuedBy",
    "Continues", "Describes", "IsDescribedBy", "HasMetadata", "IsMetadataFor",
    "HasVersion", "IsVersionOf", "IsNewVersionOf", "IsPreviousVersionOf",
    "IsPartOf", "HasPart", "IsPublishedIn", "IsReferencedBy", "References",
    "IsDocumentedBy", "Documents", "IsCompiledBy", "Compiles", "IsVariantFormOf",
    "IsOriginalFormOf", "IsIdenticalTo", "IsReviewedBy", "Reviews",
    "IsDerivedFrom", "IsSourceOf", "IsRequiredBy", "Requires", "IsObsoletedBy",
    "Obsoletes",
]

IdentifierType = Literal[
    "ARK", "arXiv", "bibcode", "DOI", "EAN13", "EISSN", "Handle", "IGSN",
    "ISBN", "ISSN", "ISTC", "LISSN", "LSID", "PMID", "PURL", "UPC",
    "URL", "URN", "w3id",
]


class _JsonCell(BaseModel):
    model_config = ConfigDict(extra="allow")


class AuthorDetails(_JsonCell):
    """An author entry; either an existing account id or name details."""

    id: StrictInt | None = None
    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    orcid_id: str | None = None


class RelatedMaterial(_JsonCell):
    """A related material link with a DataCite relation type."""

    id: StrictInt | None = None
    identifier: str | None = None
    title: str | None = None
    relation: Relation | None = None
    identifier_type: IdentifierType | None = None
    is_linkout: BooleanIsh | None = None
    link: str | None = None


class FundingCreate(_JsonCell):
    """A funding entry, referencing an existing grant id or a free title."""

    id: StrictInt | None = None
    title: str | None = None


def unrecognized_keys(model: BaseModel) -> list[str]:
    """Return the keys that were accepted as extras on a validated model."""
    return sorted((model.model_extra or {}).keys())
