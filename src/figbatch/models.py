"""Data models and enums for the figbatch validation and upload pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class CheckStatus(str, Enum):
    """Status of a single entry in a check's result history."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        """True for statuses that end a check's reporting for a row."""
        return self in (CheckStatus.SUCCESS, CheckStatus.SKIPPED, CheckStatus.FAILED)


class RowState(str, Enum):
    """Externally visible status of a spreadsheet row."""

    PARSING = "parsing"
    VALID = "valid"
    ERROR = "error"


class AggregateStatus(str, Enum):
    """Status of a cross-row aggregate check."""

    CHECKING = "checking"
    VALID = "valid"
    ERROR = "error"


class Flow(str, Enum):
    """Answer returned by an emit sink: keep going or stop this row now."""

    CONTINUE = "continue"
    HALT = "halt"


class UploadStatus(str, Enum):
    """Lifecycle of one record during an upload run."""

    PENDING = "pending"
    UPLOADING = "uploading"
    CREATED = "created"
    COMPLETED = "completed"
    ERROR = "error"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class DataError(Exception):
    """A validation problem attached to a row.

    ``kind`` is a classification tag (``InvalidInputData``,
    ``QuotaExceededError``, ...) used for reporting and filtering, never
    for control flow.
    """

    def __init__(self, message: str, kind: str = "DataError") -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataError):
            return NotImplemented
        return self.message == other.message and self.kind == other.kind

    def __hash__(self) -> int:
        return hash((self.message, self.kind))

    def __repr__(self) -> str:
        return f"DataError({self.message!r}, kind={self.kind!r})"


@dataclass(frozen=True)
class CheckResult:
    """One entry in a check's append-only result history."""

    status: CheckStatus
    details: str | None = None
    error: DataError | None = None
    warning: str | None = None


@dataclass
class RowStatus:
    """The registry's view of one row: status plus collected messages."""

    id: str
    row_number: int
    status: RowState = RowState.PARSING
    title: str | None = None
    errors: list[DataError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class RowPatch:
    """Partial update forwarded from a row task to its registry.

    ``None`` means "leave unchanged".
    """

    status: RowState | None = None
    title: str | None = None
    errors: list[DataError] | None = None
    warnings: list[str] | None = None


@dataclass
class RowScratch:
    """Per-row private scratch state.

    Keys:
        quota_used: bytes of referenced files; written by the file
            reference check of the owning row, read by the quota
            aggregate check after every row has finished.
    """

    quota_used: int = 0


@dataclass
class FieldValidations:
    """Length constraints declared on a custom field."""

    min_length: int | None = None
    max_length: int | None = None


@dataclass
class Field:
    """Descriptor driving how a column is read and validated.

    ``field_type`` is one of the repository custom field types
    (``text``, ``textarea``, ``dropdown``, ``url``, ``email``, ``date``,
    ``dropdown_large_list``) or the internal ``file`` / ``JSON`` types.
    """

    name: str
    field_type: str = "text"
    is_mandatory: bool = False
    id: int | None = None
    options: list[str] | None = None
    is_array: bool = False
    schema: type | None = None
    validations: FieldValidations | None = None


@dataclass(frozen=True)
class UploadFileStatus:
    """Immutable progress snapshot for one file of an upload run."""

    file_index: int
    total_files: int
    name: str
    part_number: int = 0
    part_count: int = 0
    remote_status: str | None = None
    content_hash: str | None = None
    error: str | None = None


@dataclass
class UploadRowState:
    """Upload progress and outcome of one record."""

    id: str
    row_number: int
    title: str | None = None
    status: UploadStatus = UploadStatus.PENDING
    error: str | None = None
    file_progress: UploadFileStatus | None = None
    result: dict[str, Any] | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
