"""Row validation: row tasks, check units, aggregate checks and the registry."""

from figbatch.validation.aggregate import AggregateCheck, QuotaCheck, TitlesAreUnique
from figbatch.validation.checks import ROW_CHECKS, RowCheck, ValidationContext
from figbatch.validation.duplicates import (
    DuplicateReview,
    DuplicatesNotAcknowledgedError,
    TitleMatch,
)
from figbatch.validation.registry import RowRegistry
from figbatch.validation.row import RowTask

__all__ = [
    "ROW_CHECKS",
    "AggregateCheck",
    "DuplicateReview",
    "DuplicatesNotAcknowledgedError",
    "QuotaCheck",
    "RowCheck",
    "RowRegistry",
    "RowTask",
    "TitleMatch",
    "TitlesAreUnique",
    "ValidationContext",
]
