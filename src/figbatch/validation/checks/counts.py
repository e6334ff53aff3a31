"""List length bounds for keywords and categories."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from figbatch.models import CheckResult, CheckStatus, DataError, Flow
from figbatch.validation.checks.base import Emit, RowCheck, ValidationContext

if TYPE_CHECKING:
    from figbatch.validation.row import RowTask


class _ListCountCheck(RowCheck):
    """Checks ``len(row.data[field_name])`` against config bounds."""

    field_name: ClassVar[str]
    error_kind: ClassVar[str]
    min_setting: ClassVar[str]
    max_setting: ClassVar[str]

    async def run(self, row: RowTask, emit: Emit, context: ValidationContext) -> None:
        if emit(CheckResult(CheckStatus.IN_PROGRESS)) is Flow.HALT:
            return

        value = (row.data or {}).get(self.field_name)
        if value is None:
            value = []
        if not isinstance(value, list):
            emit(CheckResult(
                CheckStatus.FAILED,
                error=DataError(f"{self.field_name} must be a list", "InvalidValueError"),
            ))
            return

        low = getattr(context.config, self.min_setting)
        high = getattr(context.config, self.max_setting)
        if low is None or high is None:
            missing = self.min_setting if low is None else self.max_setting
            emit(CheckResult(
                CheckStatus.FAILED,
                error=DataError(f"Missing context value: {missing}", "MissingContextError"),
            ))
            return

        if len(value) > high:
            message = f"Too many {self.field_name} provided. Maximum allowed: {high}"
        elif len(value) < low:
            message = f"Not enough {self.field_name} provided. Minimum required: {low}"
        else:
            emit(CheckResult(
                CheckStatus.SUCCESS,
                details=f"{self.field_name.capitalize()} count check completed",
            ))
            return
        emit(CheckResult(CheckStatus.FAILED, error=DataError(message, self.error_kind)))


class KeywordCountCheck(_ListCountCheck):
    name = "Check Keyword Count"
    field_name = "keywords"
    error_kind = "KeywordCountError"
    min_setting = "min_keyword_count"
    max_setting = "max_keyword_count"


class CategoryCountCheck(_ListCountCheck):
    name = "Check Category Count"
    field_name = "categories"
    error_kind = "CategoryCountError"
    min_setting = "min_category_count"
    max_setting = "max_category_count"
