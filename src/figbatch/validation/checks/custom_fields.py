"""Length validations declared on repository custom fields."""

from __future__ import annotations

from typing import TYPE_CHECKING

from figbatch.models import CheckResult, CheckStatus, DataError, Flow
from figbatch.validation.checks.base import Emit, RowCheck, ValidationContext

if TYPE_CHECKING:
    from figbatch.validation.row import RowTask


class CustomFieldValidationCheck(RowCheck):
    """Apply ``min_length``/``max_length`` to fields that declare them.

    Lengths are characters for strings and items for lists. Optional
    empty fields are skipped. The check stops at the first violation.
    """

    name = "Check Custom Field Validations"

    async def run(self, row: RowTask, emit: Emit, context: ValidationContext) -> None:
        if emit(CheckResult(CheckStatus.IN_PROGRESS)) is Flow.HALT:
            return
        if row.data is None:
            emit(CheckResult(CheckStatus.SKIPPED, details="No row data to check"))
            return

        for field in row.fields:
            rules = field.validations
            if rules is None or (rules.min_length is None and rules.max_length is None):
                continue
            value = row.data.get(field.name)
            if not field.is_mandatory and value in (None, "", []):
                continue
            if not isinstance(value, (str, list)):
                emit(CheckResult(
                    CheckStatus.FAILED,
                    error=DataError(
                        f"Invalid type for {field.name}: expected string or list, "
                        f"got {type(value).__name__}",
                        "InvalidTypeError",
                    ),
                ))
                return

            if rules.min_length is not None and len(value) < rules.min_length:
                message = (
                    f"Field {field.name} is too short. "
                    f"Minimum length: {rules.min_length}, actual: {len(value)}"
                )
            elif rules.max_length is not None and len(value) > rules.max_length:
                message = (
                    f"Field {field.name} is too long. "
                    f"Maximum length: {rules.max_length}, actual: {len(value)}"
                )
            else:
                continue
            emit(CheckResult(
                CheckStatus.FAILED,
                error=DataError(message, "CustomFieldValidationError"),
            ))
            return

        emit(CheckResult(CheckStatus.SUCCESS, details="Custom field validations passed"))
