"""Row check units, in registration order.

``ReadDataCheck`` always runs first and is owned by ``RowTask``;
``ROW_CHECKS`` lists the checks that follow it.
"""

from figbatch.validation.checks.base import Emit, RowCheck, ValidationContext
from figbatch.validation.checks.counts import CategoryCountCheck, KeywordCountCheck
from figbatch.validation.checks.custom_fields import CustomFieldValidationCheck
from figbatch.validation.checks.dates import DateFormatCheck, normalize_date
from figbatch.validation.checks.files import FileRefCheck
from figbatch.validation.checks.read_data import ReadDataCheck, expand_row
from figbatch.validation.checks.select_values import SelectValuesCheck

ROW_CHECKS: tuple[RowCheck, ...] = (
    SelectValuesCheck(),
    CustomFieldValidationCheck(),
    KeywordCountCheck(),
    CategoryCountCheck(),
    DateFormatCheck(),
    FileRefCheck(),
)

__all__ = [
    "ROW_CHECKS",
    "CategoryCountCheck",
    "CustomFieldValidationCheck",
    "DateFormatCheck",
    "Emit",
    "FileRefCheck",
    "KeywordCountCheck",
    "ReadDataCheck",
    "RowCheck",
    "SelectValuesCheck",
    "ValidationContext",
    "expand_row",
    "normalize_date",
]
