"""figbatch - validate spreadsheets of research records and upload them in bulk."""

__version__ = "0.1.0"

from figbatch.models import CheckResult, CheckStatus, DataError, Field, RowState, RowStatus

__all__ = [
    "CheckResult",
    "CheckStatus",
    "DataError",
    "Field",
    "RowState",
    "RowStatus",
    "__version__",
]
