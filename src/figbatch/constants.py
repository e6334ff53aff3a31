"""Project-wide named constants."""

# Files are hashed in 1 MiB reads so large files never sit in memory whole.
HASH_CHUNK_SIZE: int = 1024 * 1024

DEFAULT_API_BASE: str = "https://api.figshare.com/v2"

DEFAULT_MAX_ERROR_COUNT: int = 20
DEFAULT_MAX_WARNING_COUNT: int = 20
DEFAULT_MIN_KEYWORD_COUNT: int = 1
DEFAULT_MAX_KEYWORD_COUNT: int = 100
DEFAULT_MIN_CATEGORY_COUNT: int = 1
DEFAULT_MAX_CATEGORY_COUNT: int = 100

# Cell separator for array-typed text columns ("a; b; c").
ARRAY_DELIMITER: str = ";"

SUMMARY_CSV_HEADER: tuple[str, ...] = (
    "RowID",
    "Status",
    "Error",
    "Warnings",
    "Started",
    "Completed",
    "DurationSec",
)
