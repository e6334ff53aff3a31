"""Configuration loading for validation thresholds and repository access."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import keyring

from figbatch.constants import (
    DEFAULT_API_BASE,
    DEFAULT_MAX_CATEGORY_COUNT,
    DEFAULT_MAX_ERROR_COUNT,
    DEFAULT_MAX_KEYWORD_COUNT,
    DEFAULT_MAX_WARNING_COUNT,
    DEFAULT_MIN_CATEGORY_COUNT,
    DEFAULT_MIN_KEYWORD_COUNT,
)

SERVICE_NAME = "figbatch"
KEY_NAME = "api_token"
TOKEN_ENV_VAR = "FIGBATCH_API_TOKEN"
DEFAULT_CONFIG_PATH = Path("config/figbatch.json")


def get_api_token() -> str:
    """Get the repository API token: system keyring first, then env var fallback.

    Raises:
        RuntimeError: If no token is found anywhere, with setup instructions.
    """
    token = keyring.get_password(SERVICE_NAME, KEY_NAME)
    if token:
        return token

    token = os.environ.get(TOKEN_ENV_VAR)
    if token:
        return token

    raise RuntimeError(
        "Repository API token not found.\n"
        "Set it with: figbatch config set-token YOUR_TOKEN\n"
        f"Or: export {TOKEN_ENV_VAR}=your-token"
    )


@dataclass
class ValidationConfig:
    """Thresholds and bounds consumed by the row checks and the registry.

    A bound set to ``None`` is reported by the relevant check as a
    ``MissingContextError`` rather than silently ignored.
    """

    max_error_count: int = DEFAULT_MAX_ERROR_COUNT
    max_warning_count: int = DEFAULT_MAX_WARNING_COUNT
    min_keyword_count: int | None = DEFAULT_MIN_KEYWORD_COUNT
    max_keyword_count: int | None = DEFAULT_MAX_KEYWORD_COUNT
    min_category_count: int | None = DEFAULT_MIN_CATEGORY_COUNT
    max_category_count: int | None = DEFAULT_MAX_CATEGORY_COUNT
    near_duplicate_threshold: float = 95.0


@dataclass
class RepositoryConfig:
    """Remote repository connection and upload settings."""

    api_base: str = DEFAULT_API_BASE
    group_id: int | None = None
    timeout_seconds: float = 60.0
    max_concurrent_rows: int = 1
    page_size: int = 100


def _pick(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    """Keep only the keys of *data* that are fields of dataclass *cls*."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def load_config(
    config_path: Path | None = None,
) -> tuple[ValidationConfig, RepositoryConfig]:
    """Load validation and repository configuration from JSON.

    The file may hold ``validation`` and ``repository`` objects; unknown
    keys are ignored and missing keys fall back to defaults. A missing
    file yields pure defaults.

    Args:
        config_path: Optional explicit path; defaults to ``config/figbatch.json``.

    Returns:
        Tuple of (ValidationConfig, RepositoryConfig).
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    data: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)

    validation = ValidationConfig(**_pick(ValidationConfig, data.get("validation", {})))
    repository = RepositoryConfig(**_pick(RepositoryConfig, data.get("repository", {})))
    return validation, repository
