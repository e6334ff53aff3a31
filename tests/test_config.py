"""Tests for configuration loading and API token lookup."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from figbatch.config import (
    RepositoryConfig,
    ValidationConfig,
    get_api_token,
    load_config,
)


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        validation, repository = load_config(tmp_path / "absent.json")
        assert validation == ValidationConfig()
        assert repository == RepositoryConfig()
        assert validation.max_error_count == 20
        assert validation.max_warning_count == 20

    def test_known_keys_override_unknown_ignored(self, tmp_path):
        path = tmp_path / "figbatch.json"
        path.write_text(json.dumps({
            "validation": {"max_keyword_count": 5, "bogus": 1},
            "repository": {"group_id": 42, "max_concurrent_rows": 3},
        }))
        validation, repository = load_config(path)
        assert validation.max_keyword_count == 5
        assert validation.min_keyword_count == 1
        assert repository.group_id == 42
        assert repository.max_concurrent_rows == 3


class TestApiToken:
    def test_keyring_first(self, monkeypatch):
        monkeypatch.setenv("FIGBATCH_API_TOKEN", "from-env")
        with patch("figbatch.config.keyring.get_password", return_value="from-keyring"):
            assert get_api_token() == "from-keyring"

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("FIGBATCH_API_TOKEN", "from-env")
        with patch("figbatch.config.keyring.get_password", return_value=None):
            assert get_api_token() == "from-env"

    def test_missing_token(self, monkeypatch):
        monkeypatch.delenv("FIGBATCH_API_TOKEN", raising=False)
        with patch("figbatch.config.keyring.get_password", return_value=None):
            with pytest.raises(RuntimeError, match="set-token"):
                get_api_token()
