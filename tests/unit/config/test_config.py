"""Unit tests for config.py — AppConfig and load_config()."""

import os
from unittest.mock import patch

import pytest

from graph_drive.config import (
    DEFAULT_SIMPLE_UPLOAD_LIMIT,
    DEFAULT_UPLOAD_CHUNK_SIZE,
    AppConfig,
    load_config,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Minimal set of required environment variables for load_config()
_REQUIRED_ENV = {
    "GD_CLIENT_ID": "test-client-id",
    "GD_CLIENT_SECRET": "test-secret",
    "GD_TENANT_ID": "test-tenant-id",
    "GD_DRIVE_USER": "user@contoso.onmicrosoft.com",
}


def _config(**overrides: object) -> AppConfig:
    values: dict = {
        "client_id": "cid",
        "client_secret": "cs",
        "tenant_id": "tid",
        "drive_user": "u",
    }
    values.update(overrides)
    return AppConfig(**values)


# ---------------------------------------------------------------------------
# AppConfig tests
# ---------------------------------------------------------------------------


class TestAppConfig:
    def test_defaults(self) -> None:
        config = _config()
        assert config.account_type == "organizational"
        assert config.simple_upload_limit == DEFAULT_SIMPLE_UPLOAD_LIMIT
        assert config.upload_chunk_size == DEFAULT_UPLOAD_CHUNK_SIZE
        assert config.page_size is None

    def test_unknown_account_type_rejected(self) -> None:
        with pytest.raises(ValueError, match="account type"):
            _config(account_type="guest")

    def test_chunk_size_must_be_multiple_of_320_kib(self) -> None:
        with pytest.raises(ValueError, match="multiple"):
            _config(upload_chunk_size=1000)

    def test_chunk_size_multiple_accepted(self) -> None:
        assert _config(upload_chunk_size=327680 * 2).upload_chunk_size == 655360


# ---------------------------------------------------------------------------
# load_config tests
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_reads_required_values(self) -> None:
        with patch.dict(os.environ, _REQUIRED_ENV, clear=True):
            config = load_config()
        assert config.client_id == "test-client-id"
        assert config.drive_user == "user@contoso.onmicrosoft.com"
        assert config.page_size is None

    def test_reads_optional_overrides(self) -> None:
        env = {
            **_REQUIRED_ENV,
            "GD_ACCOUNT_TYPE": "Personal",
            "GD_SIMPLE_UPLOAD_LIMIT": "1024",
            "GD_UPLOAD_CHUNK_SIZE": "655360",
            "GD_PAGE_SIZE": "200",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_config()
        assert config.account_type == "personal"
        assert config.simple_upload_limit == 1024
        assert config.upload_chunk_size == 655360
        assert config.page_size == 200

    def test_raises_key_error_when_required_value_missing(self) -> None:
        env = {k: v for k, v in _REQUIRED_ENV.items() if k != "GD_DRIVE_USER"}
        with patch.dict(os.environ, env, clear=True), pytest.raises(KeyError):
            load_config()
