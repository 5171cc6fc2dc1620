"""
Unit tests for configuration loading and validation.
"""

import pytest

from session_vault.config import (
    DEFAULT_DATA_PATH,
    RestStoreConfig,
    S3Config,
    StoreBackend,
    VaultConfig,
)
from session_vault.store import (
    InMemorySessionStore,
    RestSessionStore,
    S3SessionStore,
    SqliteSessionStore,
    create_session_store,
)

ENV_VARS = (
    "SESSION_ACCOUNT_ID",
    "SESSION_DATA_PATH",
    "SESSION_STORE_BACKEND",
    "SESSION_SAVE_DELAY_SECONDS",
    "S3_BUCKET",
    "REST_STORE_URL",
)


class TestVaultConfig:
    """Tests for VaultConfig."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ENV_VARS:
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("SESSION_ACCOUNT_ID", "acct_1")

        config = VaultConfig.from_env()

        assert config.account_id == "acct_1"
        assert config.data_path == DEFAULT_DATA_PATH
        assert config.save_delay_seconds == 60.0
        assert config.store_backend == StoreBackend.SQLITE
        assert config.observability.log_format == "json"

    def test_explicit_overrides_env(self, monkeypatch):
        monkeypatch.setenv("SESSION_ACCOUNT_ID", "from_env")
        monkeypatch.setenv("SESSION_DATA_PATH", "/env/path")

        config = VaultConfig.from_env(account_id="explicit", data_path="/explicit")

        assert config.account_id == "explicit"
        assert config.data_path == "/explicit"

    def test_account_id_required(self):
        with pytest.raises(ValueError, match="SESSION_ACCOUNT_ID"):
            VaultConfig.from_env()

    def test_invalid_backend(self, monkeypatch):
        monkeypatch.setenv("SESSION_ACCOUNT_ID", "acct_1")
        monkeypatch.setenv("SESSION_STORE_BACKEND", "redis")

        with pytest.raises(ValueError, match="Invalid SESSION_STORE_BACKEND"):
            VaultConfig.from_env()

    def test_backend_is_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("SESSION_ACCOUNT_ID", "acct_1")
        monkeypatch.setenv("SESSION_STORE_BACKEND", "MEMORY")

        assert VaultConfig.from_env().store_backend == StoreBackend.MEMORY

    def test_rest_requires_url(self, monkeypatch):
        monkeypatch.setenv("SESSION_ACCOUNT_ID", "acct_1")
        monkeypatch.setenv("SESSION_STORE_BACKEND", "rest")

        with pytest.raises(ValueError, match="REST_STORE_URL"):
            VaultConfig.from_env()

    def test_s3_requires_bucket(self):
        config = VaultConfig(
            account_id="acct_1",
            store_backend=StoreBackend.S3,
            s3=S3Config(bucket=""),
        )

        with pytest.raises(ValueError, match="S3_BUCKET"):
            config.validate()

    def test_negative_delay_rejected(self, monkeypatch):
        monkeypatch.setenv("SESSION_ACCOUNT_ID", "acct_1")
        monkeypatch.setenv("SESSION_SAVE_DELAY_SECONDS", "-1")

        with pytest.raises(ValueError, match="SESSION_SAVE_DELAY_SECONDS"):
            VaultConfig.from_env()


class TestCreateSessionStore:
    """Tests for the store factory."""

    @pytest.mark.parametrize(
        "backend,expected",
        [
            (StoreBackend.MEMORY, InMemorySessionStore),
            (StoreBackend.SQLITE, SqliteSessionStore),
            (StoreBackend.S3, S3SessionStore),
            (StoreBackend.REST, RestSessionStore),
        ],
    )
    def test_backend_mapping(self, backend, expected):
        config = VaultConfig(
            account_id="acct_1",
            store_backend=backend,
            rest=RestStoreConfig(url="https://db.example.com"),
        )

        assert isinstance(create_session_store(config), expected)
