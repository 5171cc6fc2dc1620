"""
Configuration management for Session Vault.

Configuration comes from environment variables; the account identifier may
also be passed explicitly by the embedding process. This module provides
typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - The account identifier is always required
    - Secrets are never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Snapshot limits live in snapshot.collector, not here; changing them
      changes which files a stored blob can contain
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = "./sessions-temp"

# Wait after auth before the first save so the profile has settled.
DEFAULT_SAVE_DELAY_SECONDS = 60.0


class StoreBackend(Enum):
    """Supported durable store backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"
    S3 = "s3"
    REST = "rest"


@dataclass(frozen=True)
class SqliteStoreConfig:
    """Local SQLite store configuration.

    Attributes:
        db_path: Path of the SQLite database file
        busy_timeout_ms: SQLite busy timeout in milliseconds
    """

    db_path: str = "./sessions.db"
    busy_timeout_ms: int = 5000

    @classmethod
    def from_env(cls) -> SqliteStoreConfig:
        """Load configuration from environment variables."""
        return cls(
            db_path=os.getenv("SQLITE_STORE_PATH", "./sessions.db"),
            busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
        )


@dataclass(frozen=True)
class S3Config:
    """S3 configuration for the object-store backend.

    Attributes:
        bucket: S3 bucket name
        region: AWS region
        endpoint_url: Custom endpoint URL (for MinIO)
        prefix: Key prefix for session blobs
        access_key_id: AWS access key ID (optional, uses AWS credential chain)
        secret_access_key: AWS secret access key (optional)
        timeout_seconds: Per-operation timeout
    """

    bucket: str = "session-vault"
    region: str = "us-east-1"
    endpoint_url: str | None = None
    prefix: str = "sessions"
    access_key_id: str | None = None
    secret_access_key: str | None = None
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> S3Config:
        """Load configuration from environment variables."""
        return cls(
            bucket=os.getenv("S3_BUCKET", "session-vault"),
            region=os.getenv("S3_REGION", os.getenv("AWS_REGION", "us-east-1")),
            endpoint_url=os.getenv("S3_ENDPOINT"),
            prefix=os.getenv("S3_SESSION_PREFIX", "sessions"),
            access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            timeout_seconds=float(os.getenv("S3_TIMEOUT_SECONDS", "30")),
        )


@dataclass(frozen=True)
class RestStoreConfig:
    """Hosted Postgres table exposed over a PostgREST-style HTTP API.

    Attributes:
        url: Base project URL (``/rest/v1`` is appended)
        api_key: Service API key, sent as ``apikey`` and bearer token
        table: Table holding one row per account
        id_column: Column holding the account identifier
        data_column: Column holding the stored blob
        timeout_seconds: Per-request timeout
    """

    url: str | None = None
    api_key: str | None = None
    table: str = "whatsapp_accounts"
    id_column: str = "id"
    data_column: str = "session_data"
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> RestStoreConfig:
        """Load configuration from environment variables."""
        return cls(
            url=os.getenv("REST_STORE_URL"),
            api_key=os.getenv("REST_STORE_API_KEY"),
            table=os.getenv("REST_STORE_TABLE", "whatsapp_accounts"),
            id_column=os.getenv("REST_STORE_ID_COLUMN", "id"),
            data_column=os.getenv("REST_STORE_DATA_COLUMN", "session_data"),
            timeout_seconds=float(os.getenv("REST_STORE_TIMEOUT_SECONDS", "30")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class VaultConfig:
    """Complete Session Vault configuration.

    Attributes:
        account_id: Account whose session tree is managed
        data_path: Base directory; the session tree is ``data_path/account_id``
        save_delay_seconds: Delay between auth-ready and the first save
        store_backend: Which durable store to use
        sqlite: SQLite store configuration
        s3: S3 store configuration
        rest: REST store configuration
        observability: Logging configuration
    """

    account_id: str = ""
    data_path: str = DEFAULT_DATA_PATH
    save_delay_seconds: float = DEFAULT_SAVE_DELAY_SECONDS
    store_backend: StoreBackend = StoreBackend.SQLITE
    sqlite: SqliteStoreConfig = field(default_factory=SqliteStoreConfig)
    s3: S3Config = field(default_factory=S3Config)
    rest: RestStoreConfig = field(default_factory=RestStoreConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(
        cls,
        account_id: str | None = None,
        data_path: str | None = None,
    ) -> VaultConfig:
        """Load complete configuration from environment variables.

        Args:
            account_id: Overrides SESSION_ACCOUNT_ID
            data_path: Overrides SESSION_DATA_PATH

        Returns:
            VaultConfig with all sections populated from environment.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        backend_str = os.getenv("SESSION_STORE_BACKEND", "sqlite").lower()
        try:
            store_backend = StoreBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid SESSION_STORE_BACKEND '{backend_str}'. "
                "Must be one of: memory, sqlite, s3, rest"
            )

        config = cls(
            account_id=account_id or os.getenv("SESSION_ACCOUNT_ID", ""),
            data_path=data_path or os.getenv("SESSION_DATA_PATH", DEFAULT_DATA_PATH),
            save_delay_seconds=float(
                os.getenv("SESSION_SAVE_DELAY_SECONDS", str(DEFAULT_SAVE_DELAY_SECONDS))
            ),
            store_backend=store_backend,
            sqlite=SqliteStoreConfig.from_env(),
            s3=S3Config.from_env(),
            rest=RestStoreConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.account_id:
            raise ValueError("SESSION_ACCOUNT_ID is required")

        if self.save_delay_seconds < 0:
            raise ValueError("SESSION_SAVE_DELAY_SECONDS must not be negative")

        if self.store_backend == StoreBackend.S3 and not self.s3.bucket:
            raise ValueError("S3_BUCKET is required when SESSION_STORE_BACKEND=s3")
        if self.store_backend == StoreBackend.REST and not self.rest.url:
            raise ValueError("REST_STORE_URL is required when SESSION_STORE_BACKEND=rest")

        if not os.path.exists(self.data_path):
            logger.warning(
                f"Data directory does not exist: {self.data_path}. "
                "It will be created on first use."
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Session vault configuration loaded",
            extra={
                "account_id": self.account_id,
                "data_path": self.data_path,
                "save_delay_seconds": self.save_delay_seconds,
                "store_backend": self.store_backend.value,
                "sqlite_path": self.sqlite.db_path
                if self.store_backend == StoreBackend.SQLITE
                else None,
                "s3_bucket": self.s3.bucket if self.store_backend == StoreBackend.S3 else None,
                "rest_table": self.rest.table
                if self.store_backend == StoreBackend.REST
                else None,
                "log_level": self.observability.log_level,
            },
        )
