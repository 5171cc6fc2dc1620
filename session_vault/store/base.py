"""
Base protocol for durable session stores.

A session store keeps at most one blob per account identifier. The blob is
opaque text; the store never inspects it.

Invariants:
    - set() replaces any previous value for the account
    - get() returns None when nothing usable is stored
    - clear() is idempotent
    - Failures raise StoreError subclasses, never backend exceptions

How to change safely:
    - Protocol changes require updating all implementations
    - Keep get/set/clear semantics identical across backends
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..config import VaultConfig


@runtime_checkable
class SessionStore(Protocol):
    """Protocol for durable session stores.

    Concurrency contract:
        - No coordination between writers: the last set() wins
        - No transactional semantics across accounts

    Example:
        >>> store = SqliteSessionStore("./sessions.db")
        >>> await store.connect()
        >>> await store.set("acct_1", blob)
        >>> assert await store.get("acct_1") == blob
    """

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the store backend.

        Raises:
            StoreConnectionError: If connection fails
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""
        ...

    @abstractmethod
    async def get(self, account_id: str) -> Optional[str]:
        """Fetch the stored blob for an account.

        Returns:
            The blob, or None if nothing is stored

        Raises:
            StoreError: If the backend fails
        """
        ...

    @abstractmethod
    async def set(self, account_id: str, blob: str) -> None:
        """Store a blob, replacing any previous value.

        Raises:
            StoreError: If the backend fails
        """
        ...

    @abstractmethod
    async def clear(self, account_id: str) -> None:
        """Remove the stored blob for an account.

        Raises:
            StoreError: If the backend fails
        """
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether currently connected to the backend."""
        ...


def create_session_store(config: "VaultConfig") -> SessionStore:
    """Factory function to create a session store from configuration.

    Args:
        config: Vault configuration

    Returns:
        Appropriate SessionStore implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StoreBackend
    from .memory import InMemorySessionStore
    from .rest import RestSessionStore
    from .s3 import S3SessionStore
    from .sqlite import SqliteSessionStore

    if config.store_backend == StoreBackend.MEMORY:
        return InMemorySessionStore()
    elif config.store_backend == StoreBackend.SQLITE:
        return SqliteSessionStore(
            db_path=config.sqlite.db_path,
            busy_timeout_ms=config.sqlite.busy_timeout_ms,
        )
    elif config.store_backend == StoreBackend.S3:
        return S3SessionStore(config.s3)
    elif config.store_backend == StoreBackend.REST:
        return RestSessionStore(config.rest)
    else:
        raise ValueError(f"Unsupported store backend: {config.store_backend}")
