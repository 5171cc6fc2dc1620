"""
In-memory session store for testing.

This module provides a simple in-memory store for:
- Unit tests
- Integration tests
- Local development without a database

Invariants:
    - All data is lost on process exit
    - Same overwrite semantics as production backends

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with SessionStore protocol
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from ..errors import StoreConnectionError

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """In-memory implementation of SessionStore for testing.

    Besides the protocol, it records how often each account was written
    and cleared so tests can assert on store traffic.

    Example:
        >>> store = InMemorySessionStore()
        >>> await store.connect()
        >>> await store.set("acct_1", "blob")
        >>> store.get_write_count("acct_1")
        1
    """

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}
        self._writes: Dict[str, int] = defaultdict(int)
        self._clears: Dict[str, int] = defaultdict(int)
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """Whether connected (always true after connect())."""
        return self._connected

    async def connect(self) -> None:
        """Connect (no-op for in-memory)."""
        self._connected = True
        logger.debug("InMemorySessionStore connected")

    async def close(self) -> None:
        """Close and clear all data."""
        self._connected = False
        self._values.clear()
        self._writes.clear()
        self._clears.clear()
        logger.debug("InMemorySessionStore closed")

    def _check_connected(self) -> None:
        if not self._connected:
            raise StoreConnectionError("Not connected")

    async def get(self, account_id: str) -> Optional[str]:
        self._check_connected()
        async with self._lock:
            return self._values.get(account_id)

    async def set(self, account_id: str, blob: str) -> None:
        self._check_connected()
        async with self._lock:
            self._values[account_id] = blob
            self._writes[account_id] += 1
        logger.debug(
            "Session stored in memory",
            extra={"account_id": account_id, "size_bytes": len(blob)},
        )

    async def clear(self, account_id: str) -> None:
        self._check_connected()
        async with self._lock:
            self._values.pop(account_id, None)
            self._clears[account_id] += 1

    # Testing helpers

    def get_write_count(self, account_id: str) -> int:
        """Number of set() calls for an account."""
        return self._writes.get(account_id, 0)

    def get_clear_count(self, account_id: str) -> int:
        """Number of clear() calls for an account."""
        return self._clears.get(account_id, 0)

    def account_ids(self) -> List[str]:
        """Accounts that currently hold a value."""
        return sorted(self._values)
