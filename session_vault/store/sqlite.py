"""
SQLite session store.

One row per account in a local SQLite file. Useful when the process has
durable local disk but the browser profile directory does not (for example
a profile kept on tmpfs).

Table schema:
    sessions:
        - account_id TEXT PRIMARY KEY
        - session_data TEXT (NULL once cleared)
        - updated_at INTEGER (Unix ms)

Invariants:
    - set() is a single upsert statement
    - clear() keeps the row and nulls session_data
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from ..errors import StoreConnectionError, StoreError

logger = logging.getLogger(__name__)


class SqliteSessionStore:
    """SessionStore backed by a single SQLite file.

    Thread safety:
        Each operation opens its own connection. An asyncio lock
        serializes operations from the same process.

    Example:
        >>> store = SqliteSessionStore("/var/lib/session-vault/sessions.db")
        >>> await store.connect()
        >>> await store.set("acct_1", blob)
    """

    def __init__(self, db_path: str, busy_timeout_ms: int = 5000) -> None:
        """Initialize the store.

        Args:
            db_path: Path of the SQLite database file
            busy_timeout_ms: SQLite busy timeout
        """
        self.db_path = Path(db_path)
        self.busy_timeout_ms = busy_timeout_ms
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a configured connection to the store database."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit, each statement is atomic
        )
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            conn.execute("PRAGMA synchronous = NORMAL")
            yield conn
        finally:
            conn.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS sessions (
                account_id TEXT PRIMARY KEY,
                session_data TEXT,
                updated_at INTEGER NOT NULL
            );
        """)

    async def connect(self) -> None:
        """Create the database file and schema if needed.

        Raises:
            StoreConnectionError: If the database cannot be opened
        """
        async with self._lock:
            try:
                with self._get_connection() as conn:
                    self._create_schema(conn)
            except (sqlite3.Error, OSError) as e:
                raise StoreConnectionError(
                    f"Cannot open session database: {e}", db_path=str(self.db_path)
                )
            self._connected = True
            logger.info(f"Session database ready: {self.db_path}")

    async def close(self) -> None:
        self._connected = False

    def _check_connected(self) -> None:
        if not self._connected:
            raise StoreConnectionError("Not connected", db_path=str(self.db_path))

    async def get(self, account_id: str) -> Optional[str]:
        self._check_connected()
        async with self._lock:
            try:
                with self._get_connection() as conn:
                    row = conn.execute(
                        "SELECT session_data FROM sessions WHERE account_id = ?",
                        (account_id,),
                    ).fetchone()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to read session: {e}", account_id=account_id)

        if row is None:
            return None
        return row["session_data"]

    async def set(self, account_id: str, blob: str) -> None:
        self._check_connected()
        now = int(time.time() * 1000)
        async with self._lock:
            try:
                with self._get_connection() as conn:
                    conn.execute(
                        """
                        INSERT INTO sessions (account_id, session_data, updated_at)
                        VALUES (?, ?, ?)
                        ON CONFLICT(account_id) DO UPDATE SET
                            session_data = excluded.session_data,
                            updated_at = excluded.updated_at
                        """,
                        (account_id, blob, now),
                    )
            except sqlite3.Error as e:
                raise StoreError(f"Failed to save session: {e}", account_id=account_id)

    async def clear(self, account_id: str) -> None:
        self._check_connected()
        now = int(time.time() * 1000)
        async with self._lock:
            try:
                with self._get_connection() as conn:
                    conn.execute(
                        "UPDATE sessions SET session_data = NULL, updated_at = ? "
                        "WHERE account_id = ?",
                        (now, account_id),
                    )
            except sqlite3.Error as e:
                raise StoreError(f"Failed to clear session: {e}", account_id=account_id)
