"""
Durable session store abstraction for Session Vault.

This module provides a pluggable store interface supporting:
- SQLite (local file, the default)
- S3 (one object per account)
- REST (hosted Postgres table behind a PostgREST-style API)
- In-memory (for testing)

Invariants:
    - One blob per account; set() overwrites
    - Failed writes never leave a partial blob behind

How to change safely:
    - New backends must implement the SessionStore protocol
    - Map backend exceptions to StoreError subclasses
"""

from .base import SessionStore, create_session_store
from .memory import InMemorySessionStore
from .rest import RestSessionStore
from .s3 import S3SessionStore
from .sqlite import SqliteSessionStore

__all__ = [
    # Protocol
    "SessionStore",
    # Factory
    "create_session_store",
    # Implementations
    "InMemorySessionStore",
    "RestSessionStore",
    "S3SessionStore",
    "SqliteSessionStore",
]
