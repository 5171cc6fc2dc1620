"""
Session Vault - snapshot/restore of browser-profile session trees.

This package captures the essential state of a browser profile directory
into a single compressed blob held by an external key-value store, and
rebuilds the directory from that blob on the next start:

    ┌──────────────┐   collect   ┌──────────┐   pack    ┌──────────────┐
    │ Session Tree │────────────▶│ Files    │──────────▶│ Stored       │
    │ Default/...  │             │ (bytes)  │           │ Envelope     │
    └──────────────┘             └──────────┘           └──────┬───────┘
           ▲                                                   │ set
           │ write files                                       ▼
    ┌──────┴───────┐   decode    ┌──────────┐   get     ┌──────────────┐
    │   Restorer   │◀────────────│ Envelope │◀──────────│ SessionStore │
    └──────────────┘             └──────────┘           └──────────────┘

Only two subdirectories are captured: ``Default/IndexedDB`` and
``Default/Local Storage``.

Invariants:
    - Every save fully replaces the stored blob for an account
    - Lock files are never captured
    - Corrupted stored data is cleared, unknown formats are left alone
    - Lifecycle hooks never raise into the host

How to change safely:
    - New envelope formats must add a new payload field, not reuse "data"
    - Keep old payload decoders registered so existing blobs stay readable
    - Test restore with blobs produced by the previous release
"""

from ._version import __version__
from .config import StoreBackend, VaultConfig
from .lifecycle import DeferredTask, PreRestoreResult, RemoteSession, pre_restore_session
from .snapshot import (
    CollectResult,
    RestoreResult,
    RestoreStatus,
    collect_essential_files,
    describe_envelope,
    has_local_session,
    pack_session,
    restore_session_blob,
)
from .store import SessionStore, create_session_store

__all__ = [
    "__version__",
    # Configuration
    "VaultConfig",
    "StoreBackend",
    # Lifecycle
    "RemoteSession",
    "DeferredTask",
    "PreRestoreResult",
    "pre_restore_session",
    # Snapshot core
    "CollectResult",
    "RestoreResult",
    "RestoreStatus",
    "collect_essential_files",
    "describe_envelope",
    "has_local_session",
    "pack_session",
    "restore_session_blob",
    # Stores
    "SessionStore",
    "create_session_store",
]
