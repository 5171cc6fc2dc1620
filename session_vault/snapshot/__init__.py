"""
Snapshot module for Session Vault.

This module turns a session tree into a stored blob and back:
- collector: pick essential files within size budgets
- envelope: versioned, compressed, base64 container format
- restorer: decode, dispatch on payload shape, write files back
- presence: cheap local check that makes a restore unnecessary

Invariants:
    - Collection and restore never raise for per-file I/O errors
    - Corrupted blobs and unknown formats are distinct outcomes
"""

from .collector import (
    ESSENTIAL_DIRS,
    LOCK_FILE_NAMES,
    MAX_FILE_SIZE,
    MAX_TOTAL_SIZE,
    CollectResult,
    collect_essential_files,
)
from .envelope import (
    FORMAT_VERSION,
    PAYLOAD_DECODERS,
    DecodedEnvelope,
    EnvelopeInfo,
    SnapshotPayload,
    decode_envelope,
    describe_envelope,
    pack_session,
)
from .presence import has_local_session
from .restorer import RestoreResult, RestoreStatus, restore_session_blob, write_session_files

__all__ = [
    # Collector
    "ESSENTIAL_DIRS",
    "LOCK_FILE_NAMES",
    "MAX_FILE_SIZE",
    "MAX_TOTAL_SIZE",
    "CollectResult",
    "collect_essential_files",
    # Envelope
    "FORMAT_VERSION",
    "PAYLOAD_DECODERS",
    "DecodedEnvelope",
    "EnvelopeInfo",
    "SnapshotPayload",
    "decode_envelope",
    "describe_envelope",
    "pack_session",
    # Restorer
    "RestoreResult",
    "RestoreStatus",
    "restore_session_blob",
    "write_session_files",
    # Presence
    "has_local_session",
]
