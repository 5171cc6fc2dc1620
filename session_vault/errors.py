"""
Error types for Session Vault.

This module defines the exceptions raised inside the package:
- VaultError: Base exception
- EnvelopeError: Stored blob could not be turned into a snapshot
- StoreError: Durable store operation failed

Invariants:
    - All errors inherit from VaultError
    - Errors carry a code for programmatic handling
    - Lifecycle hooks catch these; they never reach the host
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class VaultError(Exception):
    """Base exception for all Session Vault errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "VAULT_ERROR"
        self.details = details or {}


class EnvelopeError(VaultError):
    """A stored blob could not be decoded into a snapshot payload."""

    def __init__(self, message: str, code: str = "ENVELOPE_ERROR", **details: Any) -> None:
        super().__init__(message, code=code, details=details)


class CorruptEnvelopeError(EnvelopeError):
    """Stored blob is damaged and will never become readable.

    Raised when:
    - The outer base64/JSON layer does not decode
    - The compressed payload does not decompress or parse
    """

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message, code="CORRUPT_ENVELOPE", **details)


class UnknownEnvelopeError(EnvelopeError):
    """Stored blob decodes but carries no payload field this build understands.

    The blob may come from a newer release, so it is left in the store.
    """

    def __init__(self, message: str, format_tag: Optional[str] = None) -> None:
        super().__init__(message, code="UNKNOWN_ENVELOPE", format_tag=format_tag)
        self.format_tag = format_tag


class StoreError(VaultError):
    """Durable store operation failed."""

    def __init__(self, message: str, code: str = "STORE_ERROR", **details: Any) -> None:
        super().__init__(message, code=code, details=details)


class StoreConnectionError(StoreError):
    """Store backend is unreachable or not connected."""

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message, code="STORE_CONNECTION_ERROR", **details)


class StoreTimeoutError(StoreError):
    """Store operation exceeded its timeout."""

    def __init__(self, message: str, timeout_seconds: Optional[float] = None) -> None:
        super().__init__(message, code="STORE_TIMEOUT", timeout_seconds=timeout_seconds)
        self.timeout_seconds = timeout_seconds
