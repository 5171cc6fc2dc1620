"""
Restore a session tree from a stored envelope.

The restorer turns a stored blob back into files under a session root.
It reports what happened instead of raising, so the caller can decide
whether the stored value should be cleared.

Outcomes:
    RESTORED        at least one entry was attempted
    EMPTY           the payload holds no files
    CORRUPTED       the blob cannot be decoded; caller should clear it
    UNKNOWN_FORMAT  the blob decodes but has no known payload field

Invariants:
    - Only CORRUPTED asks for the stored value to be cleared
    - Entries are written only below the session root
    - A failed entry never stops the remaining entries
    - Written and failed counts always add up to the attempted entries
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..errors import CorruptEnvelopeError, UnknownEnvelopeError
from .envelope import decode_envelope

logger = logging.getLogger(__name__)


class RestoreStatus(Enum):
    """Outcome of a restore attempt."""

    RESTORED = "restored"
    EMPTY = "empty"
    CORRUPTED = "corrupted"
    UNKNOWN_FORMAT = "unknown_format"


@dataclass
class RestoreResult:
    """Result of restoring one blob.

    Attributes:
        status: Outcome of the attempt
        files_total: Entries found in the payload
        files_written: Entries written to disk
        files_failed: Entries that could not be written
        format_tag: Envelope "type" tag, when readable
        error: Decode error message for CORRUPTED/UNKNOWN_FORMAT
    """

    status: RestoreStatus
    files_total: int = 0
    files_written: int = 0
    files_failed: int = 0
    format_tag: str | None = None
    error: str | None = None

    @property
    def restored(self) -> bool:
        return self.status == RestoreStatus.RESTORED

    @property
    def should_clear(self) -> bool:
        """Whether the stored value is unreadable and should be cleared."""
        return self.status == RestoreStatus.CORRUPTED


def _resolve_destination(root: Path, rel_path: str) -> Path:
    """Map a stored relative path to a path below root.

    Raises:
        ValueError: If the path is absolute or escapes root
    """
    normalized = rel_path.replace("\\", "/")
    destination = (root / normalized).resolve()
    if destination == root or root not in destination.parents:
        raise ValueError(f"Path escapes session root: {rel_path}")
    return destination


def write_session_files(files: dict[str, str], session_path: str | Path) -> tuple[int, int]:
    """Write base64-encoded entries below session_path.

    Args:
        files: Relative path -> base64 content
        session_path: Session root

    Returns:
        Tuple of (written, failed)
    """
    root = Path(session_path).resolve()
    written = 0
    failed = 0

    for rel_path, b64_content in files.items():
        try:
            destination = _resolve_destination(root, rel_path)
            content = base64.b64decode(b64_content)
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(content)
            written += 1
        except (OSError, TypeError, ValueError, binascii.Error) as e:
            logger.warning(f"Failed: {rel_path}", extra={"error": str(e)})
            failed += 1

    return written, failed


def restore_session_blob(blob: str, session_path: str | Path) -> RestoreResult:
    """Restore a session tree from a stored blob.

    Args:
        blob: Base64 text as returned by SessionStore.get()
        session_path: Session root to write into

    Returns:
        RestoreResult describing the outcome
    """
    try:
        decoded = decode_envelope(blob)
    except CorruptEnvelopeError as e:
        logger.error(f"Corrupted session data: {e.message}")
        return RestoreResult(status=RestoreStatus.CORRUPTED, error=e.message)
    except UnknownEnvelopeError as e:
        logger.warning(f"Unknown format: {e.format_tag}")
        return RestoreResult(
            status=RestoreStatus.UNKNOWN_FORMAT,
            format_tag=e.format_tag,
            error=e.message,
        )

    files = decoded.payload.files
    if not files:
        logger.warning("Empty session")
        return RestoreResult(status=RestoreStatus.EMPTY, format_tag=decoded.format_tag)

    file_count = len(files)
    logger.info(f"Restoring {file_count} files...")

    written, failed = write_session_files(files, session_path)

    logger.info(
        f"Restored {written}/{file_count} files",
        extra={"session_path": str(session_path), "files_failed": failed},
    )
    return RestoreResult(
        status=RestoreStatus.RESTORED,
        files_total=file_count,
        files_written=written,
        files_failed=failed,
        format_tag=decoded.format_tag,
    )
