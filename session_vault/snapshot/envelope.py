"""
Stored envelope format for session snapshots.

A snapshot is persisted as a single text value:

    base64(json({
        "type": "session_v4",
        "data": base64(gzip(json({"files": {relPath: base64}, "ts": ms, "id": account}))),
        "saved": "2024-01-01T00:00:00.000Z",
    }))

Reading dispatches on the payload field present in the envelope, not on
the "type" tag. The tag is informational only.

Invariants:
    - An envelope is built completely in memory before it is returned
    - gzip output carries mtime 0, so identical inputs with identical
      timestamps give identical blobs
    - Undecodable data raises CorruptEnvelopeError
    - A well-formed envelope without a known payload field raises
      UnknownEnvelopeError

How to change safely:
    - Add a new payload field and decoder for a new format, keep "data"
    - Put newer decoders first in PAYLOAD_DECODERS
    - Never change what an existing payload field means
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import logging
import time
import zlib
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..errors import CorruptEnvelopeError, UnknownEnvelopeError

logger = logging.getLogger(__name__)

FORMAT_VERSION = "session_v4"


@dataclass
class SnapshotPayload:
    """The uncompressed contents of an envelope.

    Attributes:
        files: Relative path -> base64 content, as stored
        ts: Capture timestamp (Unix ms)
        account_id: Account the snapshot belongs to
    """

    files: dict[str, str]
    ts: int | None = None
    account_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"files": self.files, "ts": self.ts, "id": self.account_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnapshotPayload:
        files = data.get("files")
        return cls(
            files=files if isinstance(files, dict) else {},
            ts=data.get("ts"),
            account_id=data.get("id"),
        )


@dataclass
class DecodedEnvelope:
    """A stored envelope after the outer and payload layers are decoded.

    Attributes:
        format_tag: Value of the "type" field, if any
        saved: Value of the "saved" field, if any
        payload_field: Envelope field the payload was read from
        payload: Decoded snapshot payload
    """

    format_tag: str | None
    saved: str | None
    payload_field: str
    payload: SnapshotPayload


@dataclass
class EnvelopeInfo:
    """Summary of a stored blob, for operators."""

    format_tag: str | None
    saved: str | None
    account_id: str | None
    captured_ts: int | None
    file_count: int
    content_size: int
    blob_size: int


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _utc_iso_now() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def pack_session(
    files: dict[str, bytes],
    account_id: str,
    ts: int | None = None,
    saved: str | None = None,
) -> str:
    """Serialize collected files into a stored envelope.

    Args:
        files: Relative path -> raw content
        account_id: Account the snapshot belongs to
        ts: Capture timestamp in Unix ms (defaults to now)
        saved: ISO-8601 save timestamp (defaults to now)

    Returns:
        Base64 text ready for SessionStore.set()
    """
    payload = SnapshotPayload(
        files={path: _b64encode(content) for path, content in files.items()},
        ts=ts if ts is not None else int(time.time() * 1000),
        account_id=account_id,
    )
    payload_json = json.dumps(payload.to_dict(), separators=(",", ":"))
    compressed = gzip.compress(payload_json.encode("utf-8"), mtime=0)

    envelope = {
        "type": FORMAT_VERSION,
        "data": _b64encode(compressed),
        "saved": saved or _utc_iso_now(),
    }
    envelope_json = json.dumps(envelope, separators=(",", ":"))
    return _b64encode(envelope_json.encode("utf-8"))


def _decode_gzip_payload(value: Any) -> SnapshotPayload:
    """Decoder for the "data" field: base64(gzip(json(payload)))."""
    try:
        compressed = base64.b64decode(value)
        decompressed = gzip.decompress(compressed)
        data = json.loads(decompressed.decode("utf-8"))
    except (
        TypeError, ValueError, RecursionError, binascii.Error, OSError, EOFError, zlib.error
    ) as e:
        raise CorruptEnvelopeError(f"Decompression failed: {e}", payload_field="data")

    if not isinstance(data, dict):
        raise CorruptEnvelopeError("Decompressed payload is not an object", payload_field="data")

    return SnapshotPayload.from_dict(data)


# Ordered: the first field present in the envelope wins.
PAYLOAD_DECODERS: tuple[tuple[str, Callable[[Any], SnapshotPayload]], ...] = (
    ("data", _decode_gzip_payload),
)


def _parse_outer(blob: str) -> Any:
    try:
        raw = base64.b64decode(blob)
        return json.loads(raw.decode("utf-8"))
    except (TypeError, ValueError, RecursionError, binascii.Error) as e:
        raise CorruptEnvelopeError(f"Corrupted session data: {e}")


def decode_envelope(blob: str) -> DecodedEnvelope:
    """Decode a stored blob into its snapshot payload.

    Args:
        blob: Base64 text as returned by SessionStore.get()

    Returns:
        DecodedEnvelope with the parsed payload

    Raises:
        CorruptEnvelopeError: If any layer fails to decode
        UnknownEnvelopeError: If no known payload field is present
    """
    envelope = _parse_outer(blob)

    if not isinstance(envelope, dict):
        raise UnknownEnvelopeError("Envelope is not an object")

    format_tag = envelope.get("type")
    for payload_field, decoder in PAYLOAD_DECODERS:
        if envelope.get(payload_field):
            return DecodedEnvelope(
                format_tag=format_tag,
                saved=envelope.get("saved"),
                payload_field=payload_field,
                payload=decoder(envelope[payload_field]),
            )

    raise UnknownEnvelopeError(f"Unknown format: {format_tag}", format_tag=format_tag)


def describe_envelope(blob: str) -> EnvelopeInfo:
    """Decode a blob and summarize it without touching the filesystem.

    Raises:
        CorruptEnvelopeError: If any layer fails to decode
        UnknownEnvelopeError: If no known payload field is present
    """
    decoded = decode_envelope(blob)
    content_size = 0
    for content in decoded.payload.files.values():
        try:
            content_size += len(base64.b64decode(content))
        except (TypeError, ValueError, binascii.Error):
            continue

    return EnvelopeInfo(
        format_tag=decoded.format_tag,
        saved=decoded.saved,
        account_id=decoded.payload.account_id,
        captured_ts=decoded.payload.ts,
        file_count=len(decoded.payload.files),
        content_size=content_size,
        blob_size=len(blob),
    )
