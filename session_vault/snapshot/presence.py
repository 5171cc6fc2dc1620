"""Local presence check for session trees."""

from __future__ import annotations

import os
from pathlib import Path


def has_local_session(session_path: str | Path) -> bool:
    """Whether the session tree already holds IndexedDB data.

    Best-effort: any filesystem error counts as "no local session". A True
    result only means a restore can be skipped, not that the session is valid.
    """
    indexed_db = Path(session_path) / "Default" / "IndexedDB"
    try:
        with os.scandir(indexed_db) as it:
            return any(True for _ in it)
    except OSError:
        return False
