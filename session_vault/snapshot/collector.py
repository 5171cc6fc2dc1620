"""
Essential-file collector for session trees.

The collector walks the essential subdirectories of a browser profile and
reads every file worth keeping into memory:

    <session_path>/Default/IndexedDB/...
    <session_path>/Default/Local Storage/...

Everything else in the profile (caches, GPU state, crash reports) is
rebuilt by the browser and is never captured.

Invariants:
    - Keys are POSIX paths relative to the session root
    - Lock files are never collected, whatever their size
    - Empty files and files over MAX_FILE_SIZE are never collected
    - Unreadable files are skipped and counted, never raised
    - The walk never mutates the tree

How to change safely:
    - The total budget is soft: it is tracked per essential directory and
      only checked before each directory entry
    - Adding an essential directory grows every stored blob; check the
      store's value size limit first
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePath

logger = logging.getLogger(__name__)

ESSENTIAL_DIRS = ("IndexedDB", "Local Storage")

LOCK_FILE_NAMES = frozenset({"LOCK", "SingletonLock", "SingletonCookie", "SingletonSocket"})

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB per file
MAX_TOTAL_SIZE = 15 * 1024 * 1024  # 15MB per essential directory


@dataclass
class CollectResult:
    """Files gathered from one session tree.

    Attributes:
        files: Relative POSIX path -> raw content
        total_size: Sum of collected content sizes in bytes
        skipped: Files left out by rule (lock name, empty, too large)
        failed: Files or directories that could not be read
        missing_dirs: Essential directories that do not exist
        truncated: Whether the size budget stopped a walk early
    """

    files: dict[str, bytes] = field(default_factory=dict)
    total_size: int = 0
    skipped: int = 0
    failed: int = 0
    missing_dirs: list[str] = field(default_factory=list)
    truncated: bool = False

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def is_empty(self) -> bool:
        return not self.files


@dataclass
class _WalkState:
    """Running totals for one essential directory."""

    total_size: int = 0


def collect_essential_files(
    session_path: str | Path,
    max_file_size: int = MAX_FILE_SIZE,
    max_total_size: int = MAX_TOTAL_SIZE,
) -> CollectResult:
    """Collect the essential files of a session tree.

    Args:
        session_path: Session root (the directory holding ``Default``)
        max_file_size: Largest file accepted, in bytes
        max_total_size: Budget per essential directory, in bytes

    Returns:
        CollectResult with the collected files and counters
    """
    root = Path(session_path)
    default_path = root / "Default"
    result = CollectResult()

    for essential_dir in ESSENTIAL_DIRS:
        dir_path = default_path / essential_dir
        if not dir_path.is_dir():
            logger.warning(f"Missing essential dir: {essential_dir}")
            result.missing_dirs.append(essential_dir)
            continue

        state = _WalkState()
        _collect_dir(dir_path, root, result, state, max_file_size, max_total_size)
        result.total_size += state.total_size

    logger.debug(
        "Collected essential files",
        extra={
            "session_path": str(root),
            "file_count": result.file_count,
            "total_size": result.total_size,
            "skipped": result.skipped,
            "failed": result.failed,
        },
    )
    return result


def _collect_dir(
    directory: Path,
    root: Path,
    result: CollectResult,
    state: _WalkState,
    max_file_size: int,
    max_total_size: int,
) -> None:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.debug(f"Cannot read directory {directory}: {e}")
        result.failed += 1
        return

    for entry in entries:
        if state.total_size > max_total_size:
            result.truncated = True
            break

        full_path = Path(entry.path)

        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            result.failed += 1
            continue

        if is_dir:
            _collect_dir(full_path, root, result, state, max_file_size, max_total_size)
            continue

        if entry.name in LOCK_FILE_NAMES:
            result.skipped += 1
            continue

        try:
            if not entry.is_file():
                result.skipped += 1
                continue

            size = entry.stat().st_size
            if size == 0 or size > max_file_size:
                result.skipped += 1
                continue

            content = full_path.read_bytes()
        except OSError:
            # Locked by the live browser or vanished mid-walk
            result.failed += 1
            continue

        rel_path = PurePath(os.path.relpath(full_path, root)).as_posix()
        result.files[rel_path] = content
        state.total_size += len(content)
