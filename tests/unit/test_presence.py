"""
Unit tests for the local presence check.
"""

import tempfile
from pathlib import Path

import pytest

from session_vault.snapshot.presence import has_local_session


class TestHasLocalSession:
    """Tests for has_local_session."""

    @pytest.fixture
    def session_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_missing_tree(self, session_path):
        assert has_local_session(session_path / "nope") is False

    def test_missing_indexeddb(self, session_path):
        (session_path / "Default" / "Local Storage").mkdir(parents=True)

        assert has_local_session(session_path) is False

    def test_empty_indexeddb(self, session_path):
        (session_path / "Default" / "IndexedDB").mkdir(parents=True)

        assert has_local_session(session_path) is False

    def test_populated_indexeddb(self, session_path):
        indexed_db = session_path / "Default" / "IndexedDB"
        indexed_db.mkdir(parents=True)
        (indexed_db / "000003.log").write_bytes(b"x")

        assert has_local_session(session_path) is True

    def test_indexeddb_with_only_subdir(self, session_path):
        """Any entry counts, including nested leveldb directories."""
        (session_path / "Default" / "IndexedDB" / "origin.leveldb").mkdir(parents=True)

        assert has_local_session(session_path) is True

    def test_indexeddb_is_a_file(self, session_path):
        """A filesystem error reads as no local session."""
        (session_path / "Default").mkdir()
        (session_path / "Default" / "IndexedDB").write_bytes(b"oops")

        assert has_local_session(session_path) is False
