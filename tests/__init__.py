"""
Session Vault Test Suite.

This package contains:
- unit/: Unit tests (temporary directories, in-memory and mocked stores)
- integration/: Lifecycle and CLI tests against real files and SQLite
"""
