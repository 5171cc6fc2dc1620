"""
CLI tools for Session Vault administration.

This module provides the ``session-vault`` command:
- save / restore: run a snapshot operation outside the host process
- inspect: decode a stored session and print a summary
- clear: drop a stored session

Invariants:
    - Tools use the same store configuration as the embedding process
    - inspect is read-only
"""

from .vault_cli import build_parser, main, setup_logging

__all__ = ["build_parser", "main", "setup_logging"]
