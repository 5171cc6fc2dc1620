"""
Operator CLI for Session Vault.

Runs one snapshot operation for an account against the configured store:

    session-vault save     --account-id <id> [--data-path <dir>]
    session-vault restore  --account-id <id> [--data-path <dir>] [--skip-if-present]
    session-vault inspect  --account-id <id> [--blob-file <path>]
    session-vault clear    --account-id <id>

Store selection and credentials come from the environment (see config.py).

Invariants:
    - Exit code 0 on success, 1 on failure or configuration error
    - inspect never writes to the filesystem or the store
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import json_log_formatter

from ..config import ObservabilityConfig, VaultConfig
from ..errors import EnvelopeError, StoreError
from ..lifecycle import RemoteSession, pre_restore_session
from ..snapshot import describe_envelope, has_local_session
from ..store import SessionStore, create_session_store

logger = logging.getLogger(__name__)


def setup_logging(config: ObservabilityConfig, verbose: bool = False) -> None:
    """Configure logging based on configuration.

    Args:
        config: Observability configuration
        verbose: Force DEBUG level
    """
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("aiobotocore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _format_ts(ts_ms: int | None) -> str:
    if ts_ms is None:
        return "unknown"
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).isoformat()


async def _cmd_save(config: VaultConfig, store: SessionStore, args: argparse.Namespace) -> int:
    session = RemoteSession.from_config(config, store)
    if await session.save_session():
        print(f"Saved session for {config.account_id}")
        return 0
    print(f"Save failed for {config.account_id}")
    return 1


async def _cmd_restore(config: VaultConfig, store: SessionStore, args: argparse.Namespace) -> int:
    session_path = Path(config.data_path) / config.account_id
    if args.skip_if_present and has_local_session(session_path):
        print(f"Local session present at {session_path}, nothing to do")
        return 0

    outcome = await pre_restore_session(config.account_id, store, config.data_path)
    if not outcome.restored:
        status = outcome.result.status.value if outcome.result else "no_session"
        print(f"Nothing restored ({status})")
        if outcome.cleared:
            print("  Corrupted stored session was cleared")
        return 1

    result = outcome.result
    print("Restore completed")
    print(f"  Path: {outcome.session_path}")
    print(f"  Files written: {result.files_written}/{result.files_total}")
    print(f"  Files failed: {result.files_failed}")
    return 0


async def _cmd_inspect(config: VaultConfig, store: SessionStore, args: argparse.Namespace) -> int:
    if args.blob_file:
        try:
            blob = Path(args.blob_file).read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            print(f"Cannot read blob file {args.blob_file}: {e}")
            return 1
    else:
        blob = await store.get(config.account_id)

    if not blob:
        print(f"No saved session for {config.account_id}")
        return 1

    try:
        info = describe_envelope(blob)
    except EnvelopeError as e:
        print(f"Unreadable session ({e.code}): {e.message}")
        return 1

    print(f"Format: {info.format_tag or 'untagged'}")
    print(f"  Saved: {info.saved or 'unknown'}")
    print(f"  Captured: {_format_ts(info.captured_ts)}")
    print(f"  Account: {info.account_id or 'unknown'}")
    print(f"  Files: {info.file_count}")
    print(f"  Content size: {info.content_size} bytes")
    print(f"  Blob size: {info.blob_size} bytes")
    return 0


async def _cmd_clear(config: VaultConfig, store: SessionStore, args: argparse.Namespace) -> int:
    await store.clear(config.account_id)
    print(f"Cleared stored session for {config.account_id}")
    return 0


COMMANDS = {
    "save": _cmd_save,
    "restore": _cmd_restore,
    "inspect": _cmd_inspect,
    "clear": _cmd_clear,
}


async def run(config: VaultConfig, args: argparse.Namespace, store: SessionStore | None = None) -> int:
    """Run one CLI command against the configured store.

    Args:
        config: Vault configuration
        args: Parsed command-line arguments
        store: Store to use instead of the configured backend

    Returns:
        Process exit code
    """
    store = store or create_session_store(config)
    try:
        await store.connect()
        return await COMMANDS[args.command](config, store, args)
    except StoreError as e:
        logger.error(f"Store error: {e.message}", extra={"code": e.code})
        print(f"Store error: {e.message}")
        return 1
    finally:
        await store.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="session-vault",
        description="Save, restore and inspect stored browser sessions",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("save", "Snapshot the local session tree into the store"),
        ("restore", "Rebuild the local session tree from the store"),
        ("inspect", "Describe the stored session without restoring it"),
        ("clear", "Remove the stored session"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--account-id", help="Account ID (default: SESSION_ACCOUNT_ID)")
        sub.add_argument("--data-path", help="Base session directory (default: SESSION_DATA_PATH)")
        if name == "restore":
            sub.add_argument(
                "--skip-if-present",
                action="store_true",
                help="Do nothing when local IndexedDB files already exist",
            )
        if name == "inspect":
            sub.add_argument("--blob-file", help="Read the blob from a file instead of the store")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = VaultConfig.from_env(account_id=args.account_id, data_path=args.data_path)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.observability, verbose=args.verbose)
    config.log_config()

    sys.exit(asyncio.run(run(config, args)))


if __name__ == "__main__":
    main()
