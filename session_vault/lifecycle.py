"""
Session lifecycle hooks.

RemoteSession connects a browser-automation host to the snapshot core. The
host calls the hooks; the session decides when to restore and when to save:

    before_browser_initialized   create the tree, restore if it is empty
    after_auth_ready             schedule the first save after a delay
    logout                       cancel the pending save, keep everything
    destroy                      cancel the pending save, delete the tree

Invariants:
    - Hooks never raise into the host; failures are logged and reported
    - Blocking filesystem work runs in the default executor
    - At most one deferred save is pending per session
    - Destroy never touches the stored blob

How to change safely:
    - Keep the save delay; saving a half-initialized profile stores a
      session that cannot log in
    - Restore must finish before the browser opens the profile directory
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .config import DEFAULT_DATA_PATH, DEFAULT_SAVE_DELAY_SECONDS, VaultConfig
from .errors import StoreError
from .snapshot import (
    RestoreResult,
    collect_essential_files,
    has_local_session,
    pack_session,
    restore_session_blob,
)
from .store import SessionStore

logger = logging.getLogger(__name__)


class DeferredTask:
    """A cancellable callback that runs once after a delay.

    The task belongs to whoever created it; nothing is registered globally.
    Cancelling is idempotent: cancelling twice, or after the callback has
    started, does nothing.

    Example:
        >>> task = DeferredTask(60, session.save_session)
        >>> task.start()
        >>> task.cancel()
    """

    def __init__(
        self,
        delay_seconds: float,
        callback: Callable[[], Awaitable[Any]],
        name: str | None = None,
    ) -> None:
        self.delay_seconds = delay_seconds
        self.callback = callback
        self.name = name or "deferred-task"
        self._task: asyncio.Task | None = None
        self._fired = False
        self._cancel_requested = False

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def fired(self) -> bool:
        """Whether the delay elapsed and the callback started."""
        return self._fired

    @property
    def pending(self) -> bool:
        """Whether the callback is still waiting for its delay."""
        return (
            self._task is not None
            and not self._task.done()
            and not self._fired
            and not self._cancel_requested
        )

    @property
    def cancelled(self) -> bool:
        return self._task is not None and self._task.cancelled()

    @property
    def running(self) -> bool:
        """Whether the callback has started and not yet finished."""
        return self._fired and self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the callback on the running loop.

        Raises:
            RuntimeError: If already started or no loop is running
        """
        if self._task is not None:
            raise RuntimeError(f"{self.name} already started")
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def _run(self) -> Any:
        await asyncio.sleep(self.delay_seconds)
        self._fired = True
        try:
            return await self.callback()
        except Exception as e:
            logger.error(f"{self.name} failed: {e}", exc_info=True)
            return None

    def cancel(self) -> bool:
        """Cancel the callback if it has not started yet.

        Returns:
            True if this call cancelled a pending callback
        """
        if not self.pending:
            return False
        self._cancel_requested = True
        self._task.cancel()
        return True

    def add_done_callback(self, fn: Callable[[DeferredTask], Any]) -> None:
        """Call fn with this task once it finishes.

        Raises:
            RuntimeError: If the task was never started
        """
        if self._task is None:
            raise RuntimeError(f"{self.name} not started")
        self._task.add_done_callback(lambda _: fn(self))

    async def wait(self) -> Any:
        """Wait for the task to finish.

        Returns:
            The callback result, or None if cancelled or never started
        """
        if self._task is None:
            return None
        try:
            return await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
            return None


@dataclass
class PreRestoreResult:
    """Result of a pre-initialization restore.

    Attributes:
        restored: Whether files were written from the stored blob
        session_path: Session tree the host should use
        result: Restorer outcome, None if nothing was fetched
        cleared: Whether a corrupted blob was cleared from the store
    """

    restored: bool
    session_path: Path
    result: RestoreResult | None = None
    cleared: bool = False


async def pre_restore_session(
    account_id: str,
    store: SessionStore,
    data_path: str | Path = DEFAULT_DATA_PATH,
) -> PreRestoreResult:
    """Restore a session tree from the store before the browser starts.

    Usable without a RemoteSession, for hosts that need the profile in
    place before any client object exists.

    Args:
        account_id: Account to restore
        store: Durable store holding the blob
        data_path: Base directory; the tree is ``data_path/account_id``

    Returns:
        PreRestoreResult describing the outcome
    """
    session_path = Path(data_path) / account_id
    loop = asyncio.get_running_loop()

    try:
        await loop.run_in_executor(
            None, lambda: session_path.mkdir(parents=True, exist_ok=True)
        )

        logger.info(f"Checking store for: {account_id}")
        blob = await store.get(account_id)
        if not blob:
            logger.info(f"No saved session for: {account_id}")
            return PreRestoreResult(restored=False, session_path=session_path)

        result = await loop.run_in_executor(None, restore_session_blob, blob, session_path)

        cleared = False
        if result.should_clear:
            logger.error("Corrupted session data, clearing", extra={"account_id": account_id})
            await store.clear(account_id)
            cleared = True

        return PreRestoreResult(
            restored=result.restored,
            session_path=session_path,
            result=result,
            cleared=cleared,
        )

    except (StoreError, OSError) as e:
        logger.error(f"Restore error: {e}", extra={"account_id": account_id})
        return PreRestoreResult(restored=False, session_path=session_path)


class RemoteSession:
    """Keeps one account's browser profile in sync with a durable store.

    Attributes:
        account_id: Account whose profile is managed
        store: Durable store holding the blob
        data_path: Base directory for session trees
        save_delay_seconds: Delay between auth-ready and the first save

    Example:
        >>> session = RemoteSession("acct_1", store)
        >>> user_data_dir = await session.before_browser_initialized()
        >>> # ... launch browser with user_data_dir, authenticate ...
        >>> await session.after_auth_ready()
        >>> await session.logout()
    """

    def __init__(
        self,
        account_id: str,
        store: SessionStore,
        data_path: str | Path = DEFAULT_DATA_PATH,
        save_delay_seconds: float = DEFAULT_SAVE_DELAY_SECONDS,
    ) -> None:
        if not account_id:
            raise ValueError("account_id is required")

        self.account_id = account_id
        self.store = store
        self.data_path = Path(data_path)
        self.save_delay_seconds = save_delay_seconds
        self._save_task: DeferredTask | None = None
        # Saves still running after their task was replaced
        self._running_saves: set[DeferredTask] = set()

    @classmethod
    def from_config(cls, config: VaultConfig, store: SessionStore) -> RemoteSession:
        return cls(
            account_id=config.account_id,
            store=store,
            data_path=config.data_path,
            save_delay_seconds=config.save_delay_seconds,
        )

    @property
    def session_path(self) -> Path:
        return self.data_path / self.account_id

    @property
    def save_pending(self) -> bool:
        return self._save_task is not None and self._save_task.pending

    @property
    def save_task(self) -> DeferredTask | None:
        return self._save_task

    @property
    def running_saves(self) -> frozenset[DeferredTask]:
        return frozenset(self._running_saves)

    async def before_browser_initialized(self) -> Path:
        """Prepare the session tree before the browser opens it.

        Returns:
            Session path to use as the browser's user-data directory
        """
        session_path = self.session_path

        try:
            await asyncio.get_running_loop().run_in_executor(
                None, lambda: session_path.mkdir(parents=True, exist_ok=True)
            )
            logger.info(f"Data dir: {session_path}")

            if has_local_session(session_path):
                logger.info("Session files exist, ready")
                return session_path

            logger.info("No local files, checking store...")
            await pre_restore_session(self.account_id, self.store, self.data_path)

        except Exception as e:
            logger.error(f"Setup error: {e}", extra={"account_id": self.account_id})

        return session_path

    async def after_auth_ready(self) -> None:
        """Schedule the first save once the session has settled."""
        logger.info(f"Auth ready for {self.account_id}")
        logger.info(
            f"Waiting {self.save_delay_seconds:g}s for session to stabilize before saving..."
        )

        self.cancel_pending_save()
        previous = self._save_task
        if previous is not None and previous.running:
            self._running_saves.add(previous)
            previous.add_done_callback(self._running_saves.discard)

        self._save_task = DeferredTask(
            self.save_delay_seconds,
            self._initial_save,
            name=f"session-save-{self.account_id}",
        )
        self._save_task.start()

    async def _initial_save(self) -> bool:
        logger.info("Starting initial session save...")
        return await self.save_session()

    def cancel_pending_save(self) -> bool:
        """Cancel the scheduled save, if one is still waiting."""
        if self._save_task is None:
            return False
        return self._save_task.cancel()

    async def save_session(self) -> bool:
        """Snapshot the session tree into the store.

        Returns:
            True if a blob was stored
        """
        session_path = self.session_path
        loop = asyncio.get_running_loop()

        try:
            if not (session_path / "Default").is_dir():
                logger.warning("No Default folder", extra={"account_id": self.account_id})
                return False

            logger.info("Collecting essential files (IndexedDB + Local Storage)...")
            collected = await loop.run_in_executor(None, collect_essential_files, session_path)

            if collected.is_empty:
                logger.warning("No essential files found", extra={"account_id": self.account_id})
                return False

            logger.info(f"Got {collected.file_count} files ({collected.total_size / 1024:.0f}KB)")

            blob = await loop.run_in_executor(
                None, pack_session, collected.files, self.account_id
            )
            size_kb = len(blob) / 1024

            logger.info(f"Saving {size_kb:.2f}KB to store...")
            await self.store.set(self.account_id, blob)
            logger.info(
                f"Saved ({size_kb:.2f}KB, {collected.file_count} files)",
                extra={
                    "account_id": self.account_id,
                    "file_count": collected.file_count,
                    "total_size": collected.total_size,
                    "blob_size": len(blob),
                    "skipped": collected.skipped,
                    "failed": collected.failed,
                },
            )
            return True

        except Exception as e:
            logger.error(f"Save error: {e}", extra={"account_id": self.account_id})
            return False

    async def logout(self) -> None:
        """Stop scheduled saves; local files and the stored blob stay."""
        logger.info(f"Logout for {self.account_id}")
        self.cancel_pending_save()

    async def destroy(self) -> None:
        """Stop scheduled saves and delete the local session tree."""
        logger.info(f"Destroy for {self.account_id}")
        self.cancel_pending_save()
        await asyncio.get_running_loop().run_in_executor(
            None, lambda: shutil.rmtree(self.session_path, ignore_errors=True)
        )
