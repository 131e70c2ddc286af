"""Ownership and lifecycle of the single training-history database handle.

States::

    CLOSED -> INITIALIZING -> READY
    READY  -> INITIALIZING              (reinitialize)
    READY  -> CLOSED -> INITIALIZING    (reset_hard)

Only one initialization runs at a time; callers arriving while one is in
flight await the same task instead of opening a second handle.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import aiosqlite

from training_history.errors import BackupRestoreError, HandleUnavailableError
from training_history.persistence.backup import BackupMirror
from training_history.persistence.database import ensure_schema, open_connection, sidecar_paths

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    CLOSED = "closed"
    INITIALIZING = "initializing"
    READY = "ready"


class DatabaseLifecycle:
    """Sole owner of the database handle.

    Other components borrow the handle through ``acquire()`` for the duration
    of one call and never keep it.
    """

    def __init__(self, db_path: Path, mirror: BackupMirror):
        self.db_path = Path(db_path)
        self.mirror = mirror
        self._conn: Optional[aiosqlite.Connection] = None
        self._state = LifecycleState.CLOSED
        self._pending: Optional[asyncio.Task] = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is LifecycleState.READY and self._conn is not None

    async def initialize(self) -> None:
        """Open the handle, create the schema and restore from backup.

        A no-op when already ready. On failure the handle stays unset, the
        state returns to ``CLOSED`` and the error is re-raised; there is no
        automatic retry.
        """
        if self._pending is not None:
            logger.debug("Initialization already in progress; waiting for it")
            await asyncio.shield(self._pending)
            return
        if self.is_ready:
            return

        task = asyncio.ensure_future(self._open())
        self._pending = task
        try:
            await asyncio.shield(task)
        finally:
            if self._pending is task:
                self._pending = None

    async def acquire(self) -> aiosqlite.Connection:
        """Return the ready handle, initializing first if needed."""
        if self._conn is None or self._state is not LifecycleState.READY:
            try:
                await self.initialize()
            except Exception as e:
                raise HandleUnavailableError(f"Database handle unavailable: {e}") from e
        if self._conn is None:
            raise HandleUnavailableError("Database handle unavailable after initialization")
        return self._conn

    async def reinitialize(self) -> None:
        """Discard the current handle and initialize again."""
        if self._pending is not None:
            await asyncio.shield(self._pending)
            return
        logger.info("Reinitializing training-history database")
        await self.close()
        await self.initialize()

    async def reset_hard(self) -> None:
        """Delete the backup blob and the database file, then initialize.

        Destroys all stored history. Last resort after ``reinitialize()`` failed.
        Raises ``BackupRestoreError`` if the blob cannot be deleted, since the
        next initialize would otherwise restore it into the emptied store.
        """
        logger.warning("Hard reset of training-history database at %s", self.db_path)
        await self.close()
        if not await self.mirror.clear():
            raise BackupRestoreError("Could not delete backup blob during hard reset")
        for path in sidecar_paths(self.db_path):
            path.unlink(missing_ok=True)
        await self.initialize()
        logger.info("Training-history database reset")

    async def recover(self) -> None:
        """Escalate reinitialize -> hard reset until a handle is ready.

        Raises ``HandleUnavailableError`` when both steps fail.
        """
        try:
            await self.reinitialize()
            return
        except Exception as e:
            logger.error("Reinitialize failed, falling back to hard reset: %s", e)

        try:
            await self.reset_hard()
        except Exception as e:
            logger.error("Hard reset failed: %s", e)
            raise HandleUnavailableError(
                "Training history storage is unavailable; reset did not help"
            ) from e

    async def check_healthy(self) -> bool:
        """Probe the handle with a trivial read. Never raises."""
        try:
            conn = await self.acquire()
            await conn.execute_fetchall("SELECT 1")
        except Exception as e:
            logger.warning("Database health check failed: %s", e)
            return False
        return True

    async def close(self) -> None:
        """Close the handle if open. Close errors are logged, not raised."""
        conn, self._conn = self._conn, None
        self._state = LifecycleState.CLOSED
        if conn is None:
            return
        try:
            await conn.close()
        except Exception as e:
            logger.warning("Error closing database handle: %s", e)

    async def _open(self) -> None:
        self._state = LifecycleState.INITIALIZING
        conn = None
        try:
            logger.info("Opening training-history database %s", self.db_path)
            conn = await open_connection(self.db_path)
            await ensure_schema(conn)
            await self.mirror.restore_if_empty(conn)
        except Exception:
            logger.exception("Training-history database initialization failed")
            if conn is not None:
                try:
                    await conn.close()
                except Exception as close_error:
                    logger.warning("Error closing failed handle: %s", close_error)
            self._conn = None
            self._state = LifecycleState.CLOSED
            raise
        self._conn = conn
        self._state = LifecycleState.READY
        logger.info("Training-history database ready")


__all__ = ["LifecycleState", "DatabaseLifecycle"]
