"""Training-history workflow service.

Public entry point for the rest of the app: every call borrows the handle
from the lifecycle controller, runs mutations as one atomic unit and
refreshes the backup mirror after each commit.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
import time
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

from training_history.config import Settings, load_settings
from training_history.errors import HandleUnavailableError, PersistenceError
from training_history.lifecycle import DatabaseLifecycle
from training_history.models import TrainingSession, UserStats
from training_history.persistence import BackupMirror, JsonFileKeyValueStore, SessionStore, run_atomic
from training_history.stats import summarize

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A closed aiosqlite handle raises ValueError rather than sqlite3.Error.
_STORE_ERRORS = (sqlite3.Error, ValueError)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]")


def _check_session(session: TrainingSession) -> None:
    """Reject sessions with a negative duration or volume."""
    if session.duration < 0:
        raise PersistenceError(f"Session {session.id} has negative duration {session.duration}")
    if session.volume < 0:
        raise PersistenceError(f"Session {session.id} has negative volume {session.volume}")


class TrainingHistoryService:
    """Save, load, delete and summarise a user's workout sessions."""

    def __init__(self, *, lifecycle: DatabaseLifecycle, mirror: BackupMirror):
        self.lifecycle = lifecycle
        self.mirror = mirror

    async def save_session(self, session: TrainingSession) -> None:
        """Store the full session graph, replacing any graph with the same id."""
        _check_session(session)
        conn = await self.lifecycle.acquire()
        logger.info(
            "Saving session %s (%d exercises, %d sets)",
            session.id, len(session.exercises), session.set_count,
        )

        async def _write(c) -> None:
            await SessionStore.replace(c, session)

        await run_atomic(conn, _write, label=f"save session {session.id}")
        await self.mirror.snapshot(conn)

    async def get_sessions(self, user_id: str) -> list[TrainingSession]:
        """All sessions of a user, newest first, with exercises and sets loaded."""
        conn = await self.lifecycle.acquire()
        try:
            return await SessionStore.list_for_user(conn, user_id)
        except _STORE_ERRORS as e:
            raise PersistenceError(f"Could not load sessions for user {user_id}: {e}") from e

    async def get_session(self, session_id: str) -> Optional[TrainingSession]:
        """The session with *session_id*, or None if there is none."""
        conn = await self.lifecycle.acquire()
        try:
            return await SessionStore.get(conn, session_id)
        except _STORE_ERRORS as e:
            raise PersistenceError(f"Could not load session {session_id}: {e}") from e

    async def delete_session(self, session_id: str) -> None:
        """Delete a session with its exercises and sets. Unknown ids are a no-op."""
        conn = await self.lifecycle.acquire()

        async def _delete(c) -> bool:
            return await SessionStore.delete(c, session_id)

        deleted = await run_atomic(conn, _delete, label=f"delete session {session_id}")
        if deleted:
            await self.mirror.snapshot(conn)

    async def compute_user_stats(self, user_id: str, today: Optional[date] = None) -> UserStats:
        conn = await self.lifecycle.acquire()
        try:
            rows = await SessionStore.summary_rows(conn, user_id)
        except _STORE_ERRORS as e:
            raise PersistenceError(f"Could not load stats for user {user_id}: {e}") from e
        return summarize(rows, today=today)

    async def export_data(self, user_id: str, directory: Path) -> Path:
        """Write a user's sessions to a JSON file in *directory*; return its path."""
        sessions = await self.get_sessions(user_id)
        payload = {
            "userId": user_id,
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "sessions": [s.to_dict() for s in sessions],
        }
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        safe_user = _UNSAFE_FILENAME_CHARS.sub("_", user_id)
        path = directory / f"training_history_{safe_user}_{int(time.time() * 1000)}.json"
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Exported %d sessions for user %s to %s", len(sessions), user_id, path)
        return path

    async def import_data(self, path: Path) -> int:
        """Save every session from an export file in one atomic unit.

        Returns the number of sessions imported.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
            sessions = [TrainingSession.from_dict(s) for s in data["sessions"]]
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not read import file {path}: {e}") from e
        for session in sessions:
            _check_session(session)

        conn = await self.lifecycle.acquire()

        async def _write_all(c) -> None:
            for session in sessions:
                await SessionStore.replace(c, session)

        await run_atomic(conn, _write_all, label=f"import {path}")
        await self.mirror.snapshot(conn)
        logger.info("Imported %d sessions from %s", len(sessions), path)
        return len(sessions)

    async def clear_all_data(self) -> None:
        """Delete every stored session and the backup blob."""
        conn = await self.lifecycle.acquire()
        await run_atomic(conn, SessionStore.delete_all, label="clear all data")
        await self.mirror.clear()
        logger.info("All training history deleted")

    async def run_with_recovery(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run *operation*; on a storage failure recover the handle and retry once.

        Raises ``HandleUnavailableError`` if recovery is exhausted; a failure of
        the retry itself propagates unchanged.
        """
        try:
            return await operation()
        except (PersistenceError, HandleUnavailableError) as e:
            logger.warning("Storage operation failed, recovering: %s", e)
        await self.lifecycle.recover()
        return await operation()


def create_training_history(settings: Settings | None = None) -> TrainingHistoryService:
    """Wire key/value store, backup mirror, lifecycle and service together."""
    settings = settings or load_settings()
    mirror = BackupMirror(JsonFileKeyValueStore(settings.kv_path), settings.backup_key)
    lifecycle = DatabaseLifecycle(settings.db_path, mirror)
    return TrainingHistoryService(lifecycle=lifecycle, mirror=mirror)


__all__ = ["TrainingHistoryService", "create_training_history"]
