"""Flat key/value mirror of the relational store.

After every committed mutation the whole store is serialised into one JSON
blob (see ``schemas.BackupSnapshot``) under a single key. At startup, an
empty relational store is refilled from that blob. The mirror is
best-effort redundancy: its failures are logged and never reach callers.
"""

import logging
from datetime import datetime, timezone

import aiosqlite
from pydantic import ValidationError

from training_history.errors import BackupRestoreError
from training_history.persistence.kv_store import KeyValueStore
from training_history.persistence.schemas import BackupSnapshot
from training_history.persistence.session_store import SessionStore
from training_history.persistence.transaction import run_atomic

logger = logging.getLogger(__name__)


class BackupMirror:
    """Snapshot/restore of all three tables through a key/value slot."""

    def __init__(self, kv_store: KeyValueStore, key: str):
        self.kv_store = kv_store
        self.key = key

    async def snapshot(self, conn: aiosqlite.Connection) -> bool:
        """Replace the stored blob with the current table contents.

        Returns False (after logging) if the snapshot could not be written.
        """
        try:
            blob = await self._build_snapshot(conn)
            await self.kv_store.set(self.key, blob.model_dump_json(by_alias=True))
        except Exception as e:
            logger.warning("Backup snapshot failed: %s", e)
            return False
        logger.debug(
            "Backup snapshot written: %d sessions, %d exercises, %d sets",
            len(blob.sessions), len(blob.exercises), len(blob.sets),
        )
        return True

    async def restore_if_empty(self, conn: aiosqlite.Connection) -> bool:
        """Refill an empty store from the blob. Returns True if rows were restored.

        A non-empty store always wins: nothing is merged. Any failure is logged
        and startup continues with whatever the store already holds.
        """
        try:
            return await self._restore(conn)
        except Exception as e:
            logger.warning("Backup restore failed, keeping current data: %s", e)
            return False

    async def load(self) -> BackupSnapshot | None:
        """Parse the stored blob, or None if there is none."""
        raw = await self.kv_store.get(self.key)
        if not raw:
            return None
        try:
            return BackupSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise BackupRestoreError(f"Backup blob is malformed: {e}") from e

    async def clear(self) -> bool:
        """Delete the stored blob. Returns False (after logging) on failure."""
        try:
            await self.kv_store.remove(self.key)
        except Exception as e:
            logger.warning("Backup clear failed: %s", e)
            return False
        return True

    async def _build_snapshot(self, conn: aiosqlite.Connection) -> BackupSnapshot:
        sessions = await conn.execute_fetchall("SELECT * FROM training_sessions ORDER BY rowid")
        exercises = await conn.execute_fetchall("SELECT * FROM exercises ORDER BY rowid")
        sets = await conn.execute_fetchall("SELECT * FROM exercise_sets ORDER BY rowid")
        return BackupSnapshot.model_validate({
            "sessions": [dict(r) for r in sessions],
            "exercises": [dict(r) for r in exercises],
            "sets": [dict(r) for r in sets],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    async def _restore(self, conn: aiosqlite.Connection) -> bool:
        if await SessionStore.count(conn) > 0:
            logger.info("Training history already has data; skipping backup restore")
            return False

        snapshot = await self.load()
        if snapshot is None:
            logger.info("No backup to restore")
            return False

        async def _insert_rows(c: aiosqlite.Connection) -> None:
            await c.executemany(
                """INSERT OR IGNORE INTO training_sessions
                   (id, user_id, routine_name, user_name, date, duration,
                    volume, description, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [(s.id, s.user_id, s.routine_name, s.user_name, s.date,
                  s.duration, s.volume, s.description, s.created_at)
                 for s in snapshot.sessions],
            )
            await c.executemany(
                """INSERT OR IGNORE INTO exercises
                   (id, training_session_id, exercise_id, exercise_name,
                    muscle_group, equipment)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                [(e.id, e.training_session_id, e.exercise_id, e.exercise_name,
                  e.muscle_group, e.equipment)
                 for e in snapshot.exercises],
            )
            await c.executemany(
                """INSERT OR IGNORE INTO exercise_sets
                   (id, exercise_id, weight, reps, completed, is_failure_set)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                [(s.id, s.exercise_id, s.weight, s.reps, s.completed, s.is_failure_set)
                 for s in snapshot.sets],
            )

        await run_atomic(conn, _insert_rows, label="backup restore")
        logger.info(
            "Restored %d sessions from backup taken at %s",
            len(snapshot.sessions), snapshot.timestamp,
        )
        return True


__all__ = ["BackupMirror"]
