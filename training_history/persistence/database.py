"""SQLite database primitives for the training-history store."""

import logging
import sqlite3
from pathlib import Path

import aiosqlite

from training_history.errors import SchemaError

logger = logging.getLogger(__name__)

TABLES = ("training_sessions", "exercises", "exercise_sets")


async def open_connection(db_path: Path) -> aiosqlite.Connection:
    """Open (or create) the database file without touching the schema.

    The connection runs in autocommit mode; multi-statement units demarcate
    their own transactions (see ``transaction.run_atomic``). Foreign keys are
    enabled so child rows cascade with their parent.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(str(db_path), isolation_level=None)
    try:
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")
    except Exception:
        await conn.close()
        raise
    return conn


async def ensure_schema(conn: aiosqlite.Connection) -> None:
    """Create the three tables if they don't exist. Never destructive."""
    try:
        await conn.executescript(_SCHEMA_SQL)
    except sqlite3.Error as e:
        raise SchemaError(f"Could not create training-history schema: {e}") from e

    missing = [t for t in TABLES if not await table_exists(conn, t)]
    if missing:
        raise SchemaError(f"Schema incomplete, missing tables: {', '.join(missing)}")
    logger.info("Training-history schema ready")


async def table_exists(conn: aiosqlite.Connection, table: str) -> bool:
    """Return True if *table* exists in the database."""
    rows = await conn.execute_fetchall(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
        (table,),
    )
    return len(rows) > 0


def sidecar_paths(db_path: Path) -> list[Path]:
    """Return the database file and the WAL files SQLite keeps beside it."""
    return [db_path, Path(f"{db_path}-wal"), Path(f"{db_path}-shm")]


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS training_sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    routine_name TEXT NOT NULL,
    user_name TEXT NOT NULL,
    date TEXT NOT NULL,
    duration INTEGER NOT NULL,
    volume REAL NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_training_sessions_user ON training_sessions(user_id, date);

CREATE TABLE IF NOT EXISTS exercises (
    id TEXT PRIMARY KEY,
    training_session_id TEXT NOT NULL REFERENCES training_sessions(id) ON DELETE CASCADE,
    exercise_id TEXT NOT NULL,
    exercise_name TEXT NOT NULL,
    muscle_group TEXT,
    equipment TEXT
);

CREATE INDEX IF NOT EXISTS idx_exercises_session ON exercises(training_session_id);

CREATE TABLE IF NOT EXISTS exercise_sets (
    id TEXT NOT NULL,
    exercise_id TEXT NOT NULL REFERENCES exercises(id) ON DELETE CASCADE,
    weight TEXT NOT NULL,
    reps TEXT NOT NULL,
    completed INTEGER NOT NULL,
    is_failure_set INTEGER NOT NULL,
    PRIMARY KEY (exercise_id, id)
);
"""


__all__ = ["TABLES", "open_connection", "ensure_schema", "table_exists", "sidecar_paths"]
