"""Training-session store: row-level CRUD over a borrowed connection."""

from typing import Optional

import aiosqlite

from training_history.models import (
    ExerciseSet,
    TrainingExercise,
    TrainingSession,
    exercise_row_ids,
)


class SessionStore:
    """CRUD operations for sessions, their exercises and their sets.

    Mutating methods issue several statements and must run inside
    ``run_atomic``; they never commit on their own.
    """

    @staticmethod
    async def insert(conn: aiosqlite.Connection, session: TrainingSession) -> None:
        """Insert the session row, then each exercise row and its set rows."""
        await conn.execute(
            """INSERT INTO training_sessions
               (id, user_id, routine_name, user_name, date, duration,
                volume, description, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (session.id, session.user_id, session.routine_name,
             session.user_name, session.date, session.duration,
             session.volume, session.description, session.created_at),
        )

        for row_id, exercise in zip(exercise_row_ids(session), session.exercises):
            await conn.execute(
                """INSERT INTO exercises
                   (id, training_session_id, exercise_id, exercise_name,
                    muscle_group, equipment)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (row_id, session.id, exercise.exercise_id, exercise.exercise_name,
                 exercise.muscle_group, exercise.equipment),
            )
            await conn.executemany(
                """INSERT INTO exercise_sets
                   (id, exercise_id, weight, reps, completed, is_failure_set)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                [(s.id, row_id, s.weight, s.reps, int(s.completed),
                  int(s.is_failure_set)) for s in exercise.sets],
            )

    @staticmethod
    async def replace(conn: aiosqlite.Connection, session: TrainingSession) -> None:
        """Delete any stored graph for ``session.id`` and insert *session*."""
        await SessionStore.delete(conn, session.id)
        await SessionStore.insert(conn, session)

    @staticmethod
    async def delete(conn: aiosqlite.Connection, session_id: str) -> bool:
        """Delete sets, then exercises, then the session row.

        Returns True if a session row was deleted.
        """
        await conn.execute(
            """DELETE FROM exercise_sets WHERE exercise_id IN (
                   SELECT id FROM exercises WHERE training_session_id = ?
               )""",
            (session_id,),
        )
        await conn.execute(
            "DELETE FROM exercises WHERE training_session_id = ?", (session_id,)
        )
        cursor = await conn.execute(
            "DELETE FROM training_sessions WHERE id = ?", (session_id,)
        )
        return cursor.rowcount > 0

    @staticmethod
    async def delete_all(conn: aiosqlite.Connection) -> None:
        await conn.execute("DELETE FROM exercise_sets")
        await conn.execute("DELETE FROM exercises")
        await conn.execute("DELETE FROM training_sessions")

    @staticmethod
    async def get(conn: aiosqlite.Connection, session_id: str) -> Optional[TrainingSession]:
        """Load a single session with its exercises and sets."""
        rows = await conn.execute_fetchall(
            "SELECT * FROM training_sessions WHERE id = ?", (session_id,)
        )
        if not rows:
            return None
        return await SessionStore._load_graph(conn, rows[0])

    @staticmethod
    async def list_for_user(conn: aiosqlite.Connection, user_id: str) -> list[TrainingSession]:
        """List a user's sessions, newest ``date`` first, fully loaded."""
        rows = await conn.execute_fetchall(
            "SELECT * FROM training_sessions WHERE user_id = ? ORDER BY date DESC, rowid",
            (user_id,),
        )
        return [await SessionStore._load_graph(conn, r) for r in rows]

    @staticmethod
    async def summary_rows(conn: aiosqlite.Connection, user_id: str) -> list[dict]:
        """Return ``date``, ``duration`` and ``volume`` of every session of a user."""
        rows = await conn.execute_fetchall(
            "SELECT date, duration, volume FROM training_sessions WHERE user_id = ? ORDER BY date",
            (user_id,),
        )
        return [dict(r) for r in rows]

    @staticmethod
    async def count(conn: aiosqlite.Connection, table: str = "training_sessions") -> int:
        rows = await conn.execute_fetchall(f"SELECT COUNT(*) FROM {table}")
        return rows[0][0]

    @staticmethod
    async def _load_graph(conn: aiosqlite.Connection, row: aiosqlite.Row) -> TrainingSession:
        exercise_rows = await conn.execute_fetchall(
            "SELECT * FROM exercises WHERE training_session_id = ? ORDER BY rowid",
            (row["id"],),
        )
        exercises = []
        for ex in exercise_rows:
            set_rows = await conn.execute_fetchall(
                "SELECT * FROM exercise_sets WHERE exercise_id = ? ORDER BY rowid",
                (ex["id"],),
            )
            exercises.append(SessionStore._row_to_exercise(ex, set_rows))
        return SessionStore._row_to_session(row, exercises)

    @staticmethod
    def _row_to_session(row: aiosqlite.Row, exercises: list[TrainingExercise]) -> TrainingSession:
        return TrainingSession(
            id=row["id"],
            user_id=row["user_id"],
            routine_name=row["routine_name"],
            user_name=row["user_name"],
            date=row["date"],
            duration=int(row["duration"]),
            volume=float(row["volume"]),
            description=row["description"],
            created_at=row["created_at"],
            exercises=exercises,
        )

    @staticmethod
    def _row_to_exercise(row: aiosqlite.Row, set_rows) -> TrainingExercise:
        return TrainingExercise(
            exercise_id=row["exercise_id"],
            exercise_name=row["exercise_name"],
            muscle_group=row["muscle_group"],
            equipment=row["equipment"],
            sets=[
                ExerciseSet(
                    id=s["id"],
                    weight=s["weight"],
                    reps=s["reps"],
                    completed=bool(s["completed"]),
                    is_failure_set=bool(s["is_failure_set"]),
                )
                for s in set_rows
            ],
        )


__all__ = ["SessionStore"]
