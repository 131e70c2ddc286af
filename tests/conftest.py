"""
Shared fixtures for training-history tests.
"""

import pytest
from pathlib import Path

from training_history.config import BACKUP_KEY
from training_history.lifecycle import DatabaseLifecycle
from training_history.models import ExerciseSet, TrainingExercise, TrainingSession, compute_volume
from training_history.persistence import (
    BackupMirror,
    JsonFileKeyValueStore,
    ensure_schema,
    open_connection,
)
from training_history.services import TrainingHistoryService


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "training_history.db"


@pytest.fixture
def kv_store(tmp_path):
    """A JSON-file key/value store in the temp directory."""
    return JsonFileKeyValueStore(tmp_path / "storage.json")


@pytest.fixture
def mirror(kv_store):
    return BackupMirror(kv_store, BACKUP_KEY)


@pytest.fixture
async def db_conn(db_path):
    """An open connection with the training-history schema."""
    conn = await open_connection(db_path)
    await ensure_schema(conn)
    yield conn
    await conn.close()


@pytest.fixture
async def lifecycle(db_path, mirror):
    """An initialized lifecycle controller, closed after the test."""
    lc = DatabaseLifecycle(db_path, mirror)
    await lc.initialize()
    yield lc
    await lc.close()


@pytest.fixture
def service(lifecycle, mirror):
    return TrainingHistoryService(lifecycle=lifecycle, mirror=mirror)


@pytest.fixture
def make_session():
    """Build a TrainingSession with two exercises.

    Usage:
        session = make_session("s1", date="2026-10-18T09:00:00")
    """
    def _make(session_id: str = "s1", *, user_id: str = "u1",
              date: str = "2026-10-18T09:00:00", exercises=None,
              duration: int = 45) -> TrainingSession:
        if exercises is None:
            exercises = [
                TrainingExercise(
                    exercise_id="bench",
                    exercise_name="Bench Press",
                    muscle_group="chest",
                    equipment="barbell",
                    sets=[
                        ExerciseSet(id=f"{session_id}-b1", weight="60", reps="10", completed=True),
                        ExerciseSet(id=f"{session_id}-b2", weight="70", reps="8", completed=True),
                        ExerciseSet(id=f"{session_id}-bf", weight="50", reps="12",
                                    completed=True, is_failure_set=True),
                    ],
                ),
                TrainingExercise(
                    exercise_id="row",
                    exercise_name="Cable Row",
                    sets=[
                        ExerciseSet(id=f"{session_id}-r1", weight="40", reps="12", completed=True),
                        ExerciseSet(id=f"{session_id}-r2", weight="", reps="", completed=False),
                    ],
                ),
            ]
        return TrainingSession(
            id=session_id,
            user_id=user_id,
            routine_name="Push/Pull",
            user_name="Alex",
            date=date,
            duration=duration,
            volume=compute_volume(exercises),
            created_at=date,
            exercises=exercises,
            description="Felt strong",
        )
    return _make
