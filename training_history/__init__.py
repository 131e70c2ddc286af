"""Local workout-history store with a flat-file backup mirror."""

__version__ = "1.0.0"

from .errors import (
    BackupRestoreError,
    HandleUnavailableError,
    HistoryStoreError,
    PersistenceError,
    SchemaError,
    TransactionError,
)
from .lifecycle import DatabaseLifecycle, LifecycleState
from .models import ExerciseSet, TrainingExercise, TrainingSession, UserStats, compute_volume
from .services import TrainingHistoryService, create_training_history

__all__ = [
    "__version__",
    "HistoryStoreError",
    "SchemaError",
    "PersistenceError",
    "TransactionError",
    "BackupRestoreError",
    "HandleUnavailableError",
    "DatabaseLifecycle",
    "LifecycleState",
    "ExerciseSet",
    "TrainingExercise",
    "TrainingSession",
    "UserStats",
    "compute_volume",
    "TrainingHistoryService",
    "create_training_history",
]
