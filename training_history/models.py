"""
Data structures for the training-history store.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ExerciseSet:
    """One set of an exercise. Weight and reps are free text from the UI."""
    id: str
    weight: str = ""
    reps: str = ""
    completed: bool = False
    is_failure_set: bool = False   # final to-failure set, numbered separately

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "weight": self.weight,
            "reps": self.reps,
            "completed": self.completed,
            "isFailureSet": self.is_failure_set,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExerciseSet":
        return cls(
            id=str(data["id"]),
            weight=_text(data.get("weight")),
            reps=_text(data.get("reps")),
            completed=bool(data.get("completed", False)),
            is_failure_set=bool(data.get("isFailureSet", False)),
        )


@dataclass
class TrainingExercise:
    """A catalog exercise as performed within one session."""
    exercise_id: str               # catalog reference
    exercise_name: str             # name snapshot at save time
    sets: list[ExerciseSet] = field(default_factory=list)
    muscle_group: Optional[str] = None
    equipment: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "exerciseId": self.exercise_id,
            "exerciseName": self.exercise_name,
            "sets": [s.to_dict() for s in self.sets],
            "muscleGroup": self.muscle_group,
            "equipment": self.equipment,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrainingExercise":
        return cls(
            exercise_id=str(data["exerciseId"]),
            exercise_name=data.get("exerciseName", ""),
            sets=[ExerciseSet.from_dict(s) for s in data.get("sets", [])],
            muscle_group=data.get("muscleGroup"),
            equipment=data.get("equipment"),
        )


@dataclass
class TrainingSession:
    """A finished workout with its exercises, in the order they were performed."""
    id: str
    user_id: str
    routine_name: str
    user_name: str
    date: str                      # ISO-8601 instant
    duration: int                  # minutes
    volume: float                  # caller-computed, see compute_volume()
    created_at: str
    exercises: list[TrainingExercise] = field(default_factory=list)
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "routineName": self.routine_name,
            "userName": self.user_name,
            "date": self.date,
            "duration": self.duration,
            "volume": self.volume,
            "exercises": [e.to_dict() for e in self.exercises],
            "description": self.description,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrainingSession":
        """Create a TrainingSession from its camelCase dictionary form."""
        return cls(
            id=str(data["id"]),
            user_id=str(data["userId"]),
            routine_name=data.get("routineName", ""),
            user_name=data.get("userName", ""),
            date=data["date"],
            duration=int(data.get("duration", 0)),
            volume=float(data.get("volume", 0.0)),
            created_at=data.get("createdAt") or data["date"],
            exercises=[TrainingExercise.from_dict(e) for e in data.get("exercises", [])],
            description=data.get("description"),
        )

    @property
    def set_count(self) -> int:
        return sum(len(e.sets) for e in self.exercises)


@dataclass
class UserStats:
    total_sessions: int = 0
    total_volume: float = 0.0
    average_duration_minutes: float = 0.0
    current_streak_days: int = 0

    def to_dict(self) -> dict:
        return {
            "totalSessions": self.total_sessions,
            "totalVolume": self.total_volume,
            "averageDurationMinutes": self.average_duration_minutes,
            "currentStreakDays": self.current_streak_days,
        }


def _text(value) -> str:
    return "" if value is None else str(value)


def _as_number(text: str) -> Optional[float]:
    try:
        return float(text)
    except (TypeError, ValueError):
        return None


def compute_volume(exercises: list[TrainingExercise]) -> float:
    """Total weight x reps over completed sets, skipping non-numeric entries."""
    total = 0.0
    for exercise in exercises:
        for s in exercise.sets:
            if not s.completed:
                continue
            weight = _as_number(s.weight)
            reps = _as_number(s.reps)
            if weight is None or reps is None:
                continue
            total += weight * reps
    return total


def exercise_row_ids(session: TrainingSession) -> list[str]:
    """Return the exercise row identity for each exercise of *session*.

    The first occurrence of a catalog exercise is ``{sessionId}_{exerciseId}``;
    the n-th repeat within the same session gets an ``_{n}`` suffix.
    """
    seen: dict[str, int] = {}
    ids = []
    for exercise in session.exercises:
        n = seen.get(exercise.exercise_id, 0) + 1
        seen[exercise.exercise_id] = n
        base = f"{session.id}_{exercise.exercise_id}"
        ids.append(base if n == 1 else f"{base}_{n}")
    return ids
