"""Pydantic contract for the flat backup blob.

Column names are snake_case in SQLite and camelCase in the blob; the
aliases below are the only place the two spellings meet.
"""

from pydantic import BaseModel, ConfigDict, Field


class _BlobModel(BaseModel):
    """Base model that accepts either spelling and ignores unknown keys."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SessionRow(_BlobModel):
    id: str
    user_id: str = Field(alias="userId")
    routine_name: str = Field(alias="routineName")
    user_name: str = Field(alias="userName")
    date: str
    duration: int = Field(ge=0)
    volume: float = Field(ge=0)
    description: str | None = None
    created_at: str = Field(alias="createdAt")


class ExerciseRow(_BlobModel):
    id: str
    training_session_id: str = Field(alias="trainingSessionId")
    exercise_id: str = Field(alias="exerciseId")
    exercise_name: str = Field(alias="exerciseName")
    muscle_group: str | None = Field(default=None, alias="muscleGroup")
    equipment: str | None = None


class SetRow(_BlobModel):
    id: str
    exercise_id: str = Field(alias="exerciseId")
    weight: str = ""
    reps: str = ""
    completed: int = Field(ge=0, le=1)
    is_failure_set: int = Field(ge=0, le=1, alias="isFailureSet")


class BackupSnapshot(_BlobModel):
    sessions: list[SessionRow] = Field(default_factory=list)
    exercises: list[ExerciseRow] = Field(default_factory=list)
    sets: list[SetRow] = Field(default_factory=list)
    timestamp: str


__all__ = ["SessionRow", "ExerciseRow", "SetRow", "BackupSnapshot"]
