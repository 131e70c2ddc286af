"""Workflow services built on the persistence layer."""

from .history_service import TrainingHistoryService, create_training_history
