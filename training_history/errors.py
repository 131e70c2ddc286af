"""Exceptions raised by the training-history store."""


class HistoryStoreError(Exception):
    """Base exception for training-history store failures."""


class SchemaError(HistoryStoreError):
    """Raised when the relational schema could not be created."""


class PersistenceError(HistoryStoreError):
    """Raised when a read or write against the relational store fails."""


class TransactionError(PersistenceError):
    """Raised when an atomic unit of work failed and was rolled back.

    ``original`` is the exception that aborted the unit, whichever inner
    statement raised it.
    """

    def __init__(self, message: str, original: BaseException | None = None):
        super().__init__(message)
        self.original = original


class BackupRestoreError(HistoryStoreError):
    """Raised inside the backup mirror; never escapes it."""


class HandleUnavailableError(HistoryStoreError):
    """Raised when no usable database handle could be obtained."""
