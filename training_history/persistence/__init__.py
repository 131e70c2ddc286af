"""Persistence layer (database, transactions, stores and backup mirror)."""

from .backup import BackupMirror
from .database import TABLES, ensure_schema, open_connection, sidecar_paths, table_exists
from .kv_store import JsonFileKeyValueStore, KeyValueStore
from .schemas import BackupSnapshot, ExerciseRow, SessionRow, SetRow
from .session_store import SessionStore
from .transaction import run_atomic
