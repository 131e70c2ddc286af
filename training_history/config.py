"""
Configuration constants for the training-history store.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Database file name inside the data directory
DB_FILE = "training_history.db"

# Key/value slot holding the flat backup blob
BACKUP_KEY = "training_history_backup"

# File backing the JSON key/value store
KV_FILE = "storage.json"

DATA_DIR_ENV = "TRAINING_HISTORY_DATA_DIR"
_DB_FILE_ENV = "TRAINING_HISTORY_DB_FILE"
_BACKUP_KEY_ENV = "TRAINING_HISTORY_BACKUP_KEY"

_DEFAULT_DATA_DIR = Path.home() / ".training-history"

_dotenv_loaded = False


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    kv_path: Path
    backup_key: str


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name, "").strip()
    return raw or default


def _ensure_dotenv() -> None:
    global _dotenv_loaded
    if not _dotenv_loaded:
        load_dotenv()
        _dotenv_loaded = True


def get_data_dir() -> Path:
    """Return the directory holding the database and the key/value file.

    ``TRAINING_HISTORY_DATA_DIR`` overrides the per-user default.
    """
    override = os.environ.get(DATA_DIR_ENV, "").strip()
    if override:
        return Path(override)
    return _DEFAULT_DATA_DIR


def load_settings(data_dir: Path | None = None) -> Settings:
    """Resolve settings from ``.env``, the environment and defaults.

    An explicit ``data_dir`` wins over ``TRAINING_HISTORY_DATA_DIR``.
    """
    _ensure_dotenv()
    base = Path(data_dir) if data_dir is not None else get_data_dir()
    return Settings(
        data_dir=base,
        db_path=base / _env_str(_DB_FILE_ENV, DB_FILE),
        kv_path=base / KV_FILE,
        backup_key=_env_str(_BACKUP_KEY_ENV, BACKUP_KEY),
    )
