"""
Durable viewer state: the last connected bundle path, restored at start-up.
"""

import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, Optional, Union

from .config import ensure_state_directory, get_state_db_path

LAST_BUNDLE_PATH_KEY = "last_bundle_path"


class IStateStore(ABC):
    """Key-value store for the viewer's persisted state."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def clear(self, key: str) -> None:
        pass

    def get_last_path(self) -> Optional[str]:
        return self.get(LAST_BUNDLE_PATH_KEY)

    def save_last_path(self, path: str) -> None:
        self.set(LAST_BUNDLE_PATH_KEY, path)

    def clear_last_path(self) -> None:
        self.clear(LAST_BUNDLE_PATH_KEY)


class InMemoryStateStore(IStateStore):
    """Process-local state store, nothing survives a restart."""

    def __init__(self):
        self._values: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def clear(self, key: str) -> None:
        self._values.pop(key, None)


class SqliteStateStore(IStateStore):
    """SQLite-backed state store."""

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        if db_path is None:
            ensure_state_directory()
            db_path = get_state_db_path()
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS viewer_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM viewer_state WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute('''
                INSERT INTO viewer_state (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            ''', (key, value))
            conn.commit()

    def clear(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM viewer_state WHERE key = ?", (key,))
            conn.commit()
