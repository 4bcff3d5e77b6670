"""
Storage Backend Module

Provides the durable key-value interface the ledger persists its state through,
with implementations for in-memory (testing) and SQLite (persistence). Values
are opaque text blobs; the ledger decides what goes in them.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Union
from datetime import datetime, timezone
from pathlib import Path
import sqlite3
import threading

from .errors import PersistenceError


class StorageInterface(ABC):
    """Abstract interface for key-value storage backends"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Read the value stored under key, None if absent"""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value"""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key, returning True if it existed"""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """List stored keys"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def exists(self, key: str) -> bool:
        """Check if a key is stored"""
        return self.get(key) is not None


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise PersistenceError(f"Value for {key} must be text, got {type(value).__name__}")
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    table = "kv_store"

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        try:
            self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row

            # Enable WAL mode for better concurrent access
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")

            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._connection.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open SQLite store at {self.db_path}: {e}") from e

    def _require_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise PersistenceError("SQLite store is closed")
        return self._connection

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            try:
                cursor = self._require_connection().execute(f"""
                    SELECT value FROM {self.table} WHERE key = ?
                """, (key,))
                row = cursor.fetchone()
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to read {key}: {e}") from e
            if row:
                return row['value']
            return None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            connection = self._require_connection()
            now = datetime.now(timezone.utc).isoformat()
            try:
                connection.execute(f"""
                    INSERT OR REPLACE INTO {self.table} (key, value, updated_at)
                    VALUES (?, ?, ?)
                """, (key, value, now))
                connection.commit()
            except sqlite3.Error as e:
                connection.rollback()
                raise PersistenceError(f"Failed to write {key}: {e}") from e

    def delete(self, key: str) -> bool:
        with self._lock:
            connection = self._require_connection()
            try:
                cursor = connection.execute(f"""
                    DELETE FROM {self.table} WHERE key = ?
                """, (key,))
                connection.commit()
            except sqlite3.Error as e:
                connection.rollback()
                raise PersistenceError(f"Failed to delete {key}: {e}") from e
            return cursor.rowcount > 0

    def keys(self) -> List[str]:
        with self._lock:
            try:
                cursor = self._require_connection().execute(f"""
                    SELECT key FROM {self.table} ORDER BY key
                """)
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to list keys: {e}") from e
            return [row['key'] for row in cursor.fetchall()]

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(url: str) -> StorageInterface:
    """
    Build a storage backend from a URL

    Supported forms are ``memory://`` and ``sqlite:///path/to/file.db``
    (``sqlite://`` alone opens an in-memory database).
    """
    if url.startswith("memory://"):
        return InMemoryStorage()
    if url.startswith("sqlite://"):
        path = url[len("sqlite://"):]
        if path.startswith("/"):
            path = path[1:]
        return SQLiteStorage(path or ":memory:")
    raise ValueError(f"Unsupported storage URL: {url}")
