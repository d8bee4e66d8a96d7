"""
Favorites persisted through a simple key-value store.

The favorites set is stored under a single key as a JSON list of bundle
identifiers. The store is injected; discovery and launching never read it.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional, Protocol, Set

from loguru import logger


class KeyValueStore(Protocol):
    """Minimal string key-value store."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool: ...


class InMemoryKeyValueStore:
    """Dictionary-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None


class SQLiteKeyValueStore:
    """
    SQLite-based persistent key-value store.

    Survives restarts.
    """

    def __init__(self, db_path: Path | str):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _get_connection(self):
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def get(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self._get_connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO kv (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
            """, (key, value))

    def delete(self, key: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            return cursor.rowcount > 0


class FavoritesManager:
    """Set of favorite bundle identifiers kept in a KeyValueStore."""

    def __init__(self, store: KeyValueStore, key: str = "favorites"):
        self.store = store
        self.key = key
        self._lock = threading.Lock()

    def favorites(self) -> Set[str]:
        raw = self.store.get(self.key)
        if not raw:
            return set()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable favorites data: {e}")
            return set()
        if not isinstance(data, list):
            logger.warning("Ignoring favorites data that is not a list")
            return set()
        return {item for item in data if isinstance(item, str) and item}

    def is_favorite(self, bundle_identifier: str) -> bool:
        return bool(bundle_identifier) and bundle_identifier in self.favorites()

    def add(self, bundle_identifier: str) -> bool:
        """Add a favorite. Returns False if it was already present."""
        self._require(bundle_identifier)
        with self._lock:
            current = self.favorites()
            if bundle_identifier in current:
                return False
            current.add(bundle_identifier)
            self._save(current)
        logger.info(f"Added favorite: {bundle_identifier}")
        return True

    def remove(self, bundle_identifier: str) -> bool:
        """Remove a favorite. Returns False if it was not present."""
        self._require(bundle_identifier)
        with self._lock:
            current = self.favorites()
            if bundle_identifier not in current:
                return False
            current.discard(bundle_identifier)
            self._save(current)
        logger.info(f"Removed favorite: {bundle_identifier}")
        return True

    def toggle(self, bundle_identifier: str) -> bool:
        """Flip favorite state. Returns the new state."""
        if self.is_favorite(bundle_identifier):
            self.remove(bundle_identifier)
            return False
        self.add(bundle_identifier)
        return True

    def _save(self, favorites: Set[str]) -> None:
        self.store.set(self.key, json.dumps(sorted(favorites)))

    @staticmethod
    def _require(bundle_identifier: str) -> None:
        if not bundle_identifier:
            raise ValueError("A bundle identifier is required")
