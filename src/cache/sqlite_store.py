# src/cache/sqlite_store.py - v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. Pattern deletes use GLOB so
they run in one statement.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from pydantic import ValidationError

from docuforge.cache.base_cache_store import BaseCacheStore
from docuforge.cache.models import CacheEntry
from docuforge.core.errors import CacheUnavailable

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    stage TEXT NOT NULL,
    document_type TEXT,
    provider TEXT NOT NULL,
    expires_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_stage ON cache_entries(stage);
CREATE INDEX IF NOT EXISTS idx_provider ON cache_entries(provider);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store for better performance at scale."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        row = self._execute("SELECT data FROM cache_entries WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return self._decode(key, row[0])

    async def put(self, entry: CacheEntry) -> None:
        """Store a cache entry (upsert)."""
        self._execute(
            """INSERT OR REPLACE INTO cache_entries
               (key, data, stage, document_type, provider, expires_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                entry.key,
                entry.model_dump_json(),
                entry.stage.value,
                entry.document_type,
                entry.provider,
                entry.expires_at.isoformat(),
            ),
        )
        self._conn.commit()

    async def delete(self, key: str) -> bool:
        """Remove a cache entry."""
        cursor = self._execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        self._conn.commit()
        return cursor.rowcount > 0

    async def delete_matching(self, pattern: str) -> int:
        cursor = self._execute("DELETE FROM cache_entries WHERE key GLOB ?", (pattern,))
        self._conn.commit()
        return cursor.rowcount

    async def list_entries(self, pattern: str = "*") -> list[CacheEntry]:
        """List cached entries whose key matches ``pattern``."""
        rows = self._execute(
            "SELECT key, data FROM cache_entries WHERE key GLOB ?", (pattern,)
        ).fetchall()
        entries: list[CacheEntry] = []
        for key, data in rows:
            entry = self._decode(key, data)
            if entry is not None:
                entries.append(entry)
        return entries

    async def ping(self) -> bool:
        try:
            self._conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            return False
        return True

    async def memory_usage(self) -> int:
        row = self._execute(
            "SELECT COALESCE(SUM(LENGTH(data)), 0) FROM cache_entries"
        ).fetchone()
        return int(row[0])

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise CacheUnavailable(f"SQLite cache error: {e}") from e

    @staticmethod
    def _decode(key: str, data: str) -> CacheEntry | None:
        try:
            return CacheEntry(**json.loads(data))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None
