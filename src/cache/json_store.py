# src/cache/json_store.py - v2
"""JSON file-based cache store (default CACHE_BACKEND=json).

One JSON file per entry under CACHE_ROOT. File names are digests of the
cache key so keys may contain any character; the key itself is stored in
the file and pattern matching runs against it.
"""

from __future__ import annotations

import hashlib
import json
import logging
from fnmatch import fnmatchcase
from pathlib import Path

from pydantic import ValidationError

from docuforge.cache.base_cache_store import BaseCacheStore
from docuforge.cache.models import CacheEntry
from docuforge.core.errors import CacheUnavailable

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        path = self._entry_path(key)
        if not path.exists():
            return None
        return self._read(path)

    async def put(self, entry: CacheEntry) -> None:
        """Store a cache entry."""
        path = self._entry_path(entry.key)
        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(entry.model_dump_json(), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            raise CacheUnavailable(f"Cannot write cache entry: {e}") from e

    async def delete(self, key: str) -> bool:
        """Remove a cache entry."""
        path = self._entry_path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheUnavailable(f"Cannot delete cache entry: {e}") from e
        return True

    async def delete_matching(self, pattern: str) -> int:
        count = 0
        for path, entry in self._iter_entries():
            if fnmatchcase(entry.key, pattern):
                path.unlink(missing_ok=True)
                count += 1
        return count

    async def list_entries(self, pattern: str = "*") -> list[CacheEntry]:
        """List all cached entries matching ``pattern``."""
        return [entry for _, entry in self._iter_entries() if fnmatchcase(entry.key, pattern)]

    async def ping(self) -> bool:
        return self._root.is_dir()

    async def memory_usage(self) -> int:
        if not self._root.is_dir():
            return 0
        return sum(p.stat().st_size for p in self._root.glob("*.json"))

    def _iter_entries(self):
        if not self._root.is_dir():
            raise CacheUnavailable(f"Cache root missing: {self._root}")
        for path in sorted(self._root.glob("*.json")):
            entry = self._read(path)
            if entry is not None:
                yield path, entry

    def _read(self, path: Path) -> CacheEntry | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry(**data)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to read cache entry %s: %s", path.name, e)
            return None

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key."""
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._root / f"{digest}.json"
