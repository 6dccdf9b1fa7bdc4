"""Client-side persistent cache of per-key feature sets.

The cache never raises to its caller: read failures degrade to a cache
miss and write failures are logged and dropped, whatever the store
raises.  Freshness is decided by the caller through
:meth:`PersistentCache.is_fresh`.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from regionfeed._constants import DEFAULT_CACHE_TTL_SECONDS
from regionfeed.exceptions import StorageError
from regionfeed.models._base import utcnow
from regionfeed.models.cache import CacheEntry
from regionfeed.models.feature import Feature

_logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Raw key/value backend.  Implementations raise :class:`StorageError`."""

    async def load(self, key: str) -> CacheEntry | None:
        ...

    async def save(self, entry: CacheEntry) -> None:
        ...


class MemoryCacheStore:
    """Process-local store; entries live as long as the instance."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    async def load(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def save(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    def __len__(self) -> int:
        return len(self._entries)


class SqliteCacheStore:
    """SQLite-backed store surviving process restarts.

    One row per region key holding the JSON-serialized entry.  Blocking
    sqlite calls run in the default executor.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS region_cache (
                    key TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    fetched_at TEXT NOT NULL
                )
                """
            )
            conn.commit()
            self._conn = conn
        return self._conn

    def _load_sync(self, key: str) -> CacheEntry | None:
        try:
            with self._lock:
                row = self._connect().execute(
                    "SELECT payload FROM region_cache WHERE key = ?",
                    (key,),
                ).fetchone()
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"cache read failed for {key}: {exc}", key=key) from exc
        if row is None:
            return None
        try:
            return CacheEntry.model_validate_json(row[0])
        except ValidationError as exc:
            raise StorageError(f"corrupt cache entry for {key}", key=key) from exc

    def _save_sync(self, entry: CacheEntry) -> None:
        payload = entry.model_dump_json(by_alias=True)
        try:
            with self._lock:
                conn = self._connect()
                conn.execute(
                    "INSERT OR REPLACE INTO region_cache (key, payload, fetched_at) VALUES (?, ?, ?)",
                    (entry.key, payload, entry.fetched_at.isoformat()),
                )
                conn.commit()
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"cache write failed for {entry.key}: {exc}", key=entry.key) from exc

    async def load(self, key: str) -> CacheEntry | None:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._load_sync, key)

    async def save(self, entry: CacheEntry) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._save_sync, entry)

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


class PersistentCache:
    """TTL-aware facade over a :class:`CacheStore` that fails soft."""

    def __init__(
        self,
        store: CacheStore | None = None,
        *,
        ttl: timedelta = timedelta(seconds=DEFAULT_CACHE_TTL_SECONDS),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store: CacheStore = store if store is not None else MemoryCacheStore()
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def get(self, key: str) -> CacheEntry | None:
        """Return the stored entry for *key*, or ``None`` on miss or storage failure."""
        try:
            return await self._store.load(key)
        except StorageError as exc:
            _logger.warning("Cache read for %s failed, treating as miss: %s", key, exc)
            return None
        except Exception:
            _logger.warning("Cache store raised reading %s, treating as miss", key, exc_info=True)
            return None

    async def set(self, key: str, features: Sequence[Feature]) -> None:
        """Store *features* for *key* stamped with the current time."""
        entry = CacheEntry(key=key, features=list(features), fetched_at=self._clock())
        try:
            await self._store.save(entry)
        except StorageError as exc:
            _logger.warning("Cache write for %s failed, continuing without cache: %s", key, exc)
        except Exception:
            _logger.warning("Cache store raised writing %s, continuing without cache", key, exc_info=True)

    def is_fresh(self, entry: CacheEntry) -> bool:
        return entry.is_fresh(self._clock(), self._ttl)
