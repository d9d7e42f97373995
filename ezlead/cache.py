"""
Content-addressed read-through cache for external calls.

Keys are SHA-256 digests of (operation, query, context) so the same search
or AI request is answered from the cache instead of a second external call.
Payloads must be JSON-serializable; entries are never mutated, only replaced
or expired.
"""

import json
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from .database import CacheEntry, get_session_factory, init_database
from .logger import StructuredLogger, get_logger
from .models import utcnow
from .normalize import hash_text


def gen_cache_key(operation: str, *parts: str) -> str:
    """Deterministic cache key for an operation and its inputs."""
    if not operation:
        raise ValueError("Cache operation name is required")
    return hash_text("|".join([operation, *[p or "" for p in parts]]))


def _expiry(ttl: Optional[timedelta], now: datetime) -> Optional[datetime]:
    return now + ttl if ttl is not None else None


class CacheStore(ABC):
    """Storage backend for cache entries."""

    @abstractmethod
    def try_get(self, key: str) -> Optional[Any]:
        """Return the cached payload, or None when missing or expired."""

    @abstractmethod
    def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        """Store (or replace) a payload; ttl=None keeps it until replaced."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Delete expired entries, returning how many were removed."""


class MemoryCacheStore(CacheStore):
    """In-process store, safe for concurrent readers and writers."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._entries: Dict[str, Tuple[str, Optional[datetime]]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def try_get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            payload, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                return None
        # Stored serialized so callers never share a mutable payload
        return json.loads(payload)

    def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        payload = json.dumps(value)
        with self._lock:
            self._entries[key] = (payload, _expiry(ttl, self._clock()))

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, exp) in self._entries.items() if exp is not None and exp <= now]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class DatabaseCacheStore(CacheStore):
    """SQLite-backed store sharing the application database."""

    def __init__(self, db_path: Path, clock: Callable[[], datetime] = utcnow):
        init_database(db_path)
        self._session_factory = get_session_factory(db_path)
        self._clock = clock

    def try_get(self, key: str) -> Optional[Any]:
        with self._session_factory() as session:
            row = session.get(CacheEntry, key)
            if row is None:
                return None
            if row.expires_at is not None and row.expires_at <= self._clock():
                session.delete(row)
                session.commit()
                return None
            return json.loads(row.payload)

    def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        now = self._clock()
        entry = CacheEntry(
            cache_key=key,
            payload=json.dumps(value),
            expires_at=_expiry(ttl, now),
            created_at=now,
        )
        with self._session_factory() as session:
            session.merge(entry)  # last writer wins
            session.commit()

    def purge_expired(self) -> int:
        with self._session_factory() as session:
            removed = (
                session.query(CacheEntry)
                .filter(CacheEntry.expires_at.isnot(None), CacheEntry.expires_at <= self._clock())
                .delete(synchronize_session=False)
            )
            session.commit()
        return removed


class CacheGateway:
    """
    Read-through cache in front of a CacheStore.

    Logs and counts hits/misses. A failing store is logged and treated as a
    miss so a broken cache never blocks an external call.
    """

    def __init__(self, store: CacheStore, logger: Optional[StructuredLogger] = None):
        if store is None:
            raise ValueError("A cache store is required")
        self.store = store
        self.logger = logger or get_logger()

    def try_get(self, key: str) -> Optional[Any]:
        try:
            value = self.store.try_get(key)
        except Exception as e:
            self.logger.error("Cache read failed", key=key, error=str(e))
            self.logger.record_error(type(e).__name__)
            value = None

        if value is None:
            self.logger.record_cache_miss()
            return None
        self.logger.record_cache_hit()
        self.logger.debug("Cache hit", key=key)
        return value

    def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        try:
            self.store.put(key, value, ttl)
        except Exception as e:
            self.logger.error("Cache write failed", key=key, error=str(e))
            self.logger.record_error(type(e).__name__)

    def get_or_create(
        self,
        key: str,
        factory: Callable[[], Optional[Any]],
        ttl: Optional[timedelta] = None,
    ) -> Optional[Any]:
        """Return the cached value, or call factory and cache a non-None result."""
        cached = self.try_get(key)
        if cached is not None:
            return cached
        value = factory()
        if value is not None:
            self.put(key, value, ttl)
        return value
