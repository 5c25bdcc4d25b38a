"""
In-memory TTL cache for expensive graph reconstructions.

Maps string keys to JSON-serializable values. Entries expire a fixed time
after they are written; expiry is checked lazily on read, and expired
entries linger until ``cleanup()`` or an overwrite removes them.

Concurrency: reads share a reader/writer lock, writes (set, invalidate,
clear, cleanup) hold it exclusively.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, Optional, Tuple


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Waiting writers block new readers so a steady read load cannot starve
    them.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass(frozen=True)
class CacheStats:
    """Expose basic cache metrics for diagnostics."""

    total: int
    active: int
    expired: int
    max_size: int
    ttl: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class TTLCache:
    """
    Bounded TTL cache with reader/writer locking.

    When full, inserting a new key evicts one existing entry: an expired one
    if any, otherwise the oldest inserted. Eviction order is not LRU.
    """

    def __init__(self, ttl_seconds: int = 600, max_size: int = 50):
        self.ttl_seconds = max(1, int(ttl_seconds))
        self.max_size = max(1, int(max_size))
        self._lock = ReadWriteLock()
        self._store: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent or expired."""
        with self._lock.read():
            entry = self._store.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= time.monotonic():
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        expires_at = time.monotonic() + self.ttl_seconds
        with self._lock.write():
            if key not in self._store and len(self._store) >= self.max_size:
                self._evict_one()
            self._store[key] = (expires_at, value)

    def invalidate(self, key: str) -> None:
        with self._lock.write():
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock.write():
            self._store.clear()

    def cleanup(self) -> int:
        """Remove all expired entries. Returns how many were removed."""
        now = time.monotonic()
        with self._lock.write():
            expired = [k for k, (expires_at, _) in self._store.items() if expires_at <= now]
            for key in expired:
                del self._store[key]
            return len(expired)

    def stats(self) -> CacheStats:
        now = time.monotonic()
        with self._lock.read():
            total = len(self._store)
            active = sum(1 for expires_at, _ in self._store.values() if expires_at > now)
        return CacheStats(
            total=total,
            active=active,
            expired=total - active,
            max_size=self.max_size,
            ttl=self.ttl_seconds,
        )

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._store)

    def _evict_one(self) -> None:
        # Caller holds the write lock
        now = time.monotonic()
        for key, (expires_at, _) in self._store.items():
            if expires_at <= now:
                del self._store[key]
                return
        del self._store[next(iter(self._store))]
