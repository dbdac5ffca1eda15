"""In-memory TTL cache with explicit eviction (per-instance, injectable)."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


@dataclass
class Entry(Generic[V]):
    value: V
    inserted_at: float


class TtlCache(Generic[V]):
    """Key -> (value, inserted_at) store whose entries expire after ``ttl_sec``.

    Expired entries are never returned by :meth:`get`, but they are only
    dropped from memory by :meth:`evict_expired`. A ``ttl_sec`` of zero
    disables caching: every lookup misses.
    """

    def __init__(self, ttl_sec: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_sec = max(float(ttl_sec), 0.0)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[Hashable, Entry[V]] = {}

    def _expired(self, entry: Entry[V], now: float) -> bool:
        return now - entry.inserted_at >= self.ttl_sec

    def get(self, key: Hashable, *, now: Optional[float] = None) -> Optional[tuple[V, float]]:
        now = self._clock() if now is None else now
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._expired(entry, now):
                return None
            return entry.value, entry.inserted_at

    def put(self, key: Hashable, value: V, *, now: Optional[float] = None) -> None:
        now = self._clock() if now is None else now
        with self._lock:
            self._entries[key] = Entry(value=value, inserted_at=now)

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def evict_expired(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        with self._lock:
            stale = [key for key, entry in self._entries.items() if self._expired(entry, now)]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
