"""Bounded in-memory caches.

Caches are plain objects created once per process and handed to the
services that use them. ``CacheRegistry`` keeps them addressable by name
for health reporting.
"""

from collections import OrderedDict
from dataclasses import dataclass
import logging
import threading
import time
from typing import Any, Dict, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    value: V
    expires_at: Optional[float]
    hits: int = 0

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class BoundedCache(Generic[V]):
    """LRU cache with a hard size ceiling and optional per-entry TTL.

    Expired entries are dropped lazily on access and before eviction.
    """

    def __init__(self, name: str, max_size: int, ttl_seconds: Optional[float] = None, clock=time.monotonic):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.name = name
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[Hashable, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: Hashable) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            entry.hits += 1
            self.hits += 1
            return entry.value

    def set(self, key: Hashable, value: V, ttl_seconds: Optional[float] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
            if len(self._entries) > self.max_size:
                self._purge_expired()
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug(f"[cache] {self.name}: evicted {evicted!r}")

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, e in self._entries.items() if e.expired(now)]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def utilization(self) -> float:
        return len(self._entries) / self.max_size

    def stats(self) -> Dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": round(self.hits / lookups, 4) if lookups else 0.0,
        }


class CacheRegistry:
    """Named caches owned by one process."""

    def __init__(self):
        self._caches: Dict[str, BoundedCache] = {}

    def create(self, name: str, max_size: int, ttl_seconds: Optional[float] = None) -> BoundedCache:
        if name in self._caches:
            raise ValueError(f"Cache already registered: {name}")
        cache = BoundedCache(name, max_size=max_size, ttl_seconds=ttl_seconds)
        self._caches[name] = cache
        return cache

    def get(self, name: str) -> BoundedCache:
        return self._caches[name]

    def items(self):
        return self._caches.items()

    def stats(self) -> Dict[str, Dict[str, Any]]:
        return {name: cache.stats() for name, cache in self._caches.items()}


__all__ = ["CacheEntry", "BoundedCache", "CacheRegistry"]
