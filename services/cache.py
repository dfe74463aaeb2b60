"""In-memory TTL cache for geocoding responses"""

import asyncio
import logging
import threading
import time
from typing import Any, Callable, NamedTuple, Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

# 24 hours live, 48 hours before the sweep drops an entry
DEFAULT_TTL = 24 * 3600
DEFAULT_HARD_TTL = 48 * 3600
DEFAULT_MAXSIZE = 10_000


class _Entry(NamedTuple):
    value: Any
    expires_at: float


class GeocodeCache:
    """
    Thread-safe expiring cache with a soft and a hard TTL.

    Reads treat an entry as absent once its soft TTL has passed. The
    underlying TTLCache drops entries after the hard TTL, either lazily on
    access or when ``expire()`` is called by the background sweep.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        hard_ttl: float = DEFAULT_HARD_TTL,
        maxsize: int = DEFAULT_MAXSIZE,
        timer: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if hard_ttl < ttl:
            raise ValueError("hard_ttl must be >= ttl")

        self.ttl = ttl
        self.hard_ttl = hard_ttl
        self._timer = timer
        self._data: TTLCache = TTLCache(maxsize=maxsize, ttl=hard_ttl, timer=timer)
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or past its soft TTL"""
        with self._lock:
            entry = self._data.get(key)
            if entry is not None and entry.expires_at <= self._timer():
                del self._data[key]
                entry = None

            if entry is None:
                self.misses += 1
                return None

            self.hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value; ``ttl`` overrides the soft TTL for this entry"""
        ttl = self.ttl if ttl is None else min(ttl, self.hard_ttl)
        with self._lock:
            self._data[key] = _Entry(value, self._timer() + ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def expire(self) -> int:
        """Purge entries past the hard TTL. Returns how many were dropped."""
        with self._lock:
            return len(self._data.expire())

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._data),
                "hits": self.hits,
                "misses": self.misses,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


async def sweep_periodically(cache: GeocodeCache, interval: float) -> None:
    """Background task: purge hard-expired entries every ``interval`` seconds"""
    while True:
        await asyncio.sleep(interval)
        dropped = cache.expire()
        if dropped:
            logger.debug(f"Cache sweep dropped {dropped} expired entries")
