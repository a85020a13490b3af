"""
In-Process TTL Cache

Get-or-populate cache for slow-changing provider data (the location
taxonomy). The clock is injectable so expiry can be driven from tests.

No lock is taken: two coroutines racing past an expired entry both call the
loader and the last write wins, which is fine for idempotent loaders.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class CacheEntry(Generic[T]):
    """Cache entry with metadata."""
    value: T
    created_at: float
    expires_at: float
    hit_count: int = 0

    def is_expired(self, now: float) -> bool:
        """Check if entry has expired."""
        return now >= self.expires_at


class TTLCache:
    """
    Keyed in-memory cache with a fixed time-to-live.

    Usage:
        cache = TTLCache(ttl_seconds=86400)
        taxonomy = await cache.get_or_populate("locations:us", load_taxonomy)
    """

    def __init__(self, ttl_seconds: float, clock: Optional[Clock] = None):
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}

        # Stats
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return a fresh cached value or None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        entry.hit_count += 1
        return entry.value

    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(
            value=value,
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )

    async def get_or_populate(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """
        Return the cached value for `key`, loading it on miss or expiry.

        Loader exceptions propagate and nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            self._hits += 1
            return cached

        self._misses += 1
        logger.debug(f"Cache miss for {key}, loading")
        value = await loader()
        self.set(key, value)
        return value

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one key, or everything when key is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def get_stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total else 0.0,
        }
