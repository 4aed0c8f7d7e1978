"""
Expiring resource cache.

In-process cache for expensive, disposable resources (such as an
authenticated Graph HTTP client). Each entry has an absolute expiration;
expired entries are evicted lazily on the next access and handed to an
eviction callback so the owner can release the underlying resources.

Cache Flow:
1. get_or_create(key, factory) checks for a live entry (no lock)
2. On miss or expiry, take the lock and check again
3. Still missing: evict the stale entry, await factory(), store with TTL
4. Concurrent callers waiting on the lock reuse the freshly stored entry
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

EvictionCallback = Callable[[str, Any, str], Awaitable[None]]


@dataclass
class CacheEntry(Generic[V]):
    """A cached value and its absolute expiration (monotonic seconds)."""

    value: V
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ExpiringResourceCache(Generic[V]):
    """
    Async get-or-create cache with absolute TTL and eviction callbacks.

    Args:
        ttl_seconds: Absolute lifetime of each entry
        on_evict: Awaited with (key, value, reason) when an entry is removed
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        ttl_seconds: float,
        on_evict: EvictionCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._on_evict = on_evict
        self._clock = clock
        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = asyncio.Lock()

    def get(self, key: str) -> V | None:
        """Return the live value for ``key`` without creating or evicting."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.value

    async def get_or_create(self, key: str, factory: Callable[[], Awaitable[V]]) -> V:
        """
        Return the cached value for ``key``, creating it with ``factory`` if
        missing or expired. Factory errors propagate and nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        async with self._lock:
            cached = self.get(key)
            if cached is not None:
                return cached

            stale = self._entries.pop(key, None)
            if stale is not None:
                await self._evict(key, stale.value, "expired")

            value = await factory()
            self._entries[key] = CacheEntry(
                value=value, expires_at=self._clock() + self.ttl_seconds
            )
            return value

    async def invalidate(self, key: str, reason: str = "removed") -> bool:
        """Remove ``key`` if present. Returns whether an entry was removed."""
        async with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return False
            await self._evict(key, entry.value, reason)
            return True

    async def clear(self) -> None:
        """Evict every entry."""
        async with self._lock:
            entries = list(self._entries.items())
            self._entries.clear()
            for key, entry in entries:
                await self._evict(key, entry.value, "cleared")

    def __len__(self) -> int:
        return len(self._entries)

    async def _evict(self, key: str, value: V, reason: str) -> None:
        logger.info(f"🗑️ Cache entry '{key}' evicted. Reason: {reason}")
        if self._on_evict is None:
            return
        try:
            await self._on_evict(key, value, reason)
        except Exception as e:
            # Eviction must not break the caller that triggered it
            logger.warning(f"⚠️ Error disposing cache entry '{key}': {e}", exc_info=True)
