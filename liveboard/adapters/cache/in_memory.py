"""In-memory TTL cache for the latest-questions view.

Thread-safe and minimal; mirrors the Redis cache semantics (one key, fixed
TTL, explicit invalidation) so tests exercise the same read-through path.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from liveboard.adapters.cache.base import AbstractViewCache, CachedView

logger = logging.getLogger(__name__)


@dataclass
class CacheItem:
    """Container for cached values with expiration metadata."""

    value: CachedView
    expires_at: float


class InMemoryViewCache(AbstractViewCache):
    """Single-entry TTL cache with hit/miss/invalidation counters."""

    def __init__(self, ttl_seconds: int = 30, *, clock: Callable[[], float] = time.time) -> None:
        super().__init__(ttl_seconds)
        self._clock = clock
        self._item: CacheItem | None = None
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryViewCache(ttl_seconds={self.ttl_seconds}, hits={self._hits}, "
            f"misses={self._misses}, invalidations={self._invalidations})"
        )

    async def get(self) -> CachedView | None:
        with self._lock:
            item = self._item
            if item is None:
                self._misses += 1
                logger.debug("cache.miss", extra={"reason": "not_found"})
                return None

            if self._clock() >= item.expires_at:
                self._item = None
                self._misses += 1
                logger.debug("cache.miss", extra={"reason": "expired"})
                return None

            self._hits += 1
            logger.debug("cache.hit", extra={"entries": len(item.value)})
            # Callers must not be able to mutate the cached copy
            return copy.deepcopy(item.value)

    async def set(self, items: CachedView) -> None:
        with self._lock:
            self._item = CacheItem(value=copy.deepcopy(items), expires_at=self._clock() + self.ttl_seconds)
            logger.debug("cache.set", extra={"entries": len(items), "ttl_s": self.ttl_seconds})

    async def invalidate(self) -> None:
        with self._lock:
            if self._item is not None:
                self._invalidations += 1
            self._item = None

    def stats(self) -> dict[str, int | bool]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "ttl_seconds": self.ttl_seconds,
                "cached": self._item is not None,
                "hits": self._hits,
                "misses": self._misses,
                "invalidations": self._invalidations,
            }
