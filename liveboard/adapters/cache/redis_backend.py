"""Redis cache for the latest-questions view (``questions:latest``)."""

from __future__ import annotations

import json
import logging

from redis.asyncio import Redis

from liveboard.adapters.cache.base import AbstractViewCache, CachedView
from liveboard.adapters.redis_client import upstream_guard

logger = logging.getLogger(__name__)

LATEST_KEY = "questions:latest"


class RedisViewCache(AbstractViewCache):
    """JSON-encoded view stored with ``SET ... EX``; Redis enforces the TTL."""

    def __init__(self, client: Redis, ttl_seconds: int = 30, *, key: str = LATEST_KEY) -> None:
        super().__init__(ttl_seconds)
        self._redis = client
        self._key = key

    async def get(self) -> CachedView | None:
        async with upstream_guard("cache.get"):
            raw = await self._redis.get(self._key)
        if raw is None:
            logger.debug("cache.miss", extra={"reason": "not_found"})
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("cache.corrupt", extra={"cache_key": self._key})
            return None
        logger.debug("cache.hit", extra={"entries": len(value)})
        return value

    async def set(self, items: CachedView) -> None:
        async with upstream_guard("cache.set"):
            await self._redis.set(self._key, json.dumps(items), ex=self.ttl_seconds)

    async def invalidate(self) -> None:
        async with upstream_guard("cache.invalidate"):
            await self._redis.delete(self._key)
