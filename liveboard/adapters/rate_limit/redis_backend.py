"""Redis-backed sliding-window rate limiter.

Shared by every process, so the configured limits hold across workers.
Each consume runs as one MULTI/EXEC transaction on the identity's sorted
set, which serializes concurrent checks for the same identity.
"""

from __future__ import annotations

import time
import uuid
from typing import Callable

from redis.asyncio import Redis

from liveboard.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult, build_result
from liveboard.adapters.redis_client import upstream_guard


class RedisSlidingWindowRateLimiter(AbstractRateLimiter):
    """Sliding-window limiter storing markers in ``sw:<key>`` sorted sets.

    Score and member prefix are the attempt timestamp in milliseconds; a
    random suffix keeps markers from the same millisecond distinct.
    """

    def __init__(
        self,
        client: Redis,
        *,
        grace_seconds: int = 5,
        key_prefix: str = "sw",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = client
        self._grace_seconds = grace_seconds
        self._key_prefix = key_prefix
        self._clock = clock

    async def consume(self, key: str, *, window_seconds: int, limit: int) -> RateLimitResult:
        if not key:
            raise ValueError("key must be a non-empty string")

        zkey = f"{self._key_prefix}:{key}"
        window_ms = window_seconds * 1000
        now_ms = int(self._clock() * 1000)
        window_start = now_ms - window_ms

        async with upstream_guard("rate_limit.consume"):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.zadd(zkey, {f"{now_ms}:{uuid.uuid4().hex}": now_ms})
                # Exclusive bound: markers exactly at window start stay counted
                pipe.zremrangebyscore(zkey, "-inf", f"({window_start}")
                pipe.zcard(zkey)
                pipe.expire(zkey, window_seconds + self._grace_seconds)
                pipe.zrange(zkey, 0, 0, withscores=True)
                _, _, count, _, oldest = await pipe.execute()

        oldest_ms = int(oldest[0][1]) if oldest else None
        return build_result(
            count=int(count),
            limit=limit,
            window_ms=window_ms,
            now_ms=now_ms,
            oldest_ms=oldest_ms,
        )
