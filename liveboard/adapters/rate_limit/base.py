"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
in-memory limiter used in tests and single-process development can be
swapped for the Redis-backed one without touching the HTTP layer.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the oldest marker leaves the window.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


def build_result(
    *,
    count: int,
    limit: int,
    window_ms: int,
    now_ms: int,
    oldest_ms: int | None,
) -> RateLimitResult:
    """Turn a post-insert marker count into a RateLimitResult.

    Args:
        count: Markers in the window, including the one just recorded.
        limit: Max admitted markers per window.
        window_ms: Window size in milliseconds.
        now_ms: Timestamp of the current call.
        oldest_ms: Timestamp of the oldest marker still in the window.
    """
    oldest = now_ms if oldest_ms is None else oldest_ms
    reset_ms = oldest + window_ms
    reset_at = int(math.ceil(reset_ms / 1000))

    if count <= limit:
        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - count),
            reset_at=reset_at,
            retry_after_seconds=None,
        )

    return RateLimitResult(
        allowed=False,
        limit=limit,
        remaining=0,
        reset_at=reset_at,
        retry_after_seconds=max(1, int(math.ceil((reset_ms - now_ms) / 1000))),
    )


class AbstractRateLimiter(ABC):
    """Interface for sliding-window rate limiters."""

    @abstractmethod
    async def consume(self, key: str, *, window_seconds: int, limit: int) -> RateLimitResult:
        """Record an attempt for `key` and decide whether it is admitted.

        Every call records a marker, rejected ones included, and refreshes
        the window expiry.

        Args:
            key: Unique identifier (e.g., ``rl:create:u:42``).
            window_seconds: Trailing window size.
            limit: Max admitted attempts within the window.

        Returns:
            RateLimitResult describing whether it was allowed.

        Raises:
            UpstreamUnavailableError: If the backing store fails.
        """
        raise NotImplementedError

    async def allow(self, key: str, window_seconds: int, limit: int) -> bool:
        result = await self.consume(key, window_seconds=window_seconds, limit=limit)
        return result.allowed

    async def close(self) -> None:
        """Release backend resources (no-op by default)."""
