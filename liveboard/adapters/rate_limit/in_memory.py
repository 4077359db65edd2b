"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state; each consume is a single
  serialized read-modify-write.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Callable

from liveboard.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult, build_result


@dataclass
class _Window:
    # (timestamp_ms, marker) pairs in insertion order; timestamps never decrease
    markers: deque[tuple[int, str]] = field(default_factory=deque)
    expires_at_ms: int = 0


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting timestamped markers in a trailing window.

    Idle windows are reclaimed once unused for ``window + grace`` seconds,
    mirroring the TTL the Redis implementation sets on its sorted sets.
    """

    def __init__(
        self,
        *,
        grace_seconds: int = 5,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            grace_seconds: Extra idle lifetime of a window beyond its size.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If grace_seconds is negative.
        """
        if grace_seconds < 0:
            raise ValueError("grace_seconds must be >= 0")

        self._grace_ms = grace_seconds * 1000
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: dict[str, _Window] = {}

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _reclaim_expired_locked(self, now_ms: int) -> None:
        expired = [k for k, w in self._windows.items() if w.expires_at_ms <= now_ms]
        for key in expired:
            del self._windows[key]

    async def consume(self, key: str, *, window_seconds: int, limit: int) -> RateLimitResult:
        """Consume rate limit budget for the provided key.

        Raises:
            ValueError: If key is empty or window/limit are invalid.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if limit < 1:
            raise ValueError("limit must be >= 1")

        window_ms = window_seconds * 1000
        now_ms = self._now_ms()

        with self._lock:
            self._reclaim_expired_locked(now_ms)
            window = self._windows.setdefault(key, _Window())

            window.markers.append((now_ms, uuid.uuid4().hex))

            window_start = now_ms - window_ms
            while window.markers and window.markers[0][0] < window_start:
                window.markers.popleft()

            count = len(window.markers)
            oldest_ms = window.markers[0][0]
            window.expires_at_ms = now_ms + window_ms + self._grace_ms

        return build_result(
            count=count,
            limit=limit,
            window_ms=window_ms,
            now_ms=now_ms,
            oldest_ms=oldest_ms,
        )

    def window_count(self) -> int:
        """Number of live identity windows (for diagnostics and tests)."""
        with self._lock:
            self._reclaim_expired_locked(self._now_ms())
            return len(self._windows)
