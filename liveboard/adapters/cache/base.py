"""Latest-view cache interface.

The cache holds a transient, possibly stale copy of the "latest questions"
list. It is populated lazily on a miss and invalidated after every mutation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

CachedView = list[dict[str, Any]]


class AbstractViewCache(ABC):
    """Single-entry TTL cache for the materialized latest view."""

    def __init__(self, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    async def get(self) -> CachedView | None:
        """Return the cached view, or None on miss or expiry."""

    @abstractmethod
    async def set(self, items: CachedView) -> None:
        """Store the view for ``ttl_seconds``."""

    @abstractmethod
    async def invalidate(self) -> None:
        """Drop the cached view."""
