"""Latest-view cache adapters."""

from liveboard.adapters.cache.base import AbstractViewCache, CachedView
from liveboard.adapters.cache.in_memory import InMemoryViewCache
from liveboard.adapters.cache.redis_backend import RedisViewCache

__all__ = [
    "AbstractViewCache",
    "CachedView",
    "InMemoryViewCache",
    "RedisViewCache",
]
