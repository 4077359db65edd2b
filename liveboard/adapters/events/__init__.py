"""Event bus adapters - local fan-out and Redis pub/sub."""

from liveboard.adapters.events.base import AbstractEventBus, EventHandler
from liveboard.adapters.events.local import LocalEventBus
from liveboard.adapters.events.redis_pubsub import RedisEventBus

__all__ = [
    "AbstractEventBus",
    "EventHandler",
    "LocalEventBus",
    "RedisEventBus",
]
