"""Event bus interface.

Writers publish domain events; stream sessions subscribe. Publishing is a
plain synchronous call that returns immediately: it never awaits
subscribers, never raises, and one failing subscriber never affects the
others. Delivered events are hints, not a log; subscribers tolerate
duplicates because reconciliation may deliver the same change again.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

from liveboard.schemas.events import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class AbstractEventBus(ABC):
    """Subscriber registry with isolated, best-effort local fan-out.

    Handlers must be non-blocking callables (e.g. ``Queue.put_nowait``
    wrappers); they run inline during dispatch.
    """

    backend_name: str = "abstract"

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []
        self._handlers_lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._handlers_lock:
            return len(self._handlers)

    def subscribe(self, handler: EventHandler) -> None:
        with self._handlers_lock:
            self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove a handler; unknown handlers are ignored."""
        with self._handlers_lock:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass

    def _dispatch(self, event: DomainEvent) -> int:
        """Deliver to every handler registered right now.

        Returns:
            Number of handlers that accepted the event without raising.
        """
        with self._handlers_lock:
            handlers = list(self._handlers)

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "events.subscriber_failed",
                    extra={
                        "event_type": event.type,
                        "error_type": type(exc).__name__,
                        "error_msg": str(exc),
                    },
                )
        return delivered

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Hand an event to every subscriber without blocking the caller."""

    async def start(self) -> None:
        """Acquire backend resources before the first publish."""

    async def close(self) -> None:
        """Release backend resources and drop all subscribers."""
        with self._handlers_lock:
            self._handlers.clear()
