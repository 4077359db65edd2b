"""In-process event fan-out.

Correct only for subscribers living in the publishing process; other
processes rely on stream reconciliation to observe the change.
"""

from __future__ import annotations

import logging

from liveboard.adapters.events.base import AbstractEventBus
from liveboard.schemas.events import DomainEvent

logger = logging.getLogger(__name__)


class LocalEventBus(AbstractEventBus):
    backend_name = "local"

    def publish(self, event: DomainEvent) -> None:
        delivered = self._dispatch(event)
        logger.debug(
            "events.published",
            extra={"event_type": event.type, "delivered": delivered},
        )
