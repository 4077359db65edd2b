"""Cross-process event fan-out over Redis pub/sub.

Publishing sends the serialized event to a channel from a background task;
a listener task receives every message on the channel (including this
process's own) and fans it out to local subscribers. Pub/sub is
fire-and-forget: messages published while a listener is disconnected are
lost, which stream reconciliation compensates for.
"""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from liveboard.adapters.events.base import AbstractEventBus
from liveboard.schemas.events import DomainEvent, Ping, parse_event, serialize_event

logger = logging.getLogger(__name__)

RESUBSCRIBE_DELAY_SECONDS = 1.0


class RedisEventBus(AbstractEventBus):
    backend_name = "redis"

    def __init__(
        self,
        client: Redis,
        *,
        channel: str = "questions:events",
        listener_client: Redis | None = None,
    ) -> None:
        super().__init__()
        self._redis = client
        # Subscriptions block indefinitely, so they need a client without a read timeout
        self._listener_redis = listener_client or client
        self._channel = channel
        self._pubsub: PubSub | None = None
        self._listener: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    async def start(self) -> None:
        if self._listener is not None:
            return
        self._listener = asyncio.create_task(self._listen(), name="events.redis_listener")
        logger.info("events.started", extra={"backend": self.backend_name, "channel": self._channel})

    def publish(self, event: DomainEvent) -> None:
        payload = serialize_event(event)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("events.publish_skipped", extra={"event_type": event.type, "reason": "no_event_loop"})
            return

        task = loop.create_task(self._send(event.type, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, event_type: str, payload: str) -> None:
        try:
            receivers = await self._redis.publish(self._channel, payload)
        except RedisError as exc:
            logger.warning(
                "events.publish_failed",
                extra={"event_type": event_type, "error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return
        logger.debug("events.published", extra={"event_type": event_type, "receivers": receivers})

    async def _subscribe(self) -> PubSub:
        pubsub = self._listener_redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(self._channel)
        return pubsub

    async def _listen(self) -> None:
        while True:
            try:
                self._pubsub = await self._subscribe()
                async for message in self._pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    self._handle_message(message.get("data"))
            except asyncio.CancelledError:
                raise
            except RedisError as exc:
                logger.error(
                    "events.listener_failed",
                    extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
                )
            await self._release_pubsub()
            await asyncio.sleep(RESUBSCRIBE_DELAY_SECONDS)

    def _handle_message(self, data: str | bytes | None) -> None:
        if data is None:
            return
        try:
            event = parse_event(data)
        except ValidationError:
            logger.warning("events.malformed_message", extra={"channel": self._channel})
            return
        if isinstance(event, Ping):
            return
        self._dispatch(event)

    async def _release_pubsub(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
        except RedisError:
            logger.debug("events.pubsub_close_failed", exc_info=True)

    async def close(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.cancel()
            try:
                await listener
            except asyncio.CancelledError:
                pass
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._release_pubsub()
        await super().close()
        logger.info("events.closed", extra={"backend": self.backend_name})
