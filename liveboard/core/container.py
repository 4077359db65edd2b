"""Service container: explicit construction and teardown of shared components.

Everything with state or connections (store, cache, limiter, event bus,
stream hub) is built once per application and owned by the FastAPI
lifespan, which starts it on startup and tears it down on shutdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from redis.asyncio import Redis

from liveboard.adapters.cache import AbstractViewCache, InMemoryViewCache, RedisViewCache
from liveboard.adapters.events import AbstractEventBus, LocalEventBus, RedisEventBus
from liveboard.adapters.rate_limit.base import AbstractRateLimiter
from liveboard.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from liveboard.adapters.rate_limit.redis_backend import RedisSlidingWindowRateLimiter
from liveboard.adapters.redis_client import create_redis
from liveboard.adapters.store import AbstractQuestionStore, InMemoryQuestionStore, RedisQuestionStore
from liveboard.core.config import Settings, settings
from liveboard.core.errors import ValidationAppError
from liveboard.services.question_service import QuestionService
from liveboard.services.stream_session import StreamHub

logger = logging.getLogger(__name__)

SUPPORTED_STORE_BACKENDS = ("memory", "redis")
SUPPORTED_EVENT_BACKENDS = ("local", "redis")


@dataclass
class ServiceContainer:
    store: AbstractQuestionStore
    cache: AbstractViewCache
    limiter: AbstractRateLimiter
    bus: AbstractEventBus
    questions: QuestionService
    streams: StreamHub
    redis: Redis | None = None
    listener_redis: Redis | None = None

    async def start(self) -> None:
        await self.bus.start()
        logger.info(
            "container.started",
            extra={"store_backend": self.store.backend_name, "event_backend": self.bus.backend_name},
        )

    async def close(self) -> None:
        """Tear down in dependency order: streams, bus, adapters, connection."""
        closed_streams = self.streams.close_all()
        await self.bus.close()
        await self.limiter.close()
        await self.store.close()
        for client in (self.listener_redis, self.redis):
            if client is not None:
                await client.aclose()
        logger.info("container.closed", extra={"closed_streams": closed_streams})


def build_container(cfg: Settings | None = None) -> ServiceContainer:
    """Build the service container for the configured backends.

    Raises:
        ValidationAppError: If a backend name is not supported.
    """
    cfg = cfg or settings
    store_backend = cfg.store.backend.lower()
    event_backend = cfg.events.backend.lower()

    if store_backend not in SUPPORTED_STORE_BACKENDS:
        raise ValidationAppError(
            code="unknown_store_backend",
            message=(
                f"Unknown store backend: '{store_backend}'. "
                f"Supported backends: {', '.join(SUPPORTED_STORE_BACKENDS)}"
            ),
        )
    if event_backend not in SUPPORTED_EVENT_BACKENDS:
        raise ValidationAppError(
            code="unknown_event_backend",
            message=(
                f"Unknown event backend: '{event_backend}'. "
                f"Supported backends: {', '.join(SUPPORTED_EVENT_BACKENDS)}"
            ),
        )

    client: Redis | None = None
    if "redis" in (store_backend, event_backend):
        client = create_redis(cfg.store.redis_url)

    store: AbstractQuestionStore
    cache: AbstractViewCache
    limiter: AbstractRateLimiter
    if store_backend == "redis":
        assert client is not None
        store = RedisQuestionStore(client)
        cache = RedisViewCache(client, ttl_seconds=cfg.store.latest_cache_ttl_seconds)
        limiter = RedisSlidingWindowRateLimiter(client, grace_seconds=cfg.rate_limit.grace_seconds)
    else:
        store = InMemoryQuestionStore()
        cache = InMemoryViewCache(ttl_seconds=cfg.store.latest_cache_ttl_seconds)
        limiter = InMemorySlidingWindowRateLimiter(grace_seconds=cfg.rate_limit.grace_seconds)

    bus: AbstractEventBus
    listener_client: Redis | None = None
    if event_backend == "redis":
        assert client is not None
        listener_client = create_redis(cfg.store.redis_url, socket_timeout=None)
        bus = RedisEventBus(client, channel=cfg.events.channel, listener_client=listener_client)
    else:
        bus = LocalEventBus()

    questions = QuestionService(
        store=store,
        cache=cache,
        bus=bus,
        strict_likes=cfg.app.strict_likes,
    )
    streams = StreamHub(bus=bus, questions=questions, stream_settings=cfg.stream)

    return ServiceContainer(
        store=store,
        cache=cache,
        limiter=limiter,
        bus=bus,
        questions=questions,
        streams=streams,
        redis=client,
        listener_redis=listener_client,
    )
