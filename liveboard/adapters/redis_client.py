"""Shared Redis connection helpers.

One ``redis.asyncio`` client is created per process and shared by the store,
cache, rate limiter and event bus adapters. Pub/sub subscriptions get a
second client without a read timeout. Every adapter wraps its calls in
``upstream_guard`` so Redis failures surface as ``UpstreamUnavailableError``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from liveboard.core.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


def create_redis(url: str, *, socket_timeout: float | None = 5.0) -> Redis:
    """Build an async Redis client returning ``str`` values.

    ``from_url`` is synchronous and connects lazily on first command.

    Args:
        url: Redis connection URL.
        socket_timeout: Read timeout for commands. Pass None for a client
            that blocks on pub/sub reads, which otherwise time out after an
            idle ``socket_timeout``.
    """
    return redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=30,
        socket_connect_timeout=5.0,
        socket_timeout=socket_timeout,
        retry_on_timeout=True,
    )


@asynccontextmanager
async def upstream_guard(operation: str) -> AsyncIterator[None]:
    """Translate Redis failures into ``UpstreamUnavailableError``.

    Args:
        operation: Short name of the store operation, used in logs and
            error details.
    """
    try:
        yield
    except RedisError as exc:
        logger.error(
            "store.unavailable",
            extra={
                "operation": operation,
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        raise UpstreamUnavailableError(
            code="store_unavailable",
            message="Backing store is unavailable. Please try again later.",
            details={"backend": "redis", "context": {"operation": operation}},
        ) from exc
