"""Rate limiting for the write endpoints.

This module wires the sliding-window limiter adapters into the HTTP layer.

Design goals:
- Minimal coupling: routes call ``enforce_rate_limit`` with an action name.
- Swap-friendly: storage backend (memory or Redis) lives behind
  ``AbstractRateLimiter``.
- Fail-closed: when the backing store is unavailable the request is treated
  as over the limit, so an outage cannot turn into unbounded writes.

Identity (in priority order):
- ``X-User-ID`` header (authenticated user) → ``u:<id>``
- user of the ``sid`` login session cookie → ``u:<uid>``
- first address in ``X-Forwarded-For`` → ``ip:<addr>``
- the shared ``unknown`` bucket
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

from fastapi import Request

from liveboard.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from liveboard.adapters.store.base import AbstractQuestionStore
from liveboard.core.config import RateLimitSettings, settings
from liveboard.core.errors import RateLimitedError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-ID"
FORWARDED_FOR_HEADER = "X-Forwarded-For"
UNKNOWN_IDENTITY = "unknown"
SESSION_COOKIE = "sid"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Budget for one write action."""

    action: str
    limit: int
    window_seconds: int
    message: str


def build_policies(cfg: RateLimitSettings) -> dict[str, RateLimitPolicy]:
    """Build the per-action policies from configuration."""
    return {
        "create": RateLimitPolicy(
            action="create",
            limit=cfg.create_limit,
            window_seconds=cfg.create_window_seconds,
            message="Rate limit exceeded. Please wait before posting again.",
        ),
        "like": RateLimitPolicy(
            action="like",
            limit=cfg.like_limit,
            window_seconds=cfg.like_window_seconds,
            message="Rate limit exceeded. Please slow down.",
        ),
        "delete": RateLimitPolicy(
            action="delete",
            limit=cfg.delete_limit,
            window_seconds=cfg.delete_window_seconds,
            message="Rate limit exceeded. Please slow down.",
        ),
    }


def derive_identity(request: Request, session_user_id: str | None = None) -> str:
    """Resolve the rate limit identity for a request.

    Args:
        request: Incoming request.
        session_user_id: User id of the caller's login session, if any.

    Examples:
        ``X-User-ID: 42`` → ``u:42``;
        a session for ``u1`` and no header → ``u:u1``;
        ``X-Forwarded-For: 203.0.113.9, 10.0.0.1`` → ``ip:203.0.113.9``;
        no headers → ``unknown``.
    """
    user_id = (request.headers.get(USER_ID_HEADER) or "").strip() or session_user_id
    if user_id:
        return f"u:{user_id}"

    forwarded = request.headers.get(FORWARDED_FOR_HEADER) or ""
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return f"ip:{first_hop}"

    return UNKNOWN_IDENTITY


async def session_user_id(request: Request, sessions: AbstractQuestionStore | None) -> str | None:
    """Return the user id behind the ``sid`` cookie, or None.

    Skipped when an explicit user id header is present. A store outage
    degrades to the address-based identity; the limiter itself still fails
    closed.
    """
    sid = request.cookies.get(SESSION_COOKIE)
    if not sid or sessions is None or (request.headers.get(USER_ID_HEADER) or "").strip():
        return None
    try:
        session = await sessions.get_session(sid)
    except UpstreamUnavailableError as exc:
        logger.warning("rate_limit.session_lookup_failed", extra={"error_code": exc.code})
        return None
    if not session:
        return None
    uid = session.get("uid")
    return str(uid) if uid else None


def _hash_identity(identity: str) -> str:
    """Hash the identity for logging without exposing user ids or addresses."""
    return hashlib.sha256(identity.encode()).hexdigest()[:16]


def _fail_closed_result(policy: RateLimitPolicy) -> RateLimitResult:
    return RateLimitResult(
        allowed=False,
        limit=policy.limit,
        remaining=0,
        reset_at=0,
        retry_after_seconds=policy.window_seconds,
    )


async def enforce_rate_limit(
    request: Request,
    action: str,
    limiter: AbstractRateLimiter,
    cfg: RateLimitSettings | None = None,
    *,
    sessions: AbstractQuestionStore | None = None,
) -> None:
    """Consume one unit of the caller's budget for ``action``.

    Args:
        request: Incoming request (identity headers).
        action: Policy name: ``create``, ``like`` or ``delete``.
        limiter: Limiter adapter from the service container.
        cfg: Rate limit settings; defaults to the global settings.
        sessions: Session store used to resolve the ``sid`` cookie to a user.

    Raises:
        RateLimitedError: When the budget is exhausted or the limiter's
            store is unavailable.
        KeyError: If ``action`` has no policy.
    """
    cfg = cfg or settings.rate_limit
    if not cfg.enabled:
        return

    policy = build_policies(cfg)[action]
    identity = derive_identity(request, await session_user_id(request, sessions))
    key = f"rl:{action}:{identity}"
    log_fields = {
        "action": action,
        "key_type": identity.split(":", 1)[0],
        "key_hash": _hash_identity(identity),
        "limit": policy.limit,
        "window_s": policy.window_seconds,
    }

    try:
        result = await limiter.consume(key, window_seconds=policy.window_seconds, limit=policy.limit)
    except UpstreamUnavailableError as exc:
        logger.error("rate_limit.fail_closed", extra={**log_fields, "error_code": exc.code})
        result = _fail_closed_result(policy)

    if result.allowed:
        logger.info("rate_limit.allowed", extra={**log_fields, "remaining": result.remaining})
        return

    retry_after = result.retry_after_seconds or policy.window_seconds
    logger.warning("rate_limit.exceeded", extra={**log_fields, "retry_after_s": retry_after})

    raise RateLimitedError(
        code="rate_limited",
        message=policy.message,
        retry_after=retry_after,
        limit=result.limit,
        remaining=result.remaining,
        reset_at=result.reset_at,
    )
