"""Tests for identity derivation and rate limit enforcement."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from starlette.requests import Request

from liveboard.adapters.rate_limit.base import AbstractRateLimiter
from liveboard.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from liveboard.adapters.store.base import AbstractQuestionStore
from liveboard.adapters.store.in_memory import InMemoryQuestionStore
from liveboard.core.config import RateLimitSettings
from liveboard.core.errors import RateLimitedError, UpstreamUnavailableError
from liveboard.core.rate_limit import derive_identity, enforce_rate_limit, session_user_id


def _request(headers: dict[str, str] | None = None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "POST", "path": "/", "headers": raw})


class TestDeriveIdentity:
    def test_user_id_header_takes_priority(self):
        request = _request({"X-User-ID": "42", "X-Forwarded-For": "203.0.113.9"})
        assert derive_identity(request) == "u:42"

    def test_first_forwarded_for_entry(self):
        request = _request({"X-Forwarded-For": " 203.0.113.9 , 10.0.0.1"})
        assert derive_identity(request) == "ip:203.0.113.9"

    def test_falls_back_to_shared_unknown_bucket(self):
        assert derive_identity(_request()) == "unknown"
        assert derive_identity(_request({"X-Forwarded-For": " , "})) == "unknown"

    def test_session_user_comes_after_header(self):
        request = _request({"X-Forwarded-For": "203.0.113.9"})
        assert derive_identity(request, "u1") == "u:u1"
        assert derive_identity(_request({"X-User-ID": "42"}), "u1") == "u:42"


class TestSessionUserId:
    def test_resolves_login_session_cookie(self):
        store = InMemoryQuestionStore()
        asyncio.run(store.save_session("abc", {"uid": "u1", "email": "a@b.c"}, ttl_seconds=60))

        request = _request({"Cookie": "sid=abc"})

        assert asyncio.run(session_user_id(request, store)) == "u1"

    def test_unknown_or_missing_cookie(self):
        store = InMemoryQuestionStore()

        assert asyncio.run(session_user_id(_request({"Cookie": "sid=nope"}), store)) is None
        assert asyncio.run(session_user_id(_request(), store)) is None
        assert asyncio.run(session_user_id(_request({"Cookie": "sid=abc"}), None)) is None

    def test_header_skips_session_lookup(self):
        sessions = Mock(spec=AbstractQuestionStore)
        sessions.get_session = AsyncMock(return_value={"uid": "u1"})
        request = _request({"X-User-ID": "42", "Cookie": "sid=abc"})

        assert asyncio.run(session_user_id(request, sessions)) is None
        sessions.get_session.assert_not_awaited()

    def test_store_outage_falls_back_to_address(self):
        sessions = Mock(spec=AbstractQuestionStore)
        sessions.get_session = AsyncMock(
            side_effect=UpstreamUnavailableError(code="store_unavailable", message="down")
        )
        request = _request({"Cookie": "sid=abc", "X-Forwarded-For": "203.0.113.9"})

        uid = asyncio.run(session_user_id(request, sessions))

        assert uid is None
        assert derive_identity(request, uid) == "ip:203.0.113.9"


class TestEnforceRateLimit:
    def test_raises_rate_limited_after_budget(self):
        limiter = InMemorySlidingWindowRateLimiter(clock=Mock(return_value=1000.0))
        cfg = RateLimitSettings(create_limit=2, create_window_seconds=60)
        request = _request({"X-User-ID": "7"})

        async def scenario():
            await enforce_rate_limit(request, "create", limiter, cfg)
            await enforce_rate_limit(request, "create", limiter, cfg)
            await enforce_rate_limit(request, "create", limiter, cfg)

        with pytest.raises(RateLimitedError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.retry_after == 60
        assert exc_info.value.limit == 2

    def test_actions_have_separate_budgets(self):
        limiter = InMemorySlidingWindowRateLimiter(clock=Mock(return_value=1000.0))
        cfg = RateLimitSettings(create_limit=1, like_limit=1)
        request = _request({"X-User-ID": "7"})

        async def scenario():
            await enforce_rate_limit(request, "create", limiter, cfg)
            await enforce_rate_limit(request, "like", limiter, cfg)

        asyncio.run(scenario())

    def test_store_outage_fails_closed(self):
        limiter = Mock(spec=AbstractRateLimiter)
        limiter.consume = AsyncMock(
            side_effect=UpstreamUnavailableError(code="store_unavailable", message="down")
        )
        cfg = RateLimitSettings(like_window_seconds=60)

        with pytest.raises(RateLimitedError) as exc_info:
            asyncio.run(enforce_rate_limit(_request(), "like", limiter, cfg))

        assert exc_info.value.retry_after == 60

    def test_disabled_rate_limiting_skips_limiter(self):
        limiter = Mock(spec=AbstractRateLimiter)
        limiter.consume = AsyncMock()

        asyncio.run(enforce_rate_limit(_request(), "delete", limiter, RateLimitSettings(enabled=False)))

        limiter.consume.assert_not_awaited()

    def test_logged_in_user_shares_budget_across_addresses(self):
        limiter = InMemorySlidingWindowRateLimiter(clock=Mock(return_value=1000.0))
        store = InMemoryQuestionStore()
        cfg = RateLimitSettings(create_limit=1, create_window_seconds=60)
        office = _request({"Cookie": "sid=abc", "X-Forwarded-For": "203.0.113.9"})
        phone = _request({"Cookie": "sid=abc", "X-Forwarded-For": "198.51.100.7"})

        async def scenario():
            await store.save_session("abc", {"uid": "u1"}, ttl_seconds=60)
            await enforce_rate_limit(office, "create", limiter, cfg, sessions=store)
            await enforce_rate_limit(phone, "create", limiter, cfg, sessions=store)

        with pytest.raises(RateLimitedError):
            asyncio.run(scenario())
