"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, the error envelope, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from liveboard.core.errors import (
    AppError,
    AuthenticationAppError,
    NotFoundError,
    RateLimitedError,
    UpstreamUnavailableError,
    ValidationAppError,
)
from liveboard.core.exception_handlers import setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


def _raise_on(app: FastAPI, path: str, exc: Exception) -> None:
    @app.get(path)
    async def endpoint():
        raise exc


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        "exc,status",
        [
            (ValidationAppError(code="text_required", message="Text required"), 400),
            (AuthenticationAppError(code="invalid_credentials", message="Invalid credentials"), 401),
            (NotFoundError(code="question_not_found", message="Question not found"), 404),
            (UpstreamUnavailableError(code="store_unavailable", message="Store unavailable"), 503),
            (AppError(code="generic", message="Generic failure"), 400),
        ],
    )
    def test_status_mapping(self, client: TestClient, app_with_handlers: FastAPI, exc, status):
        _raise_on(app_with_handlers, "/boom", exc)

        response = client.get("/boom")

        assert response.status_code == status
        data = response.json()
        assert data["ok"] is False
        assert data["error"] == exc.message
        assert data["code"] == exc.code
        assert "request_id" in data

    def test_details_included_when_provided(self, client: TestClient, app_with_handlers: FastAPI):
        _raise_on(
            app_with_handlers,
            "/details",
            NotFoundError(
                code="question_not_found",
                message="Question not found",
                details={"question_id": "q1"},
            ),
        )

        data = client.get("/details").json()

        assert data["details"] == {"question_id": "q1"}

    def test_rate_limited_returns_429_with_retry_hints(self, client: TestClient, app_with_handlers: FastAPI):
        _raise_on(
            app_with_handlers,
            "/limited",
            RateLimitedError(
                code="rate_limited",
                message="Rate limit exceeded. Please slow down.",
                retry_after=12,
                limit=30,
                remaining=0,
                reset_at=1700000060,
            ),
        )

        response = client.get("/limited")

        assert response.status_code == 429
        data = response.json()
        assert data["error"] == "Rate limit exceeded. Please slow down."
        assert data["retryAfterSeconds"] == 12
        assert response.headers["Retry-After"] == "12"
        assert response.headers["X-RateLimit-Limit"] == "30"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Reset"] == "1700000060"

    def test_rate_limit_headers_can_be_disabled(
        self, client: TestClient, app_with_handlers: FastAPI, monkeypatch: pytest.MonkeyPatch
    ):
        from liveboard.core.config import settings

        monkeypatch.setattr(settings.rate_limit, "include_headers", False)
        _raise_on(app_with_handlers, "/quiet", RateLimitedError(code="rate_limited", message="slow", retry_after=3))

        response = client.get("/quiet")

        assert response.status_code == 429
        assert response.json()["retryAfterSeconds"] == 3
        assert "Retry-After" not in response.headers


class TestRequestValidationHandler:
    def test_malformed_body_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        from pydantic import BaseModel

        class Payload(BaseModel):
            count: int

        @app_with_handlers.post("/typed")
        async def endpoint(payload: Payload):
            return {"ok": True}

        response = client.post("/typed", json={"count": "not-a-number"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"
        assert response.json()["ok"] is False


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_logic(self):
        """Verify general_exception_handler returns correct structure."""
        from liveboard.core.exception_handlers import general_exception_handler

        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("Unexpected error: redis connection failed")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["code"] == "internal_server_error"
        # Original error message should NOT be in response
        assert "redis connection" not in data["error"]
        assert "request_id" in data

    def test_unhandled_route_error_never_leaks_stack_trace(self, client: TestClient, app_with_handlers: FastAPI):
        _raise_on(app_with_handlers, "/crash", ValueError("Test error with details"))

        response = client.get("/crash")

        assert response.status_code == 500
        assert "Traceback" not in response.text
        assert "ValueError" not in response.text
        assert "Test error with details" not in response.text


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
