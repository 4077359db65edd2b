"""Tests for the login stub and session cookie handling."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from liveboard.api.routes.auth import SESSION_COOKIE, authenticate
from liveboard.core.errors import AuthenticationAppError


class TestAuthenticate:
    def test_any_non_empty_credentials_are_accepted(self):
        assert authenticate("a@example.com", "pw") == {"id": "u1", "email": "a@example.com"}

    @pytest.mark.parametrize("email,password", [(None, "pw"), ("a@example.com", ""), ("", "")])
    def test_missing_credentials_rejected(self, email, password):
        with pytest.raises(AuthenticationAppError) as exc_info:
            authenticate(email, password)

        assert exc_info.value.code == "invalid_credentials"


class TestLoginRoutes:
    def test_login_sets_session_cookie_and_stores_session(self, client: TestClient):
        response = client.post("/api/auth/login", json={"email": "a@example.com", "password": "pw"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        sid = response.cookies.get(SESSION_COOKIE)
        assert sid
        cookie_header = response.headers["set-cookie"].lower()
        assert "httponly" in cookie_header
        assert "samesite=lax" in cookie_header

        store = client.app.state.container.store
        session = asyncio.run(store.get_session(sid))
        assert session == {"uid": "u1", "email": "a@example.com"}

    def test_login_with_missing_credentials_returns_401(self, client: TestClient):
        response = client.post("/api/auth/login", json={"email": "a@example.com"})

        assert response.status_code == 401
        assert response.json()["ok"] is False
        assert response.json()["code"] == "invalid_credentials"

    def test_logout_drops_session_and_clears_cookie(self, client: TestClient):
        login = client.post("/api/auth/login", json={"email": "a@example.com", "password": "pw"})
        sid = login.cookies.get(SESSION_COOKIE)

        # The client cookie jar sends the sid set by login
        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert f'{SESSION_COOKIE}=""' in response.headers["set-cookie"]
        store = client.app.state.container.store
        assert asyncio.run(store.get_session(sid)) is None

    def test_logout_without_session_is_ok(self, client: TestClient):
        client.cookies.clear()

        assert client.post("/api/auth/logout").json() == {"ok": True}
