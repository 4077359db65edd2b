"""Login stub.

Any non-empty email/password pair authenticates as the demo user ``u1``.
Sessions live in the store with a TTL and are referenced by the ``sid``
cookie. Credential strength is explicitly not a goal here.
"""

from __future__ import annotations

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Body, Cookie, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from liveboard.adapters.store.base import AbstractQuestionStore
from liveboard.api.dependencies import get_store
from liveboard.core.config import settings
from liveboard.core.errors import AuthenticationAppError
from liveboard.core.rate_limit import SESSION_COOKIE

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

DEMO_USER_ID = "u1"


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


def authenticate(email: str | None, password: str | None) -> dict[str, str]:
    """Accept any non-empty credentials as the demo user.

    Raises:
        AuthenticationAppError: If either credential is missing.
    """
    if not email or not password:
        raise AuthenticationAppError(code="invalid_credentials", message="Invalid credentials")
    return {"id": DEMO_USER_ID, "email": email}


@router.post("/login")
async def login(
    store: Annotated[AbstractQuestionStore, Depends(get_store)],
    payload: Annotated[LoginRequest | None, Body()] = None,
) -> JSONResponse:
    payload = payload or LoginRequest()
    user = authenticate(payload.email, payload.password)

    session_id = str(uuid.uuid4())
    ttl = settings.store.session_ttl_seconds
    await store.save_session(
        session_id,
        {"uid": user["id"], "email": user["email"]},
        ttl,
    )
    logger.info("auth.login", extra={"user_id": user["id"]})

    response = JSONResponse({"ok": True})
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        max_age=ttl,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.app_env == "production",
    )
    return response


@router.post("/logout")
async def logout(
    store: Annotated[AbstractQuestionStore, Depends(get_store)],
    sid: Annotated[str | None, Cookie()] = None,
) -> JSONResponse:
    if sid:
        await store.drop_session(sid)
        logger.info("auth.logout")

    response = JSONResponse({"ok": True})
    response.delete_cookie(key=SESSION_COOKIE, path="/")
    return response
