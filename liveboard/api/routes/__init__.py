from __future__ import annotations

from liveboard.api.routes.actions import router as actions_router
from liveboard.api.routes.auth import router as auth_router
from liveboard.api.routes.health import router as health_router
from liveboard.api.routes.questions import router as questions_router
from liveboard.api.routes.stream import router as stream_router

__all__ = [
    "actions_router",
    "auth_router",
    "health_router",
    "questions_router",
    "stream_router",
]
