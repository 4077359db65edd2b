"""FastAPI dependencies resolving components from the service container."""

from __future__ import annotations

from fastapi import Request

from liveboard.adapters.rate_limit.base import AbstractRateLimiter
from liveboard.adapters.store.base import AbstractQuestionStore
from liveboard.core.container import ServiceContainer
from liveboard.services.question_service import QuestionService
from liveboard.services.stream_session import StreamHub


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_question_service(request: Request) -> QuestionService:
    return get_container(request).questions


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    return get_container(request).limiter


def get_store(request: Request) -> AbstractQuestionStore:
    return get_container(request).store


def get_stream_hub(request: Request) -> StreamHub:
    return get_container(request).streams
