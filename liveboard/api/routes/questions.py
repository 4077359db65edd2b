from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request

from liveboard.adapters.rate_limit.base import AbstractRateLimiter
from liveboard.adapters.store.base import AbstractQuestionStore
from liveboard.api.dependencies import get_question_service, get_rate_limiter, get_store
from liveboard.core.config import settings
from liveboard.core.rate_limit import enforce_rate_limit
from liveboard.schemas.questions import (
    CreateQuestionRequest,
    CreateQuestionResponse,
    ListQuestionsResponse,
)
from liveboard.services.question_service import QuestionService, normalize_text

router = APIRouter(tags=["Questions"])


@router.get("/questions", response_model=ListQuestionsResponse)
async def list_questions(
    questions: Annotated[QuestionService, Depends(get_question_service)],
) -> ListQuestionsResponse:
    """Return the newest questions (max ``APP_LIST_LIMIT``), newest first.

    ``source`` is ``cache`` when served from the short-lived latest-view
    cache and ``origin`` when rebuilt from the store.
    """
    items, source = await questions.list_latest(settings.app.list_limit)
    return ListQuestionsResponse(source=source, data=items)


@router.post("/questions/new", response_model=CreateQuestionResponse)
async def create_question(
    request: Request,
    questions: Annotated[QuestionService, Depends(get_question_service)],
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
    store: Annotated[AbstractQuestionStore, Depends(get_store)],
    payload: Annotated[CreateQuestionRequest | None, Body()] = None,
) -> CreateQuestionResponse:
    """Post a new question.

    Raises:
        ValidationAppError: 400 when the text is blank.
        RateLimitedError: 429 when the caller's create budget is exhausted.
    """
    text = normalize_text(payload.text if payload else None)
    await enforce_rate_limit(request, "create", limiter, sessions=store)

    question = await questions.create(text)
    return CreateQuestionResponse(data=question)
