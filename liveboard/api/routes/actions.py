from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request

from liveboard.adapters.rate_limit.base import AbstractRateLimiter
from liveboard.adapters.store.base import AbstractQuestionStore
from liveboard.api.dependencies import get_question_service, get_rate_limiter, get_store
from liveboard.core.rate_limit import enforce_rate_limit
from liveboard.schemas.questions import (
    DeleteQuestionResponse,
    LikeQuestionResponse,
    QuestionIdRequest,
)
from liveboard.services.question_service import QuestionService, require_id

router = APIRouter(tags=["Actions"])


@router.post("/like", response_model=LikeQuestionResponse)
async def like_question(
    request: Request,
    questions: Annotated[QuestionService, Depends(get_question_service)],
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
    store: Annotated[AbstractQuestionStore, Depends(get_store)],
    payload: Annotated[QuestionIdRequest | None, Body()] = None,
) -> LikeQuestionResponse:
    """Add one like.

    Liking an unknown id creates a zero record and counts the like unless
    ``APP_STRICT_LIKES`` is enabled, in which case it returns 404.
    """
    question_id = require_id(payload.id if payload else None)
    await enforce_rate_limit(request, "like", limiter, sessions=store)

    likes = await questions.like(question_id)
    return LikeQuestionResponse(id=question_id, likes=likes)


@router.post("/delete", response_model=DeleteQuestionResponse)
async def delete_question(
    request: Request,
    questions: Annotated[QuestionService, Depends(get_question_service)],
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
    store: Annotated[AbstractQuestionStore, Depends(get_store)],
    payload: Annotated[QuestionIdRequest | None, Body()] = None,
) -> DeleteQuestionResponse:
    """Delete a question and its index entry; 404 when it does not exist."""
    question_id = require_id(payload.id if payload else None)
    await enforce_rate_limit(request, "delete", limiter, sessions=store)

    await questions.delete(question_id)
    return DeleteQuestionResponse(id=question_id)
