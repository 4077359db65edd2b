"""Question service orchestrating the store, the latest-view cache and events.

This service is the write/read path behind the HTTP endpoints. It handles:
- Input validation and normalization
- Store mutations (create, like, delete)
- Cache invalidation, always after the mutation has committed
- Best-effort event publication that never fails the write
- Read-through listing with placeholder hydration for dangling index ids
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Literal

from liveboard.adapters.cache.base import AbstractViewCache
from liveboard.adapters.events.base import AbstractEventBus
from liveboard.adapters.store.base import AbstractQuestionStore
from liveboard.core.errors import NotFoundError, ValidationAppError
from liveboard.schemas import events
from liveboard.schemas.events import DomainEvent
from liveboard.schemas.questions import Question

logger = logging.getLogger(__name__)

ListSource = Literal["cache", "origin"]

DEFAULT_LIST_LIMIT = 20


def normalize_text(text: str | None) -> str:
    """Trim question text, rejecting empty input.

    Raises:
        ValidationAppError: If the text is missing or blank.
    """
    normalized = str(text or "").strip()
    if not normalized:
        raise ValidationAppError(code="text_required", message="Text required")
    return normalized


def require_id(question_id: str | None) -> str:
    """Reject missing or blank question ids.

    Raises:
        ValidationAppError: If the id is missing.
    """
    if question_id is None or not str(question_id).strip():
        raise ValidationAppError(code="id_required", message="Missing id")
    return str(question_id).strip()


def _now_ms() -> int:
    return int(time.time() * 1000)


class QuestionService:
    """Create, like, delete and list questions.

    Args:
        store: Authoritative record store and index.
        cache: Latest-view cache.
        bus: Event bus receiving a hint after every successful mutation.
        strict_likes: Raise NotFoundError when liking an unknown id instead
            of implicitly creating a like-only record.
        clock_ms: Millisecond clock used for ``createdAt``.
    """

    def __init__(
        self,
        *,
        store: AbstractQuestionStore,
        cache: AbstractViewCache,
        bus: AbstractEventBus,
        strict_likes: bool = False,
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self._store = store
        self._cache = cache
        self._bus = bus
        self._strict_likes = strict_likes
        self._clock_ms = clock_ms

    @property
    def store(self) -> AbstractQuestionStore:
        return self._store

    def _publish(self, event: DomainEvent) -> None:
        # Delivery problems are the bus's concern; the write already succeeded
        try:
            self._bus.publish(event)
        except Exception as exc:
            logger.warning(
                "questions.publish_failed",
                extra={"event_type": event.type, "error_type": type(exc).__name__},
            )

    async def create(self, text: str | None) -> Question:
        """Store a new question and announce it.

        Raises:
            ValidationAppError: If the text is blank.
            UpstreamUnavailableError: If the store fails.
        """
        question = Question(
            id=str(uuid.uuid4()),
            text=normalize_text(text),
            likes=0,
            created_at=self._clock_ms(),
        )
        await self._store.insert(question)
        await self._cache.invalidate()
        self._publish(events.created(question))

        logger.info(
            "questions.created",
            extra={"question_id": question.id, "char_count": len(question.text)},
        )
        return question

    async def like(self, question_id: str | None) -> int:
        """Atomically add one like and return the new count.

        Unknown ids get an implicit zero record unless strict likes are on.

        Raises:
            ValidationAppError: If the id is missing.
            NotFoundError: If strict likes are on and the question is unknown.
        """
        question_id = require_id(question_id)
        likes = await self._store.increment_likes(question_id, create_missing=not self._strict_likes)
        if likes is None:
            raise NotFoundError(
                code="question_not_found",
                message="Question not found",
                details={"question_id": question_id},
            )
        await self._cache.invalidate()
        self._publish(events.updated(question_id, likes))

        logger.info("questions.liked", extra={"question_id": question_id, "likes": likes})
        return likes

    async def delete(self, question_id: str | None) -> str:
        """Remove a question and its index entry.

        Raises:
            ValidationAppError: If the id is missing.
            NotFoundError: If the question does not exist.
        """
        question_id = require_id(question_id)
        if not await self._store.remove(question_id):
            raise NotFoundError(
                code="question_not_found",
                message="Question not found",
                details={"question_id": question_id},
            )
        await self._cache.invalidate()
        self._publish(events.deleted(question_id))

        logger.info("questions.deleted", extra={"question_id": question_id})
        return question_id

    async def hydrate(self, question_ids: list[str], *, placeholders: bool = True) -> list[Question]:
        """Load questions for ``question_ids`` in order.

        Args:
            question_ids: Ids as returned by the index.
            placeholders: Substitute a placeholder for ids whose record is
                gone (dangling index entries). When False they are skipped.
        """
        records = await self._store.fetch(question_ids)
        questions: list[Question] = []
        for question_id, record in zip(question_ids, records):
            if record is None and not placeholders:
                continue
            if record is None:
                logger.warning("questions.dangling_index_entry", extra={"question_id": question_id})
            questions.append(Question.hydrate(question_id, record))
        return questions

    async def list_latest(self, limit: int = DEFAULT_LIST_LIMIT) -> tuple[list[Question], ListSource]:
        """Return the newest questions, served from cache when possible."""
        cached = await self._cache.get()
        if cached is not None:
            return [Question.model_validate(item) for item in cached], "cache"

        question_ids = await self._store.top_ids(limit)
        questions = await self.hydrate(question_ids)
        await self._cache.set([q.to_record() for q in questions])
        return questions, "origin"
