"""Record store interface.

The store is the single source of truth for questions: one record per
question plus an index ordered by ``createdAt``. Implementations rely on the
backend's atomic single-key operations and hold no lock across awaits.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from liveboard.schemas.questions import Question

QuestionRecord = dict[str, Any]


class AbstractQuestionStore(ABC):
    """Authoritative question records plus the time-ordered index."""

    backend_name: str = "abstract"

    @abstractmethod
    async def insert(self, question: Question) -> None:
        """Store the record and index it at ``question.created_at``."""

    @abstractmethod
    async def increment_likes(self, question_id: str, *, create_missing: bool = True) -> int | None:
        """Atomically add one like.

        Args:
            question_id: Target question.
            create_missing: When True, a missing record is initialised with
                zero likes before the increment. When False, a missing record
                is left untouched.

        Returns:
            The new like count, or None when the record is missing and
            ``create_missing`` is False.
        """

    @abstractmethod
    async def remove(self, question_id: str) -> bool:
        """Delete the record and its index entry.

        Returns:
            False if the record did not exist.
        """

    @abstractmethod
    async def top_ids(self, limit: int) -> list[str]:
        """Return up to ``limit`` ids, most recent ``createdAt`` first."""

    @abstractmethod
    async def fetch(self, question_ids: list[str]) -> list[QuestionRecord | None]:
        """Return raw records aligned with ``question_ids`` (None when missing)."""

    @abstractmethod
    async def indexed(self, question_ids: list[str]) -> list[bool]:
        """Report, per id, whether it still has an index entry.

        A like on a deleted id can leave a like-only record behind, so
        record presence alone does not mean the question still exists.
        """

    @abstractmethod
    async def save_session(self, session_id: str, data: dict[str, Any], ttl_seconds: int) -> None:
        """Persist a login session for ``ttl_seconds``."""

    @abstractmethod
    async def drop_session(self, session_id: str) -> None:
        """Forget a login session (no-op if unknown)."""

    @abstractmethod
    async def get_session(self, session_id: str) -> dict[str, Any] | None:
        """Return session data, or None when unknown or expired."""

    async def ping(self) -> bool:
        """Readiness check."""
        return True

    async def close(self) -> None:
        """Release backend resources (no-op by default)."""
