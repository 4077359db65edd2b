"""In-memory question store.

Single-process only. Operations are serialized by a lock so concurrent
requests (event loop tasks or TestClient threads) see the same atomicity the
Redis backend gets from single-key commands and transactions.
"""

from __future__ import annotations

import bisect
import threading
import time
from typing import Any, Callable

from liveboard.adapters.store.base import AbstractQuestionStore, QuestionRecord
from liveboard.schemas.questions import Question


class InMemoryQuestionStore(AbstractQuestionStore):
    """Dict-backed records with a sorted ``(createdAt, id)`` index."""

    backend_name = "memory"

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._lock = threading.RLock()
        self._records: dict[str, QuestionRecord] = {}
        self._index: list[tuple[int, str]] = []
        self._scores: dict[str, int] = {}
        self._sessions: dict[str, tuple[float, dict[str, Any]]] = {}
        self._clock = clock

    def _unindex_locked(self, question_id: str) -> None:
        score = self._scores.pop(question_id, None)
        if score is None:
            return
        pos = bisect.bisect_left(self._index, (score, question_id))
        if pos < len(self._index) and self._index[pos] == (score, question_id):
            del self._index[pos]

    async def insert(self, question: Question) -> None:
        with self._lock:
            self._records[question.id] = {
                "text": question.text,
                "likes": question.likes,
                "createdAt": question.created_at,
            }
            self._unindex_locked(question.id)
            bisect.insort(self._index, (question.created_at, question.id))
            self._scores[question.id] = question.created_at

    async def increment_likes(self, question_id: str, *, create_missing: bool = True) -> int | None:
        with self._lock:
            record = self._records.get(question_id)
            if record is None:
                if not create_missing:
                    return None
                # Like-only record: not indexed, so it never shows up in lists
                record = self._records.setdefault(question_id, {"likes": 0})
            record["likes"] = int(record.get("likes", 0)) + 1
            return record["likes"]

    async def remove(self, question_id: str) -> bool:
        with self._lock:
            existed = self._records.pop(question_id, None) is not None
            self._unindex_locked(question_id)
            return existed

    async def top_ids(self, limit: int) -> list[str]:
        with self._lock:
            return [qid for _, qid in reversed(self._index[-limit:])] if limit > 0 else []

    async def fetch(self, question_ids: list[str]) -> list[QuestionRecord | None]:
        with self._lock:
            return [
                dict(self._records[qid]) if qid in self._records else None
                for qid in question_ids
            ]

    async def indexed(self, question_ids: list[str]) -> list[bool]:
        with self._lock:
            return [qid in self._scores for qid in question_ids]

    async def save_session(self, session_id: str, data: dict[str, Any], ttl_seconds: int) -> None:
        with self._lock:
            self._sessions[session_id] = (self._clock() + ttl_seconds, dict(data))

    async def drop_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    async def get_session(self, session_id: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            expires_at, data = entry
            if self._clock() >= expires_at:
                del self._sessions[session_id]
                return None
            return dict(data)
