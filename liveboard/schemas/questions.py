"""Pydantic schemas for questions and the question endpoints."""

from __future__ import annotations

from typing import Any, List, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field

PLACEHOLDER_TEXT = "Untitled"


class Question(BaseModel):
    """A posted question as stored, cached and broadcast."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Opaque unique identifier (uuid4).")
    text: str = Field(..., description="Trimmed, non-empty question text.")
    likes: int = Field(0, ge=0, description="Number of likes received.")
    created_at: int = Field(
        0,
        alias="createdAt",
        description="Creation time in milliseconds since the epoch; also the index sort key.",
    )

    @classmethod
    def hydrate(cls, question_id: str, record: Mapping[str, Any] | None) -> "Question":
        """Build a Question from a raw store record.

        Missing records and missing fields fall back to the placeholder values
        (``Untitled``, 0 likes, createdAt 0) instead of failing.
        """
        record = record or {}
        return cls(
            id=question_id,
            text=record.get("text") or PLACEHOLDER_TEXT,
            likes=int(record.get("likes") or 0),
            created_at=int(record.get("createdAt") or 0),
        )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the camelCase shape used on the wire and in caches."""
        return self.model_dump(by_alias=True)


class CreateQuestionRequest(BaseModel):
    text: str | None = None


class QuestionIdRequest(BaseModel):
    id: str | None = None


class CreateQuestionResponse(BaseModel):
    ok: Literal[True] = True
    data: Question


class LikeQuestionResponse(BaseModel):
    ok: Literal[True] = True
    id: str
    likes: int


class DeleteQuestionResponse(BaseModel):
    ok: Literal[True] = True
    id: str


class ListQuestionsResponse(BaseModel):
    source: Literal["cache", "origin"] = Field(
        ..., description="'cache' when served from the latest-view cache, 'origin' when rebuilt from the store."
    )
    data: List[Question] = Field(default_factory=list)
