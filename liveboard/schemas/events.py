"""Stream event models and their wire codec.

Every frame on the event stream is one JSON object with a ``type``
discriminator. The same shapes travel over the Redis pub/sub channel.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from liveboard.schemas.questions import Question

NEW_QUESTION = "new-question"
QUESTION_UPDATE = "question-update"
QUESTION_DELETE = "question-delete"
PING = "ping"


class LikesPayload(BaseModel):
    id: str
    likes: int


class DeletedPayload(BaseModel):
    id: str


class QuestionCreated(BaseModel):
    type: Literal["new-question"] = NEW_QUESTION
    payload: Question


class QuestionUpdated(BaseModel):
    type: Literal["question-update"] = QUESTION_UPDATE
    payload: LikesPayload


class QuestionDeleted(BaseModel):
    type: Literal["question-delete"] = QUESTION_DELETE
    payload: DeletedPayload


class Ping(BaseModel):
    type: Literal["ping"] = PING
    t: int


DomainEvent = Union[QuestionCreated, QuestionUpdated, QuestionDeleted]
StreamEvent = Annotated[
    Union[QuestionCreated, QuestionUpdated, QuestionDeleted, Ping],
    Field(discriminator="type"),
]

_stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)


def created(question: Question) -> QuestionCreated:
    return QuestionCreated(payload=question)


def updated(question_id: str, likes: int) -> QuestionUpdated:
    return QuestionUpdated(payload=LikesPayload(id=question_id, likes=likes))


def deleted(question_id: str) -> QuestionDeleted:
    return QuestionDeleted(payload=DeletedPayload(id=question_id))


def serialize_event(event: BaseModel) -> str:
    """Encode an event as compact JSON with camelCase question fields."""
    return event.model_dump_json(by_alias=True)


def parse_event(raw: str | bytes) -> QuestionCreated | QuestionUpdated | QuestionDeleted | Ping:
    """Decode a JSON frame body back into its event model.

    Raises:
        pydantic.ValidationError: If the payload is not a known event shape.
    """
    return _stream_event_adapter.validate_json(raw)


def sse_frame(event: BaseModel) -> str:
    """Wrap an event in a server-sent-events ``data:`` frame."""
    return f"data: {serialize_event(event)}\n\n"
