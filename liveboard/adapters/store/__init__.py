"""Question store adapters - authoritative records plus the time index."""

from liveboard.adapters.store.base import AbstractQuestionStore, QuestionRecord
from liveboard.adapters.store.in_memory import InMemoryQuestionStore
from liveboard.adapters.store.redis_backend import RedisQuestionStore

__all__ = [
    "AbstractQuestionStore",
    "InMemoryQuestionStore",
    "QuestionRecord",
    "RedisQuestionStore",
]
