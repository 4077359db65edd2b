"""Redis question store.

Layout:
- ``question:<id>``: hash with ``text``, ``likes``, ``createdAt``
- ``questions:byTime``: sorted set, member = id, score = createdAt
- ``session:<sid>``: JSON string with TTL
"""

from __future__ import annotations

import json
from typing import Any

from redis.asyncio import Redis

from liveboard.adapters.redis_client import upstream_guard
from liveboard.adapters.store.base import AbstractQuestionStore, QuestionRecord
from liveboard.schemas.questions import Question

INDEX_KEY = "questions:byTime"

# HINCRBY only when the hash exists; returns nil otherwise
_INCR_IF_EXISTS_LUA = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return false
end
return redis.call('HINCRBY', KEYS[1], 'likes', 1)
"""


def question_key(question_id: str) -> str:
    return f"question:{question_id}"


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


class RedisQuestionStore(AbstractQuestionStore):
    """Question records and index on a shared Redis instance."""

    backend_name = "redis"

    def __init__(self, client: Redis) -> None:
        self._redis = client
        self._incr_if_exists = client.register_script(_INCR_IF_EXISTS_LUA)

    async def insert(self, question: Question) -> None:
        async with upstream_guard("store.insert"):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.hset(
                    question_key(question.id),
                    mapping={
                        "text": question.text,
                        "likes": question.likes,
                        "createdAt": question.created_at,
                    },
                )
                pipe.zadd(INDEX_KEY, {question.id: question.created_at})
                await pipe.execute()

    async def increment_likes(self, question_id: str, *, create_missing: bool = True) -> int | None:
        key = question_key(question_id)
        async with upstream_guard("store.increment_likes"):
            if create_missing:
                # HINCRBY initialises a missing field (and hash) to 0 first
                return int(await self._redis.hincrby(key, "likes", 1))
            result = await self._incr_if_exists(keys=[key])
        return None if result is None else int(result)

    async def remove(self, question_id: str) -> bool:
        async with upstream_guard("store.remove"):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.delete(question_key(question_id))
                pipe.zrem(INDEX_KEY, question_id)
                deleted, _ = await pipe.execute()
        return int(deleted) > 0

    async def top_ids(self, limit: int) -> list[str]:
        if limit <= 0:
            return []
        async with upstream_guard("store.top_ids"):
            return list(await self._redis.zrange(INDEX_KEY, 0, limit - 1, desc=True))

    async def fetch(self, question_ids: list[str]) -> list[QuestionRecord | None]:
        if not question_ids:
            return []
        async with upstream_guard("store.fetch"):
            async with self._redis.pipeline(transaction=False) as pipe:
                for qid in question_ids:
                    pipe.hgetall(question_key(qid))
                rows = await pipe.execute()
        # HGETALL returns {} for a missing key
        return [row or None for row in rows]

    async def indexed(self, question_ids: list[str]) -> list[bool]:
        if not question_ids:
            return []
        async with upstream_guard("store.indexed"):
            async with self._redis.pipeline(transaction=False) as pipe:
                for qid in question_ids:
                    pipe.zscore(INDEX_KEY, qid)
                scores = await pipe.execute()
        return [score is not None for score in scores]

    async def save_session(self, session_id: str, data: dict[str, Any], ttl_seconds: int) -> None:
        async with upstream_guard("store.save_session"):
            await self._redis.set(session_key(session_id), json.dumps(data), ex=ttl_seconds)

    async def drop_session(self, session_id: str) -> None:
        async with upstream_guard("store.drop_session"):
            await self._redis.delete(session_key(session_id))

    async def get_session(self, session_id: str) -> dict[str, Any] | None:
        async with upstream_guard("store.get_session"):
            raw = await self._redis.get(session_key(session_id))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    async def ping(self) -> bool:
        async with upstream_guard("store.ping"):
            return bool(await self._redis.ping())
