"""Session-keyed conversation memory for the chat service."""

import logging
from typing import Protocol

from pydantic import ValidationError
from redis.asyncio import Redis

from offbeat.models.chat import ChatMessage

logger = logging.getLogger(__name__)

MAX_HISTORY = 50


class ConversationStore(Protocol):
    """Store for per-session chat history."""

    async def get(self, session_id: str) -> list[ChatMessage]:
        """Get the session's messages, oldest first."""
        ...

    async def append(self, session_id: str, *messages: ChatMessage) -> None:
        """Append messages, keeping at most MAX_HISTORY."""
        ...

    async def clear(self, session_id: str) -> None:
        """Forget the session."""
        ...


class InMemoryConversationStore:
    """In-memory implementation of ConversationStore."""

    def __init__(self) -> None:
        self._sessions: dict[str, list[ChatMessage]] = {}

    async def get(self, session_id: str) -> list[ChatMessage]:
        return list(self._sessions.get(session_id, []))

    async def append(self, session_id: str, *messages: ChatMessage) -> None:
        history = self._sessions.setdefault(session_id, [])
        history.extend(messages)
        del history[:-MAX_HISTORY]

    async def clear(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)


class RedisConversationStore:
    """Redis-backed ConversationStore; one list per session with a sliding TTL."""

    def __init__(self, client: Redis, ttl_seconds: int = 24 * 3600) -> None:
        self._client = client
        self._ttl = ttl_seconds

    @staticmethod
    def _key(session_id: str) -> str:
        return f"offbeat:chat:{session_id}"

    async def get(self, session_id: str) -> list[ChatMessage]:
        raw_items = await self._client.lrange(self._key(session_id), 0, -1)
        messages = []
        for raw in raw_items:
            try:
                messages.append(ChatMessage.model_validate_json(raw))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable message in session {session_id}: {e}")
        return messages

    async def append(self, session_id: str, *messages: ChatMessage) -> None:
        if not messages:
            return
        key = self._key(session_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.rpush(key, *(m.model_dump_json(by_alias=True) for m in messages))
            pipe.ltrim(key, -MAX_HISTORY, -1)
            pipe.expire(key, self._ttl)
            await pipe.execute()

    async def clear(self, session_id: str) -> None:
        await self._client.delete(self._key(session_id))
