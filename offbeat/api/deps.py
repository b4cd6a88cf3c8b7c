"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from offbeat.config import get_settings
from offbeat.db.engine import get_session
from offbeat.db.repositories import TripRepository
from offbeat.db.sql_repositories import SqlTripRepository
from offbeat.llm.client import LLMClient, get_llm_client
from offbeat.llm.conversations import (
    ConversationStore,
    InMemoryConversationStore,
    RedisConversationStore,
)
from offbeat.llm.service import ChatService


async def get_trip_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TripRepository:
    """Trip repository bound to the request's database session."""
    return SqlTripRepository(session)


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Outbound HTTP client for pass-through endpoints, closed after the request."""
    async with httpx.AsyncClient(timeout=get_settings().http_timeout_seconds) as client:
        yield client


@lru_cache
def get_conversation_store() -> ConversationStore:
    """Process-wide conversation memory: Redis when configured, in-process otherwise."""
    settings = get_settings()
    if settings.redis_url:
        return RedisConversationStore(
            Redis.from_url(settings.redis_url), ttl_seconds=settings.conversation_ttl_seconds
        )
    return InMemoryConversationStore()


async def get_chat_service(
    client: Annotated[LLMClient, Depends(get_llm_client)],
    conversations: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> ChatService:
    """Chat service wired to the configured LLM client and conversation store."""
    return ChatService(client, conversations)
