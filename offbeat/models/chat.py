"""Chat models - conversation turns exchanged with the trip assistant."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import Field

from offbeat.models.common import CamelModel
from offbeat.models.trip import Trip


class ChatMessage(CamelModel):
    """Single conversation turn."""

    role: Literal["user", "assistant"]
    content: str
    thinking: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    trip_data: list[Trip] | None = None


class ChatRequest(CamelModel):
    """Request body for POST /chat."""

    messages: list[ChatMessage] = Field(default_factory=list)
    user_message: str = Field(..., min_length=1)
    session_id: str | None = Field(None, description="Continue an existing conversation")


class ChatReply(CamelModel):
    """Assistant reply with any trips found in it."""

    content: str
    thinking: str = ""
    trip_data: list[Trip] | None = None


class ChatResponse(CamelModel):
    """Response for POST /chat."""

    session_id: str
    user_message: ChatMessage
    ai_message: ChatMessage
