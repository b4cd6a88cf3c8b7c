"""Chat endpoint - POST /chat."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from offbeat.api.deps import get_chat_service
from offbeat.llm.client import LLMServiceError
from offbeat.llm.service import ChatService
from offbeat.models.chat import ChatMessage, ChatRequest, ChatResponse

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse, response_model_by_alias=True)
async def chat(
    request: ChatRequest,
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> ChatResponse:
    """Send a message to the trip assistant.

    Args:
        request: Prior messages (used when starting a session) and the new user message
        service: Chat service

    Returns:
        Session id plus the user and assistant messages; the assistant message
        carries normalized trips in tripData when the reply contained any

    Raises:
        HTTPException: 502 if the LLM provider fails
    """
    session_id = request.session_id or uuid.uuid4().hex
    user_message = ChatMessage(role="user", content=request.user_message)

    try:
        reply = await service.process(session_id, request.user_message, history=request.messages)
    except LLMServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Trip assistant unavailable: {e}",
        ) from e

    return ChatResponse(
        session_id=session_id,
        user_message=user_message,
        ai_message=ChatMessage(
            role="assistant",
            content=reply.content,
            thinking=reply.thinking or None,
            trip_data=reply.trip_data,
        ),
    )
