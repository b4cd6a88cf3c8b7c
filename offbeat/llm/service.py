"""Chat service - one conversation turn with the trip assistant."""

import logging

from offbeat.llm.client import LLMClient, LLMServiceError
from offbeat.llm.conversations import ConversationStore
from offbeat.models.chat import ChatMessage, ChatReply
from offbeat.normalizer.extract import split_trip_response
from offbeat.normalizer.trips import normalize_trips
from offbeat.utils.metrics import record_chat_outcome, record_normalizer_outcome

logger = logging.getLogger(__name__)

TRIPS_ONLY_REPLY = "Here are some trips that match what you described."


class ChatService:
    """Runs a chat turn: history in, assistant reply and normalized trips out.

    Malformed trip JSON never fails the turn; the reply simply carries no
    trips. Provider failures propagate as LLMServiceError.
    """

    def __init__(self, client: LLMClient, conversations: ConversationStore) -> None:
        self._client = client
        self._conversations = conversations

    async def process(
        self,
        session_id: str,
        user_message: str,
        history: list[ChatMessage] | None = None,
    ) -> ChatReply:
        """Process one user message.

        Args:
            session_id: Conversation key
            user_message: New user text
            history: Client-held prior turns, used only when the session is new

        Returns:
            ChatReply with prose content and trip_data (None if no trips)

        Raises:
            LLMServiceError: If the LLM call fails
        """
        stored = await self._conversations.get(session_id)
        prior = stored or list(history or [])

        messages = [{"role": m.role, "content": m.content} for m in prior]
        messages.append({"role": "user", "content": user_message})

        try:
            completion = await self._client.complete(messages)
        except LLMServiceError:
            record_chat_outcome("llm_error")
            raise

        if completion.trip_payload is not None:
            prose, payload = completion.text.strip(), completion.trip_payload
        else:
            prose, payload = split_trip_response(completion.text)

        if payload is None:
            record_normalizer_outcome("no_json")
            trips = None
        else:
            trips = normalize_trips(payload)

        content = prose or (TRIPS_ONLY_REPLY if trips else completion.text.strip())
        reply = ChatReply(content=content, thinking=completion.thinking, trip_data=trips)

        to_store = [ChatMessage(role="user", content=user_message)]
        if not stored and prior:
            to_store = prior + to_store
        to_store.append(
            ChatMessage(
                role="assistant",
                content=reply.content,
                thinking=reply.thinking or None,
                trip_data=trips,
            )
        )
        await self._conversations.append(session_id, *to_store)

        record_chat_outcome("trips" if trips else "text")
        logger.info(
            f"Chat turn for session {session_id}: {len(trips) if trips else 0} trip(s) in reply"
        )
        return reply
