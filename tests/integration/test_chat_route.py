"""Tests for POST /chat."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from offbeat.api.deps import get_chat_service
from offbeat.llm.client import DeterministicStubClient, LLMCompletion, LLMServiceError
from offbeat.llm.conversations import InMemoryConversationStore
from offbeat.llm.service import ChatService
from offbeat.main import app


class FailingClient:
    """LLM client whose provider is down."""

    async def complete(self, messages: list[dict[str, str]]) -> LLMCompletion:
        raise LLMServiceError("provider unavailable")


@pytest.fixture
def conversations() -> InMemoryConversationStore:
    """Conversation store shared across requests of one test."""
    return InMemoryConversationStore()


@pytest.fixture
def client(conversations: InMemoryConversationStore) -> Generator[TestClient, None, None]:
    """Test client wired to the deterministic stub LLM."""
    app.dependency_overrides[get_chat_service] = lambda: ChatService(
        DeterministicStubClient(), conversations
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_chat_returns_trips(client: TestClient) -> None:
    """Test a chat turn returns prose plus normalized trips in tripData."""
    response = client.post("/chat", json={"messages": [], "userMessage": "Desert canyons"})

    assert response.status_code == 200
    data = response.json()
    assert data["sessionId"]
    assert data["userMessage"]["role"] == "user"
    assert data["userMessage"]["content"] == "Desert canyons"
    ai = data["aiMessage"]
    assert ai["role"] == "assistant"
    assert "```" not in ai["content"]
    trip = ai["tripData"][0]
    assert trip["title"] == "Gorge Loop Sampler"
    assert trip["journey"]["segments"][0]["mode"] == "walking"
    assert trip["mapCenter"] == [-121.9, 45.6]


def test_chat_session_is_continued(
    client: TestClient, conversations: InMemoryConversationStore
) -> None:
    """Test passing sessionId back continues the same conversation."""
    first = client.post("/chat", json={"userMessage": "Hi"}).json()

    second = client.post(
        "/chat", json={"userMessage": "More please", "sessionId": first["sessionId"]}
    ).json()

    assert second["sessionId"] == first["sessionId"]
    # Stub trip ids count the messages sent to the model
    assert second["aiMessage"]["tripData"][0]["id"] == "stub-3"


def test_chat_rejects_empty_message(client: TestClient) -> None:
    """Test an empty user message answers 422."""
    response = client.post("/chat", json={"userMessage": ""})

    assert response.status_code == 422


def test_chat_llm_failure_is_bad_gateway(conversations: InMemoryConversationStore) -> None:
    """Test provider failures answer 502."""
    app.dependency_overrides[get_chat_service] = lambda: ChatService(
        FailingClient(), conversations
    )
    try:
        response = TestClient(app).post("/chat", json={"userMessage": "Hi"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 502
    assert "provider unavailable" in response.json()["detail"]
