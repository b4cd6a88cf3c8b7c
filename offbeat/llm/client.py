"""LLM client for the trip-planning chat with OpenAI integration.

Security: Reads API key from settings/environment only, never hardcoded.
Provides a deterministic client when no key is present for local runs and tests.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from openai import AsyncOpenAI, OpenAIError

from offbeat.config import get_settings

logger = logging.getLogger(__name__)

TRIP_TOOL_NAME = "trip_format"

SYSTEM_PROMPT = """You are an outdoor activity planning assistant. Ask a few questions to \
understand the traveler's needs, then suggest two trips to lesser-known destinations.

Prioritize off-the-beaten-path locations, local operators, shoulder seasons and low \
congestion, and account for how prepared the travelers are.

When you have enough information (at most two exchanges), call the trip_format tool, or \
include a JSON object {"trip": [...]} in your reply. Each trip has: id, title, description, \
whyWeChoseThis, difficultyLevel, priceEstimate, duration, location, suggestedGuides, \
mapCenter [lng, lat], markers [{name, coordinates [lng, lat]}], journey {segments [{mode, \
from, to, distance (meters), duration (seconds), geometry {type: "LineString", coordinates}}], \
totalDistance, totalDuration, bounds [[sw_lng, sw_lat], [ne_lng, ne_lat]]} and itinerary \
[{day, title, description, activities [string]}]. Use real-world coordinates."""

TRIP_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": TRIP_TOOL_NAME,
        "description": "Return structured trip suggestions",
        "parameters": {
            "type": "object",
            "properties": {"trip": {"type": "array", "items": {"type": "object"}}},
            "required": ["trip"],
        },
    },
}


class LLMServiceError(Exception):
    """LLM provider call failed or returned nothing usable."""

    pass


@dataclass
class LLMCompletion:
    """Raw assistant output before trip extraction."""

    text: str
    thinking: str = ""
    trip_payload: dict[str, Any] | None = None  # structured tool-call output, if any


class LLMClient(Protocol):
    """Protocol for LLM client implementations."""

    async def complete(self, messages: list[dict[str, str]]) -> LLMCompletion:
        """Generate the next assistant turn.

        Args:
            messages: Prior turns plus the new user turn, as {role, content}

        Returns:
            LLMCompletion with reply text and optional structured trip payload

        Raises:
            LLMServiceError: On provider failure
        """
        ...


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required).

    Replies with one fixed sample trip embedded as JSON in the text, so the
    extraction path is exercised end to end.
    """

    async def complete(self, messages: list[dict[str, str]]) -> LLMCompletion:
        """Generate deterministic stub reply."""
        request = messages[-1]["content"] if messages else ""
        trip = {
            "id": f"stub-{len(messages)}",
            "title": "Gorge Loop Sampler",
            "description": f"Sample itinerary for: {request[:80]}",
            "whyWeChoseThis": "Deterministic sample generated without an LLM.",
            "difficultyLevel": "Intermediate",
            "priceEstimate": "$500 - $800 per person",
            "duration": "2 Days",
            "location": "Columbia River Gorge",
            "suggestedGuides": [],
            "mapCenter": [-121.9, 45.6],
            "markers": [
                {"name": "Trailhead", "coordinates": [-122.0, 45.6]},
                {"name": "Camp", "coordinates": [-121.8, 45.6]},
            ],
            "journey": {
                "segments": [
                    {
                        "mode": "walking",
                        "from": "Trailhead",
                        "to": "Camp",
                        "distance": 16000,
                        "duration": 18000,
                        "geometry": {
                            "type": "LineString",
                            "coordinates": [[-122.0, 45.6], [-121.9, 45.62], [-121.8, 45.6]],
                        },
                    }
                ],
                "totalDistance": 16000,
                "totalDuration": 18000,
                "bounds": [[-122.0, 45.6], [-121.8, 45.62]],
            },
            "itinerary": [
                {"day": 1, "title": "Hike in", "description": "", "activities": ["Hike"]},
                {"day": 2, "title": "Hike out", "description": "", "activities": ["Hike"]},
            ],
        }
        text = (
            "Here is a sample trip to get you started.\n\n"
            f"```json\n{json.dumps({'trip': [trip]})}\n```\n\n"
            "*This is a stub response generated without an LLM.*"
        )
        return LLMCompletion(text=text)


class OpenAIChatClient:
    """OpenAI-backed LLM client."""

    def __init__(self, api_key: str, model: str = "gpt-4o", max_tokens: int = 4000):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use
            max_tokens: Completion token limit
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens

    async def complete(self, messages: list[dict[str, str]]) -> LLMCompletion:
        """Generate the next assistant turn using the OpenAI API."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "system", "content": SYSTEM_PROMPT}, *messages],
                tools=[TRIP_TOOL],
                temperature=1.0,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI API call failed: {e}")
            raise LLMServiceError(f"OpenAI API call failed: {type(e).__name__}") from e

        message = response.choices[0].message
        text = message.content or ""
        payload = self._tool_payload(message.tool_calls or [])

        if not text.strip() and payload is None:
            logger.warning("OpenAI returned an empty response")
            raise LLMServiceError("LLM returned an empty response")

        return LLMCompletion(text=text, trip_payload=payload)

    @staticmethod
    def _tool_payload(tool_calls: list[Any]) -> dict[str, Any] | None:
        for call in tool_calls:
            if call.function.name != TRIP_TOOL_NAME:
                continue
            try:
                payload = json.loads(call.function.arguments)
            except json.JSONDecodeError as e:
                logger.warning(f"trip_format arguments failed to decode: {e}")
                return None
            return payload if isinstance(payload, dict) else None
        return None


async def get_llm_client() -> LLMClient:
    """Factory function to get appropriate LLM client based on config.

    Returns:
        OpenAIChatClient if API key is configured, DeterministicStubClient otherwise
    """
    settings = get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client for chat")
        return OpenAIChatClient(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
            max_tokens=settings.llm_max_tokens,
        )
    else:
        logger.warning("No OpenAI API key configured, using deterministic stub client")
        return DeterministicStubClient()
