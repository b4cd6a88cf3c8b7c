"""Locate the trip JSON payload embedded in free-form assistant text.

Assistant replies usually wrap the structured trip payload in prose (and
sometimes in a markdown code fence). Extraction never raises: anything that
does not decode is reported as "no trip data".
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)
_decoder = json.JSONDecoder()


def _locate(text: str) -> tuple[dict[str, Any], int, int] | None:
    """Find the first decodable top-level JSON object and its [start, end) span.

    A fenced block wins. Otherwise each `{` is tried in turn, so stray braces
    in the prose before the payload are skipped.
    """
    fence = _FENCE_RE.search(text)
    if fence:
        try:
            value = json.loads(fence.group(1))
        except json.JSONDecodeError as e:
            logger.warning(f"Fenced trip JSON failed to decode: {e}")
        else:
            if isinstance(value, dict):
                return value, fence.start(), fence.end()

    start = text.find("{")
    while start >= 0:
        try:
            value, end = _decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            pass
        else:
            if isinstance(value, dict):
                return value, start, end
        start = text.find("{", start + 1)

    if "{" in text:
        logger.warning("No decodable trip JSON object in assistant text")
    return None


def extract_trip_payload(text: str | None) -> dict[str, Any] | None:
    """Extract the first top-level JSON object from assistant text.

    Args:
        text: Assistant reply, possibly with prose before/after the JSON

    Returns:
        Decoded JSON object, or None when there is no decodable object
    """
    if not text:
        return None
    located = _locate(text)
    return located[0] if located else None


def split_trip_response(text: str | None) -> tuple[str, dict[str, Any] | None]:
    """Split assistant text into (prose, payload).

    The JSON span is cut out of the prose so chat replies read naturally.
    When no payload is found the prose is the original text, stripped.
    """
    if not text:
        return "", None

    located = _locate(text)
    if located is None:
        return text.strip(), None

    payload, start, end = located
    prose = f"{text[:start].rstrip()}\n\n{text[end:].lstrip()}".strip()
    return prose, payload
