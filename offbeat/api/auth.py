"""Minimal auth dependency.

Stub implementation that reads the user id from a "Bearer <user_id>" token.
Session/JWT handling lives in front of this service and is out of scope here.
"""

from typing import Annotated

from fastapi import Header, HTTPException, status

from offbeat.db.context import RequestContext


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_context(
    authorization: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Extract request context from authorization header.

    Args:
        authorization: Authorization header (e.g., "Bearer 42")

    Returns:
        RequestContext with user_id

    Raises:
        HTTPException: 401 if the header is missing or malformed
    """
    if not authorization:
        raise _unauthorized("Authentication required")

    if not authorization.startswith("Bearer "):
        raise _unauthorized("Invalid authorization header format")

    token = authorization[7:].strip()  # Strip "Bearer "

    try:
        user_id = int(token)
    except ValueError as e:
        raise _unauthorized("Invalid bearer token (expected numeric user id)") from e

    if user_id <= 0:
        raise _unauthorized("Invalid bearer token (expected numeric user id)")

    return RequestContext(user_id=user_id)
