"""Unit tests for auth module."""

import pytest
from fastapi import HTTPException

from offbeat.api.auth import get_current_context


@pytest.mark.asyncio
async def test_get_current_context_valid_token() -> None:
    """Test a numeric bearer token becomes the user id."""
    ctx = await get_current_context(authorization="Bearer 42")

    assert ctx.user_id == 42


@pytest.mark.asyncio
async def test_get_current_context_missing_header() -> None:
    """Test a missing header raises 401 with a bearer challenge."""
    with pytest.raises(HTTPException) as exc_info:
        await get_current_context(authorization=None)

    assert exc_info.value.status_code == 401
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


@pytest.mark.asyncio
async def test_get_current_context_invalid_bearer_format() -> None:
    """Test invalid bearer format raises 401."""
    with pytest.raises(HTTPException) as exc_info:
        await get_current_context(authorization="NotBearer token")

    assert exc_info.value.status_code == 401
    assert "Invalid authorization header format" in exc_info.value.detail


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["abc", "0", "-3", ""])
async def test_get_current_context_rejects_bad_user_ids(token: str) -> None:
    """Test non-numeric and non-positive user ids raise 401."""
    with pytest.raises(HTTPException) as exc_info:
        await get_current_context(authorization=f"Bearer {token}")

    assert exc_info.value.status_code == 401
