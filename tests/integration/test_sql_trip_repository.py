"""Tests for the SQL trip repository on SQLite (aiosqlite)."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from offbeat.db.context import RequestContext
from offbeat.db.models import User
from offbeat.db.repositories import TripVersionConflictError
from offbeat.db.sql_repositories import SqlTripRepository
from offbeat.models.trip import TripBase


@pytest.mark.asyncio
async def test_create_creates_owner_and_trip(sqlite_session: AsyncSession, raw_trip: dict) -> None:
    """Test the first trip for a user also creates the user row."""
    repo = SqlTripRepository(sqlite_session)

    record = await repo.create_trip(TripBase.model_validate(raw_trip), RequestContext(user_id=5))

    assert record.id is not None
    assert record.user_id == 5
    assert record.version == 1
    assert record.data["title"] == "Canyon Float"
    assert record.data["journey"]["segments"][0]["from"] == "Rome Launch"

    users = (await sqlite_session.execute(select(User))).scalars().all()
    assert [u.id for u in users] == [5]


@pytest.mark.asyncio
async def test_round_trip_to_saved_trip(sqlite_session: AsyncSession, raw_trip: dict) -> None:
    """Test a stored trip reads back as the same content."""
    repo = SqlTripRepository(sqlite_session)
    original = TripBase.model_validate(raw_trip)

    record = await repo.create_trip(original, RequestContext(user_id=1))
    loaded = await repo.get_trip(record.id)

    assert loaded is not None
    saved = loaded.to_saved_trip()
    assert saved.id == record.id
    assert saved.title == original.title
    assert saved.markers == original.markers
    assert saved.journey == original.journey
    assert saved.itinerary == original.itinerary


@pytest.mark.asyncio
async def test_list_is_scoped_to_user(sqlite_session: AsyncSession) -> None:
    """Test list_trips only returns the caller's trips, newest first."""
    repo = SqlTripRepository(sqlite_session)
    alice, bob = RequestContext(user_id=1), RequestContext(user_id=2)

    await repo.create_trip(TripBase(title="A1"), alice)
    await repo.create_trip(TripBase(title="B1"), bob)
    await repo.create_trip(TripBase(title="A2"), alice)

    titles = [r.data["title"] for r in await repo.list_trips(alice)]
    assert titles == ["A2", "A1"]


@pytest.mark.asyncio
async def test_update_merges_and_checks_version(sqlite_session: AsyncSession) -> None:
    """Test updates merge fields, bump the version and reject stale versions."""
    repo = SqlTripRepository(sqlite_session)
    record = await repo.create_trip(
        TripBase(title="Old", location="Idaho"), RequestContext(user_id=1)
    )

    updated = await repo.update_trip(record.id, {"title": "New"}, expected_version=1)

    assert updated is not None
    assert updated.version == 2
    assert updated.data["title"] == "New"
    assert updated.data["location"] == "Idaho"

    with pytest.raises(TripVersionConflictError) as exc_info:
        await repo.update_trip(record.id, {"title": "Stale"}, expected_version=1)
    assert exc_info.value.actual == 2

    current = await repo.get_trip(record.id)
    assert current is not None
    assert current.data["title"] == "New"


@pytest.mark.asyncio
async def test_update_missing_returns_none(sqlite_session: AsyncSession) -> None:
    """Test updating an unknown trip returns None."""
    repo = SqlTripRepository(sqlite_session)

    assert await repo.update_trip(404, {"title": "x"}) is None


@pytest.mark.asyncio
async def test_delete(sqlite_session: AsyncSession) -> None:
    """Test delete removes the row and reports whether it existed."""
    repo = SqlTripRepository(sqlite_session)
    record = await repo.create_trip(TripBase(title="T"), RequestContext(user_id=1))

    assert await repo.delete_trip(record.id) is True
    assert await repo.delete_trip(record.id) is False
    assert await repo.get_trip(record.id) is None


@pytest.mark.asyncio
async def test_sharing(sqlite_session: AsyncSession) -> None:
    """Test share ids are kept when unsharing and looked up by value."""
    repo = SqlTripRepository(sqlite_session)
    record = await repo.create_trip(TripBase(title="T"), RequestContext(user_id=1))
    share_id = "2f1c9d1e-8c4b-4c57-9f6e-1f7f0f0f0f0f"

    shared = await repo.set_sharing(record.id, shareable_id=share_id, is_public=True)
    assert shared is not None
    assert shared.is_public is True

    unshared = await repo.set_sharing(record.id, shareable_id=None, is_public=False)
    assert unshared is not None
    assert unshared.shareable_id == share_id
    assert unshared.is_public is False

    found = await repo.get_by_shareable_id(share_id)
    assert found is not None
    assert found.id == record.id
    assert await repo.get_by_shareable_id("missing") is None


@pytest.mark.asyncio
async def test_create_with_client_key_is_idempotent(sqlite_session: AsyncSession) -> None:
    """Test a repeated create with the same client key returns the first row."""
    repo = SqlTripRepository(sqlite_session)
    alice = RequestContext(user_id=1)

    first = await repo.create_trip(TripBase(title="T"), alice, client_key="offline-x1")
    second = await repo.create_trip(TripBase(title="T again"), alice, client_key="offline-x1")
    other_user = await repo.create_trip(
        TripBase(title="B"), RequestContext(user_id=2), client_key="offline-x1"
    )

    assert second.id == first.id
    assert second.data["title"] == "T"
    assert other_user.id != first.id
    assert len(await repo.list_trips(alice)) == 1

    found = await repo.get_by_client_key("offline-x1", alice)
    assert found is not None
    assert found.id == first.id
    assert await repo.get_by_client_key("unknown", alice) is None
