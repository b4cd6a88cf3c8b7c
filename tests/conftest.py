"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from offbeat.db.models import Base
from offbeat.offline.backends import InMemoryBackend
from offbeat.offline.store import OfflineTripStore


class FakeClock:
    """Manually advanced clock for time-dependent store and sync tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 6, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


def make_raw_trip(trip_id: Any = "x1", title: str = "Canyon Float", **overrides: Any) -> dict:
    """Raw trip JSON in the shape the assistant produces."""
    raw: dict[str, Any] = {
        "id": trip_id,
        "title": title,
        "description": "Two days on quiet water.",
        "location": "Owyhee Canyonlands, OR",
        "duration": "2 Days",
        "difficultyLevel": "Moderate",
        "priceEstimate": "$400 - $600",
        "whyWeChoseThis": "Few crowds in shoulder season.",
        "suggestedGuides": ["Owyhee River Outfitters"],
        "mapCenter": [-117.2, 43.2],
        "markers": [
            {"name": "Rome Launch", "coordinates": [-117.6, 42.8]},
            {"name": "Birch Creek", "coordinates": [-117.3, 43.2]},
        ],
        "journey": {
            "segments": [
                {
                    "mode": "rafting",
                    "from": "Rome Launch",
                    "to": "Birch Creek",
                    "distance": 56000,
                    "duration": 36000,
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [[-117.6, 42.8], [-117.45, 43.0], [-117.3, 43.2]],
                    },
                }
            ],
            "totalDistance": 56000,
            "totalDuration": 36000,
            "bounds": [[-117.6, 42.8], [-117.3, 43.2]],
        },
        "itinerary": [
            {"day": 1, "title": "Launch", "description": "Put in at Rome.", "activities": ["Raft"]},
            {"day": 2, "title": "Take out", "description": "", "activities": ["Raft", "Hike"]},
        ],
    }
    raw.update(overrides)
    return raw


@pytest.fixture
def raw_trip() -> dict:
    """A complete raw trip."""
    return make_raw_trip()


@pytest.fixture
def trip_factory() -> Callable[..., dict]:
    """Builder for raw trips: trip_factory(trip_id, title, **overrides)."""
    return make_raw_trip


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced clock."""
    return FakeClock()


@pytest.fixture
def backend() -> InMemoryBackend:
    """Empty in-memory key-value backend."""
    return InMemoryBackend()


@pytest.fixture
def store(backend: InMemoryBackend, clock: Callable[[], datetime]) -> OfflineTripStore:
    """Offline trip store on an in-memory backend with a fake clock."""
    return OfflineTripStore(backend, clock=clock)


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the schema created.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Async session on the in-memory SQLite engine."""
    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def postgres_session(postgres_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Async session for PostgreSQL integration tests."""
    async with AsyncSession(postgres_engine, expire_on_commit=False) as session:
        yield session
        await session.rollback()
