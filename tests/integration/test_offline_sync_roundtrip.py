"""End-to-end offline sync against the real API app (ASGI transport, in-memory repository)."""

import asyncio
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from offbeat.api.deps import get_trip_repository
from offbeat.db.context import RequestContext
from offbeat.db.inmemory import InMemoryTripRepository
from offbeat.db.repositories import TripRecord
from offbeat.main import app
from offbeat.models.common import SyncStatus
from offbeat.models.trip import TripBase
from offbeat.normalizer.trips import normalize_trip
from offbeat.offline.connectivity import ConnectivityMonitor
from offbeat.offline.remote import RemoteTripClient
from offbeat.offline.store import OfflineTripStore
from offbeat.offline.sync import SyncCoordinator


@pytest_asyncio.fixture
async def remote() -> AsyncGenerator[RemoteTripClient, None]:
    """Remote client talking to the app in-process as user 1."""
    repo = InMemoryTripRepository()
    app.dependency_overrides[get_trip_repository] = lambda: repo
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
    yield RemoteTripClient("http://testserver", token="1", client=http)
    await http.aclose()
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_offline_trips_sync_when_back_online(
    store: OfflineTripStore, remote: RemoteTripClient, trip_factory
) -> None:
    """Test trips saved offline reach the server once connectivity returns."""
    connectivity = ConnectivityMonitor(is_online=False)
    coordinator = SyncCoordinator(store, remote, connectivity, timeout_seconds=5)

    for trip_id, title in (("a", "Alvord Desert"), ("b", "Leslie Gulch")):
        trip = normalize_trip(trip_factory(trip_id, title))
        assert trip is not None
        store.save(trip)

    assert (await coordinator.sync()).skipped is True

    connectivity.set_online(True)
    result = await coordinator.sync()

    assert result.message == "2 synced"
    server_trips = await remote.list_trips()
    assert sorted(t.title for t in server_trips) == ["Alvord Desert", "Leslie Gulch"]
    assert all(t.sync_status == SyncStatus.synced for t in store.get_all())

    server_copy = await remote.get_trip(store.get("a").server_id)  # type: ignore[arg-type, union-attr]
    assert server_copy.journey.segments[0].from_ == "Rome Launch"
    assert server_copy.journey.segments[0].geometry is not None


@pytest.mark.asyncio
async def test_edit_after_sync_updates_server_copy(
    store: OfflineTripStore, remote: RemoteTripClient, trip_factory
) -> None:
    """Test re-saving a synced trip pushes an update with optimistic concurrency."""
    coordinator = SyncCoordinator(store, remote, timeout_seconds=5)
    trip = normalize_trip(trip_factory("a", "Original"))
    assert trip is not None
    store.save(trip)
    await coordinator.sync()

    entry = store.get("a")
    assert entry is not None
    store.save(entry.to_trip().model_copy(update={"title": "Edited offline"}))
    result = await coordinator.sync()

    assert result.synced == 1
    synced = store.get("a")
    assert synced is not None
    assert synced.server_version == 2
    server_copy = await remote.get_trip(synced.server_id)  # type: ignore[arg-type]
    assert server_copy.title == "Edited offline"
    assert server_copy.version == 2


@pytest.mark.asyncio
async def test_server_side_change_conflicts(
    store: OfflineTripStore, remote: RemoteTripClient, trip_factory
) -> None:
    """Test an update against a newer server version fails without retry."""
    coordinator = SyncCoordinator(store, remote, timeout_seconds=5)
    trip = normalize_trip(trip_factory("a", "Original"))
    assert trip is not None
    store.save(trip)
    await coordinator.sync()
    server_id = store.get("a").server_id  # type: ignore[union-attr]

    # Someone else edits the trip on the server
    await remote.update_trip(server_id, trip.model_copy(update={"title": "Server edit"}))  # type: ignore[arg-type]

    entry = store.get("a")
    assert entry is not None
    store.save(entry.to_trip().model_copy(update={"title": "Local edit"}))
    result = await coordinator.sync()

    assert result.failed == 1
    failed = store.get("a")
    assert failed is not None
    assert failed.sync_status == SyncStatus.failed
    assert failed.retryable is False
    assert "409" in (failed.last_error or "")


@pytest.mark.asyncio
async def test_delete_synced_trip_removes_server_copy(
    store: OfflineTripStore, remote: RemoteTripClient, trip_factory
) -> None:
    """Test deleting a synced trip deletes it on the server too."""
    coordinator = SyncCoordinator(store, remote, timeout_seconds=5)
    trip = normalize_trip(trip_factory("a", "Doomed"))
    assert trip is not None
    store.save(trip)
    await coordinator.sync()

    assert await coordinator.delete_trip("a") is True

    assert store.get_all() == []
    assert await remote.list_trips(refresh=True) == []


class SlowAfterCommitRepository(InMemoryTripRepository):
    """Saves the first created trip, then stalls before answering."""

    def __init__(self, stall_seconds: float) -> None:
        super().__init__()
        self.stall_seconds = stall_seconds
        self.creates = 0

    async def create_trip(
        self, trip: TripBase, ctx: RequestContext, *, client_key: str | None = None
    ) -> TripRecord:
        record = await super().create_trip(trip, ctx, client_key=client_key)
        self.creates += 1
        if self.creates == 1:
            await asyncio.sleep(self.stall_seconds)
        return record


@pytest.mark.asyncio
async def test_retry_after_lost_create_response_does_not_duplicate(
    store: OfflineTripStore, trip_factory
) -> None:
    """Test a create the server saved but never answered is not saved twice on retry."""
    repo = SlowAfterCommitRepository(stall_seconds=1.0)
    app.dependency_overrides[get_trip_repository] = lambda: repo
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
    remote = RemoteTripClient("http://testserver", token="1", client=http)
    try:
        coordinator = SyncCoordinator(
            store, remote, timeout_seconds=0.2, backoff_base_seconds=0
        )
        trip = normalize_trip(trip_factory("a", "Owyhee Canyon"))
        assert trip is not None
        store.save(trip)

        first = await coordinator.sync()
        assert first.failed == 1
        assert store.get("a").sync_status == SyncStatus.failed  # type: ignore[union-attr]

        second = await coordinator.sync()
        assert second.synced == 1

        server_trips = await remote.list_trips(refresh=True)
        assert len(server_trips) == 1
        assert store.get("a").server_id == server_trips[0].id  # type: ignore[union-attr]
    finally:
        await http.aclose()
        app.dependency_overrides.clear()
