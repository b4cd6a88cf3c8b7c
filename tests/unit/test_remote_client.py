"""Unit tests for the remote trip client (httpx MockTransport)."""

import json
from collections.abc import Callable

import httpx
import pytest

from offbeat.models.common import SyncStatus
from offbeat.models.trip import Trip, TripUpdate
from offbeat.offline.backends import InMemoryBackend
from offbeat.offline.remote import (
    AuthRequiredError,
    RemoteTripClient,
    TripAccessDeniedError,
    TripApiError,
    TripConflictError,
    TripNetworkError,
    TripNotFoundError,
    TripServerError,
    TripValidationError,
)
from offbeat.offline.store import OfflineTripStore
from offbeat.offline.sync import SyncCoordinator

SAVED = {
    "id": 12,
    "userId": 1,
    "version": 2,
    "title": "Saved",
    "createdAt": "2025-06-01T12:00:00Z",
    "updatedAt": "2025-06-01T12:00:00Z",
}


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> RemoteTripClient:
    transport = httpx.MockTransport(handler)
    return RemoteTripClient(
        "http://api.test/", token="1", client=httpx.AsyncClient(transport=transport)
    )


@pytest.mark.asyncio
async def test_create_sends_content_without_client_id() -> None:
    """Test create posts camelCase trip content with a bearer token."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json=SAVED)

    remote = _client(handler)

    saved = await remote.create_trip(Trip(id="offline-x1", title="Saved", map_center=(1.0, 2.0)))

    request = seen[0]
    body = json.loads(request.content)
    assert request.method == "POST"
    assert str(request.url) == "http://api.test/trips"
    assert request.headers["Authorization"] == "Bearer 1"
    assert "id" not in body
    assert body["mapCenter"] == [1.0, 2.0]
    assert saved.id == 12
    assert saved.version == 2


@pytest.mark.asyncio
async def test_update_sends_if_match() -> None:
    """Test expected_version is sent as If-Match and partial updates stay partial."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SAVED)

    remote = _client(handler)

    await remote.update_trip(12, TripUpdate(title="Renamed"), expected_version=2)

    request = seen[0]
    assert request.method == "PATCH"
    assert request.headers["If-Match"] == "2"
    assert json.loads(request.content) == {"title": "Renamed"}


@pytest.mark.asyncio
async def test_list_is_cached_until_invalidated() -> None:
    """Test repeated list calls hit the server once until a write or invalidate."""
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            calls["count"] += 1
            return httpx.Response(200, json=[SAVED])
        return httpx.Response(204)

    remote = _client(handler)

    first = await remote.list_trips()
    await remote.list_trips()
    assert calls["count"] == 1
    assert first[0].id == 12

    await remote.delete_trip(12)
    await remote.list_trips()
    assert calls["count"] == 2

    await remote.list_trips(refresh=True)
    assert calls["count"] == 3


@pytest.mark.asyncio
async def test_shared_read_sends_no_credentials() -> None:
    """Test the public shared-trip read is anonymous."""
    seen: list[httpx.Request] = []
    shared = {k: v for k, v in SAVED.items() if k not in ("userId", "version", "updatedAt")}
    shared.update(
        description="",
        location="",
        duration="",
        difficultyLevel="",
        priceEstimate="",
        mapCenter=None,
        markers=[],
        journey={},
        itinerary=[],
    )

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=shared)

    remote = _client(handler)

    trip = await remote.get_shared_trip("abc")

    assert "Authorization" not in seen[0].headers
    assert trip.title == "Saved"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "error_cls", "retryable"),
    [
        (400, TripValidationError, False),
        (401, AuthRequiredError, False),
        (403, TripAccessDeniedError, False),
        (404, TripNotFoundError, False),
        (409, TripConflictError, False),
        (422, TripValidationError, False),
        (500, TripServerError, True),
        (503, TripServerError, True),
        (418, TripApiError, False),
    ],
)
async def test_error_mapping(
    status_code: int, error_cls: type[TripApiError], retryable: bool
) -> None:
    """Test HTTP statuses map to typed errors with the right retry flag."""
    remote = _client(lambda request: httpx.Response(status_code, json={"detail": "nope"}))

    with pytest.raises(error_cls) as exc_info:
        await remote.get_trip(1)

    assert type(exc_info.value) is error_cls
    assert exc_info.value.status_code == status_code
    assert exc_info.value.retryable is retryable
    assert "nope" in str(exc_info.value)


@pytest.mark.asyncio
async def test_network_failure_is_retryable() -> None:
    """Test transport errors become retryable network errors."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    remote = _client(handler)

    with pytest.raises(TripNetworkError) as exc_info:
        await remote.get_trip(1)

    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_non_json_success_body_is_retryable() -> None:
    """Test a 2xx with a non-JSON body (e.g. a proxy page) becomes a retryable server error."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy</html>")

    remote = _client(handler)

    with pytest.raises(TripServerError) as exc_info:
        await remote.create_trip(Trip(id="x1", title="Saved"))

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code == 200
    assert "malformed" in str(exc_info.value)


@pytest.mark.asyncio
async def test_invalid_success_body_is_retryable() -> None:
    """Test a 2xx whose JSON does not match the trip shape becomes a server error."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/trips":
            return httpx.Response(200, json={"trips": []})
        return httpx.Response(200, json={"id": "not-a-number"})

    remote = _client(handler)

    with pytest.raises(TripServerError):
        await remote.get_trip(1)
    with pytest.raises(TripServerError):
        await remote.list_trips()


@pytest.mark.asyncio
async def test_undecodable_body_is_retryable() -> None:
    """Test a body that cannot be decoded becomes a retryable server error."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, content=b"\x00garbage", headers={"Content-Encoding": "gzip"}
        )

    remote = _client(handler)

    with pytest.raises(TripServerError) as exc_info:
        await remote.get_trip(1)

    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_malformed_body_fails_only_that_trip_in_a_sync(clock) -> None:
    """Test one garbled create marks that trip failed while the rest of the batch syncs."""
    posts: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        posts.append(request)
        if len(posts) == 1:
            return httpx.Response(200, text="<html>proxy</html>")
        body = json.loads(request.content)
        return httpx.Response(201, json={**SAVED, "id": 100 + len(posts), "title": body["title"]})

    store = OfflineTripStore(InMemoryBackend())
    for trip_id in ("t1", "t2", "t3"):
        store.save(Trip(id=trip_id, title=trip_id.upper()))
    coordinator = SyncCoordinator(store, _client(handler), timeout_seconds=5, clock=clock)

    result = await coordinator.sync()

    assert result.synced == 2
    assert result.failed == 1
    assert store.get("t1").sync_status == SyncStatus.failed  # type: ignore[union-attr]
    assert store.get("t2").sync_status == SyncStatus.synced  # type: ignore[union-attr]
    assert store.get("t3").sync_status == SyncStatus.synced  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_create_sends_idempotency_key() -> None:
    """Test create forwards the idempotency key as a header only when given."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json=SAVED)

    remote = _client(handler)

    await remote.create_trip(Trip(id="offline-x1", title="Saved"), idempotency_key="offline-x1")
    await remote.create_trip(Trip(id="offline-x2", title="Saved"))

    assert seen[0].headers["Idempotency-Key"] == "offline-x1"
    assert "Idempotency-Key" not in seen[1].headers
