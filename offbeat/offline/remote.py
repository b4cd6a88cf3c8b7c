"""Async HTTP client for the remote trip collection."""

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from offbeat.models.trip import SavedTrip, SharedTrip, ShareLink, Trip, TripBase, TripUpdate

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


# Exception types
class TripApiError(Exception):
    """Remote trip API call failed."""

    retryable = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthRequiredError(TripApiError):
    """Caller is not authenticated (401)."""

    pass


class TripAccessDeniedError(TripApiError):
    """Trip exists but belongs to another user (403)."""

    pass


class TripNotFoundError(TripApiError):
    """Trip does not exist (404)."""

    pass


class TripValidationError(TripApiError):
    """Server rejected the trip payload (400/422)."""

    pass


class TripConflictError(TripApiError):
    """Trip changed on the server since it was last read (409)."""

    pass


class TripServerError(TripApiError):
    """Server failed to handle the request (5xx)."""

    retryable = True


class TripNetworkError(TripApiError):
    """Server could not be reached."""

    retryable = True


_STATUS_ERRORS: dict[int, type[TripApiError]] = {
    400: TripValidationError,
    401: AuthRequiredError,
    403: TripAccessDeniedError,
    404: TripNotFoundError,
    409: TripConflictError,
    422: TripValidationError,
}


def _error_for(response: httpx.Response) -> TripApiError:
    try:
        body = response.json()
    except ValueError:
        body = None
    detail = body.get("detail", response.text) if isinstance(body, dict) else response.text
    error_cls = _STATUS_ERRORS.get(response.status_code)
    if error_cls is None:
        error_cls = TripServerError if response.status_code >= 500 else TripApiError
    return error_cls(f"HTTP {response.status_code}: {detail}", status_code=response.status_code)


def _parse(response: httpx.Response, model: type[ModelT]) -> ModelT:
    """Decode a success body, treating garbage from the server as a server error."""
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        raise _malformed(response, e) from e


def _parse_list(response: httpx.Response, model: type[ModelT]) -> list[ModelT]:
    try:
        body = response.json()
        if not isinstance(body, list):
            raise ValueError(f"expected a JSON array, got {type(body).__name__}")
        return [model.model_validate(item) for item in body]
    except (ValueError, ValidationError) as e:
        raise _malformed(response, e) from e


def _malformed(response: httpx.Response, error: Exception) -> TripServerError:
    request = response.request
    logger.warning(f"{request.method} {request.url.path} returned a malformed body: {error}")
    return TripServerError(
        f"HTTP {response.status_code}: malformed response body", status_code=response.status_code
    )


def _trip_body(trip: Trip | TripBase) -> dict[str, Any]:
    return trip.model_dump(mode="json", by_alias=True, include=set(TripBase.model_fields))


class RemoteTripClient:
    """Client for /trips endpoints.

    Keeps the last fetched trip list until `invalidate()` is called or a
    write goes through this client.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize client.

        Args:
            base_url: API root, e.g. "http://localhost:8000"
            token: Bearer token sent on authenticated calls
            timeout: Per-request timeout in seconds
            client: Optional httpx client (for testing with mocks)
        """
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._cached_trips: list[SavedTrip] | None = None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def invalidate(self) -> None:
        """Drop the cached trip list so the next list call refetches."""
        self._cached_trips = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        auth: bool = True,
    ) -> httpx.Response:
        request_headers = dict(headers or {})
        if auth and self._token:
            request_headers["Authorization"] = f"Bearer {self._token}"

        try:
            response = await self._client.request(
                method, f"{self._base_url}{path}", json=json, headers=request_headers
            )
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e!r}")
            raise TripNetworkError(f"{method} {path} failed: {e}") from e
        except httpx.HTTPError as e:
            # Reached the server but the response could not be read (e.g. bad encoding)
            logger.warning(f"{method} {path} returned an unreadable response: {e!r}")
            raise TripServerError(f"{method} {path} returned an unreadable response: {e}") from e

        if response.is_error:
            raise _error_for(response)
        return response

    async def list_trips(self, *, refresh: bool = False) -> list[SavedTrip]:
        if self._cached_trips is None or refresh:
            response = await self._request("GET", "/trips")
            self._cached_trips = _parse_list(response, SavedTrip)
        return list(self._cached_trips)

    async def get_trip(self, trip_id: int) -> SavedTrip:
        response = await self._request("GET", f"/trips/{trip_id}")
        return _parse(response, SavedTrip)

    async def create_trip(
        self, trip: Trip | TripBase, *, idempotency_key: str | None = None
    ) -> SavedTrip:
        """Create a trip; any client-side id is ignored by the server.

        Args:
            trip: Trip content
            idempotency_key: Sent as Idempotency-Key; repeating a create with the
                same key returns the trip the first call created
        """
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        response = await self._request("POST", "/trips", json=_trip_body(trip), headers=headers)
        self.invalidate()
        return _parse(response, SavedTrip)

    async def update_trip(
        self,
        trip_id: int,
        trip: Trip | TripBase | TripUpdate,
        *,
        expected_version: int | None = None,
    ) -> SavedTrip:
        """Update a trip.

        Args:
            trip_id: Server id
            trip: Full trip content or a partial update
            expected_version: Sent as If-Match; the server answers 409 on mismatch

        Raises:
            TripConflictError: Server version differs from expected_version
        """
        if isinstance(trip, TripUpdate):
            body = trip.model_dump(mode="json", by_alias=True, exclude_unset=True)
        else:
            body = _trip_body(trip)

        headers = {"If-Match": str(expected_version)} if expected_version is not None else None
        response = await self._request("PATCH", f"/trips/{trip_id}", json=body, headers=headers)
        self.invalidate()
        return _parse(response, SavedTrip)

    async def delete_trip(self, trip_id: int) -> None:
        await self._request("DELETE", f"/trips/{trip_id}")
        self.invalidate()

    async def share_trip(self, trip_id: int) -> ShareLink:
        response = await self._request("POST", f"/trips/{trip_id}/share")
        self.invalidate()
        return _parse(response, ShareLink)

    async def unshare_trip(self, trip_id: int) -> None:
        await self._request("POST", f"/trips/{trip_id}/unshare")
        self.invalidate()

    async def get_shared_trip(self, shareable_id: str) -> SharedTrip:
        """Public read; no credentials are sent."""
        response = await self._request("GET", f"/trips/shared/{shareable_id}", auth=False)
        return _parse(response, SharedTrip)
