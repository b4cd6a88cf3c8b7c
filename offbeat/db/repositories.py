"""Repository protocol interfaces for saved trips."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from offbeat.db.context import RequestContext
from offbeat.models.trip import SavedTrip, SharedTrip, TripBase


class TripVersionConflictError(Exception):
    """Stored trip version differs from the version the caller expected."""

    def __init__(self, trip_id: int, expected: int, actual: int) -> None:
        super().__init__(f"Trip {trip_id} is at version {actual}, expected {expected}")
        self.trip_id = trip_id
        self.expected = expected
        self.actual = actual


@dataclass
class TripRecord:
    """Saved trip data record."""

    id: int
    user_id: int
    data: dict[str, Any]  # camelCase TripBase document
    version: int
    shareable_id: str | None
    is_public: bool
    created_at: datetime
    updated_at: datetime

    def to_saved_trip(self) -> SavedTrip:
        return SavedTrip.model_validate(
            {
                **self.data,
                "id": self.id,
                "userId": self.user_id,
                "version": self.version,
                "shareableId": self.shareable_id,
                "isPublic": self.is_public,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )

    def to_shared_trip(self) -> SharedTrip:
        return SharedTrip.model_validate({**self.data, "id": self.id, "createdAt": self.created_at})


def trip_document(trip: TripBase) -> dict[str, Any]:
    """Serialize trip content for storage."""
    return trip.model_dump(mode="json", by_alias=True, include=set(TripBase.model_fields))


class TripRepository(Protocol):
    """Repository for saved trip operations.

    Reads by id are not scoped to the caller so the API can tell "not yours"
    (403) apart from "does not exist" (404); ownership is checked there.
    """

    async def list_trips(self, ctx: RequestContext) -> list[TripRecord]:
        """List the caller's trips, newest first.

        Args:
            ctx: Request context (enforces ownership)

        Returns:
            List of trip records
        """
        ...

    async def get_trip(self, trip_id: int) -> TripRecord | None:
        """Get trip by ID.

        Args:
            trip_id: Trip ID

        Returns:
            Trip record or None if not found
        """
        ...

    async def create_trip(
        self, trip: TripBase, ctx: RequestContext, *, client_key: str | None = None
    ) -> TripRecord:
        """Save a new trip owned by the caller.

        Args:
            trip: Trip content
            ctx: Request context
            client_key: Caller-chosen idempotency key, unique per user. If a
                trip with this key already exists it is returned instead.

        Returns:
            Created (or previously created) record
        """
        ...

    async def get_by_client_key(self, client_key: str, ctx: RequestContext) -> TripRecord | None:
        """Get the caller's trip created under an idempotency key."""
        ...

    async def update_trip(
        self,
        trip_id: int,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> TripRecord | None:
        """Merge changes into the stored trip document and bump its version.

        Args:
            trip_id: Trip ID
            changes: camelCase fields to overwrite
            expected_version: If set, update only when the stored version matches

        Returns:
            Updated record or None if not found

        Raises:
            TripVersionConflictError: If expected_version does not match
        """
        ...

    async def delete_trip(self, trip_id: int) -> bool:
        """Delete trip. Returns whether it existed."""
        ...

    async def set_sharing(
        self, trip_id: int, *, shareable_id: str | None, is_public: bool
    ) -> TripRecord | None:
        """Set or clear the public share link.

        Args:
            trip_id: Trip ID
            shareable_id: Public id, or None to keep the existing one
            is_public: Whether the trip is readable through its share link

        Returns:
            Updated record or None if not found
        """
        ...

    async def get_by_shareable_id(self, shareable_id: str) -> TripRecord | None:
        """Get trip by its public share id (public or not)."""
        ...
