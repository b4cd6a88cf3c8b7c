"""In-memory implementations of repository interfaces."""

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from offbeat.db.context import RequestContext
from offbeat.db.repositories import TripRecord, TripVersionConflictError, trip_document
from offbeat.models.trip import TripBase


class InMemoryTripRepository:
    """In-memory implementation of TripRepository."""

    def __init__(self) -> None:
        self._trips: dict[int, TripRecord] = {}
        self._client_keys: dict[tuple[int, str], int] = {}  # (user_id, key) -> trip id
        self._next_id = 1

    async def list_trips(self, ctx: RequestContext) -> list[TripRecord]:
        """List the caller's trips, newest first."""
        owned = [record for record in self._trips.values() if record.user_id == ctx.user_id]
        return sorted(owned, key=lambda r: (r.created_at, r.id), reverse=True)

    async def get_trip(self, trip_id: int) -> TripRecord | None:
        """Get trip by ID."""
        return self._trips.get(trip_id)

    async def create_trip(
        self, trip: TripBase, ctx: RequestContext, *, client_key: str | None = None
    ) -> TripRecord:
        """Save a new trip owned by the caller."""
        if client_key is not None:
            existing = await self.get_by_client_key(client_key, ctx)
            if existing is not None:
                return existing

        now = datetime.now(UTC)
        record = TripRecord(
            id=self._next_id,
            user_id=ctx.user_id,
            data=trip_document(trip),
            version=1,
            shareable_id=None,
            is_public=False,
            created_at=now,
            updated_at=now,
        )
        self._trips[record.id] = record
        if client_key is not None:
            self._client_keys[(ctx.user_id, client_key)] = record.id
        self._next_id += 1
        return record

    async def get_by_client_key(self, client_key: str, ctx: RequestContext) -> TripRecord | None:
        """Get the caller's trip created under an idempotency key."""
        trip_id = self._client_keys.get((ctx.user_id, client_key))
        return self._trips.get(trip_id) if trip_id is not None else None

    async def update_trip(
        self,
        trip_id: int,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> TripRecord | None:
        """Merge changes into the stored trip document and bump its version."""
        record = self._trips.get(trip_id)
        if record is None:
            return None

        if expected_version is not None and expected_version != record.version:
            raise TripVersionConflictError(trip_id, expected_version, record.version)

        updated = replace(
            record,
            data={**record.data, **changes},
            version=record.version + 1,
            updated_at=datetime.now(UTC),
        )
        self._trips[trip_id] = updated
        return updated

    async def delete_trip(self, trip_id: int) -> bool:
        """Delete trip."""
        return self._trips.pop(trip_id, None) is not None

    async def set_sharing(
        self, trip_id: int, *, shareable_id: str | None, is_public: bool
    ) -> TripRecord | None:
        """Set or clear the public share link."""
        record = self._trips.get(trip_id)
        if record is None:
            return None

        updated = replace(
            record,
            shareable_id=shareable_id or record.shareable_id,
            is_public=is_public,
            updated_at=datetime.now(UTC),
        )
        self._trips[trip_id] = updated
        return updated

    async def get_by_shareable_id(self, shareable_id: str) -> TripRecord | None:
        """Get trip by its public share id."""
        for record in self._trips.values():
            if record.shareable_id == shareable_id:
                return record
        return None
