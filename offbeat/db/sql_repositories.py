"""SQL implementations of repository interfaces."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from offbeat.db.context import RequestContext
from offbeat.db.models import Trip as TripDB
from offbeat.db.models import User as UserDB
from offbeat.db.repositories import TripRecord, TripVersionConflictError, trip_document
from offbeat.models.trip import TripBase


def _to_record(trip: TripDB) -> TripRecord:
    return TripRecord(
        id=trip.id,
        user_id=trip.user_id,
        data=dict(trip.data),
        version=trip.version,
        shareable_id=trip.shareable_id,
        is_public=trip.is_public,
        created_at=trip.created_at,
        updated_at=trip.updated_at,
    )


class SqlTripRepository:
    """SQL implementation of TripRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _ensure_user(self, ctx: RequestContext) -> None:
        """Make sure the owning user row exists (FK target for trips)."""
        if await self._session.get(UserDB, ctx.user_id) is None:
            self._session.add(UserDB(id=ctx.user_id, created_at=datetime.now(UTC)))
            await self._session.flush()

    async def _load(self, trip_id: int, *, for_update: bool = False) -> TripDB | None:
        query = select(TripDB).where(TripDB.id == trip_id)
        if for_update:
            query = query.with_for_update()
        result = await self._session.execute(query)
        return result.scalar_one_or_none()

    async def list_trips(self, ctx: RequestContext) -> list[TripRecord]:
        """List the caller's trips, newest first."""
        result = await self._session.execute(
            select(TripDB)
            .where(TripDB.user_id == ctx.user_id)
            .order_by(TripDB.created_at.desc(), TripDB.id.desc())
        )
        return [_to_record(trip) for trip in result.scalars().all()]

    async def get_trip(self, trip_id: int) -> TripRecord | None:
        """Get trip by ID."""
        trip = await self._load(trip_id)
        return _to_record(trip) if trip is not None else None

    async def create_trip(
        self, trip: TripBase, ctx: RequestContext, *, client_key: str | None = None
    ) -> TripRecord:
        """Save a new trip owned by the caller."""
        if client_key is not None:
            existing = await self.get_by_client_key(client_key, ctx)
            if existing is not None:
                return existing

        await self._ensure_user(ctx)

        now = datetime.now(UTC)
        row = TripDB(
            user_id=ctx.user_id,
            title=trip.title,
            data=trip_document(trip),
            version=1,
            is_public=False,
            client_key=client_key,
            created_at=now,
            updated_at=now,
        )
        self._session.add(row)
        try:
            await self._session.commit()
        except IntegrityError:
            # A concurrent create with the same key won the unique constraint
            await self._session.rollback()
            if client_key is None:
                raise
            existing = await self.get_by_client_key(client_key, ctx)
            if existing is None:
                raise
            return existing

        return _to_record(row)

    async def get_by_client_key(self, client_key: str, ctx: RequestContext) -> TripRecord | None:
        """Get the caller's trip created under an idempotency key."""
        result = await self._session.execute(
            select(TripDB).where(TripDB.user_id == ctx.user_id, TripDB.client_key == client_key)
        )
        row = result.scalar_one_or_none()
        return _to_record(row) if row is not None else None

    async def update_trip(
        self,
        trip_id: int,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> TripRecord | None:
        """Merge changes into the stored trip document and bump its version."""
        row = await self._load(trip_id, for_update=True)
        if row is None:
            return None

        if expected_version is not None and expected_version != row.version:
            actual = row.version
            await self._session.rollback()
            raise TripVersionConflictError(trip_id, expected_version, actual)

        # Reassign so the JSON column is flagged dirty
        row.data = {**row.data, **changes}
        row.title = row.data.get("title", row.title)
        row.version = row.version + 1
        row.updated_at = datetime.now(UTC)
        await self._session.commit()

        return _to_record(row)

    async def delete_trip(self, trip_id: int) -> bool:
        """Delete trip."""
        row = await self._load(trip_id)
        if row is None:
            return False
        await self._session.delete(row)
        await self._session.commit()
        return True

    async def set_sharing(
        self, trip_id: int, *, shareable_id: str | None, is_public: bool
    ) -> TripRecord | None:
        """Set or clear the public share link."""
        row = await self._load(trip_id)
        if row is None:
            return None

        if shareable_id is not None:
            row.shareable_id = shareable_id
        row.is_public = is_public
        row.updated_at = datetime.now(UTC)
        await self._session.commit()

        return _to_record(row)

    async def get_by_shareable_id(self, shareable_id: str) -> TripRecord | None:
        """Get trip by its public share id."""
        result = await self._session.execute(
            select(TripDB).where(TripDB.shareable_id == shareable_id)
        )
        row = result.scalar_one_or_none()
        return _to_record(row) if row is not None else None
