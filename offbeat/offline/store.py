"""Offline trip store - durable local cache of trips with per-trip sync status."""

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from offbeat.models.common import SyncStatus
from offbeat.models.offline import OfflineTrip, SyncMetadata, TripIdentity, TripRef
from offbeat.models.trip import Trip
from offbeat.offline.backends import KeyValueBackend

logger = logging.getLogger(__name__)

TRIPS_KEY = "offbeat_offline_trips"
SYNC_METADATA_KEY = "offbeat_offline_sync_status"

# Bump when the persisted layout changes; bare lists predate versioning (0)
SCHEMA_VERSION = 1


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OfflineTripStore:
    """Local trip cache.

    Every mutating operation reads the whole collection, applies the change
    and writes the whole collection back. Entries are never mutated in place;
    each change replaces the entry with an updated copy.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize store.

        Args:
            backend: Durable key-value storage
            clock: Injectable time source (default: current UTC time)
        """
        self._backend = backend
        self._clock = clock or _utcnow

    # --- persistence ---

    def _load(self) -> list[OfflineTrip]:
        raw = self._backend.read(TRIPS_KEY)
        if raw is None:
            return []

        try:
            blob = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Offline trip cache is corrupt, treating as empty: {e}")
            return []

        if isinstance(blob, list):
            items = blob  # schema version 0
        elif isinstance(blob, dict) and blob.get("schemaVersion") == SCHEMA_VERSION:
            items = blob.get("trips") or []
        else:
            version = blob.get("schemaVersion") if isinstance(blob, dict) else None
            logger.error(f"Unsupported offline trip cache layout (schemaVersion={version})")
            return []

        trips: list[OfflineTrip] = []
        for item in items:
            try:
                trips.append(OfflineTrip.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping unreadable offline trip entry: {e.error_count()} error(s)")
        return trips

    def _persist(self, trips: list[OfflineTrip]) -> None:
        blob = {
            "schemaVersion": SCHEMA_VERSION,
            "trips": [trip.model_dump(mode="json", by_alias=True) for trip in trips],
        }
        self._backend.write(TRIPS_KEY, json.dumps(blob))

    @staticmethod
    def _index_of(trips: list[OfflineTrip], ref: TripRef) -> int | None:
        for index, trip in enumerate(trips):
            if trip.identity.matches(ref):
                return index
        return None

    def _replace(self, ref: TripRef, **changes: Any) -> OfflineTrip | None:
        trips = self._load()
        index = self._index_of(trips, ref)
        if index is None:
            return None
        updated = trips[index].model_copy(update={"last_modified": self._clock(), **changes})
        trips[index] = updated
        self._persist(trips)
        return updated

    # --- operations ---

    def save(self, trip: Trip) -> OfflineTrip:
        """Upsert a trip as `pending`.

        The first entry matching on server id or offline id is replaced in
        place, keeping its offline id and server id; otherwise the trip is
        appended.

        Returns:
            The stored offline entry
        """
        trips = self._load()
        identity = trip.identity if isinstance(trip, OfflineTrip) else TripIdentity.for_trip(trip)
        index = self._index_of(trips, identity)
        existing = trips[index] if index is not None else None

        fields = {name: getattr(trip, name) for name in Trip.model_fields}
        entry = OfflineTrip(
            **fields,
            offline_id=existing.offline_id if existing is not None else identity.offline_id,
            server_id=(
                existing.server_id
                if existing is not None and existing.server_id is not None
                else identity.server_id
            ),
            server_version=existing.server_version if existing is not None else None,
            sync_status=SyncStatus.pending,
            last_modified=self._clock(),
        )

        if index is None:
            trips.append(entry)
        else:
            trips[index] = entry
        self._persist(trips)

        logger.info(f"Saved trip {entry.offline_id} offline ({'update' if existing is not None else 'new'})")
        return entry

    def remove(self, trip_id: TripRef) -> bool:
        """Remove every entry matching trip_id. Returns whether any was removed."""
        trips = self._load()
        kept = [trip for trip in trips if not trip.identity.matches(trip_id)]
        if len(kept) == len(trips):
            return False
        self._persist(kept)
        return True

    def update_status(self, trip_id: TripRef, status: SyncStatus) -> bool:
        """Set sync status on the matching entry and refresh last_modified."""
        return self._replace(trip_id, sync_status=status) is not None

    def get_all(self) -> list[OfflineTrip]:
        return self._load()

    def get(self, trip_id: TripRef) -> OfflineTrip | None:
        trips = self._load()
        index = self._index_of(trips, trip_id)
        return trips[index] if index is not None else None

    def has(self, trip_id: TripRef) -> bool:
        return self.get(trip_id) is not None

    def clear(self) -> None:
        """Empty the store (logout/reset)."""
        self._persist([])

    def pending(self) -> list[OfflineTrip]:
        """Entries awaiting their first sync attempt, in store order."""
        return [trip for trip in self._load() if trip.sync_status == SyncStatus.pending]

    @property
    def pending_count(self) -> int:
        return len(self.pending())

    def mark_synced(
        self,
        trip_id: TripRef,
        server_id: int,
        server_version: int | None = None,
        *,
        if_unmodified_since: datetime | None = None,
    ) -> OfflineTrip | None:
        """Record a successful remote write; the trip adopts its server id.

        Args:
            trip_id: Trip reference
            server_id: Id assigned by the remote collection
            server_version: Version returned by the remote collection
            if_unmodified_since: last_modified of the copy that was sent. If the
                entry was saved again since then it keeps its server id but
                stays `pending` so the newer content is pushed next time.
        """
        current = self.get(trip_id)
        if current is None:
            return None

        changes: dict[str, Any] = {
            "id": server_id,
            "server_id": server_id,
            "server_version": server_version,
            "last_error": None,
            "next_retry_at": None,
            "retryable": True,
        }
        if if_unmodified_since is None or current.last_modified <= if_unmodified_since:
            changes["sync_status"] = SyncStatus.synced
            changes["sync_attempts"] = 0
        else:
            logger.info(f"Trip {current.offline_id} changed during sync, leaving it pending")
        return self._replace(trip_id, **changes)

    def mark_failed(
        self,
        trip_id: TripRef,
        error: str,
        *,
        retryable: bool = True,
        next_retry_at: datetime | None = None,
    ) -> OfflineTrip | None:
        """Record a failed remote write and bump the attempt counter."""
        current = self.get(trip_id)
        if current is None:
            return None
        return self._replace(
            trip_id,
            sync_status=SyncStatus.failed,
            sync_attempts=current.sync_attempts + 1,
            last_error=error,
            retryable=retryable,
            next_retry_at=next_retry_at,
        )

    def requeue(self, trip_id: TripRef) -> bool:
        """Put a failed entry back to `pending` with a fresh attempt budget."""
        updated = self._replace(
            trip_id,
            sync_status=SyncStatus.pending,
            sync_attempts=0,
            retryable=True,
            next_retry_at=None,
            last_error=None,
        )
        return updated is not None

    def load_sync_metadata(self) -> SyncMetadata:
        raw = self._backend.read(SYNC_METADATA_KEY)
        if raw is None:
            return SyncMetadata()
        try:
            blob = json.loads(raw)
            if isinstance(blob, dict):
                blob.pop("schemaVersion", None)
            return SyncMetadata.model_validate(blob)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Sync metadata is corrupt, resetting: {e}")
            return SyncMetadata()

    def save_sync_metadata(self, metadata: SyncMetadata) -> None:
        blob = {"schemaVersion": SCHEMA_VERSION, **metadata.model_dump(mode="json", by_alias=True)}
        self._backend.write(SYNC_METADATA_KEY, json.dumps(blob))
