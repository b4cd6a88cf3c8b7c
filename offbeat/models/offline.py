"""Offline cache models - trip identity and sync bookkeeping."""

import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from pydantic import Field

from offbeat.models.common import CamelModel, SyncStatus
from offbeat.models.trip import Trip

OFFLINE_ID_PREFIX = "offline-"

TripRef = Union[int, str, "TripIdentity"]


def is_server_id(value: object) -> bool:
    """Server ids are plain integers (never bools)."""
    return isinstance(value, int) and not isinstance(value, bool)


def derive_offline_id(trip_id: int | str | None) -> str:
    """Derive the offline id for a trip id.

    `"offline-" + id` when an id exists (ids already carrying the prefix are
    returned as-is); a generation timestamp with a random suffix otherwise.
    """
    if trip_id is None or trip_id == "":
        return f"{OFFLINE_ID_PREFIX}{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
    text = str(trip_id)
    if text.startswith(OFFLINE_ID_PREFIX):
        return text
    return f"{OFFLINE_ID_PREFIX}{text}"


class IdentityKind(str, Enum):
    """Which identifiers a trip currently carries."""

    local = "local"
    remote = "remote"
    both = "both"


@dataclass(frozen=True)
class TripIdentity:
    """Identity of a trip before and after it receives a server id.

    A trip is the same logical entity whether it is referenced by its
    offline id or by its server id; `matches` is the one place that
    comparison happens.
    """

    offline_id: str | None = None
    server_id: int | None = None

    def __post_init__(self) -> None:
        if self.offline_id is None and self.server_id is None:
            raise ValueError("TripIdentity needs an offline_id or a server_id")

    @property
    def kind(self) -> IdentityKind:
        if self.offline_id is not None and self.server_id is not None:
            return IdentityKind.both
        if self.server_id is not None:
            return IdentityKind.remote
        return IdentityKind.local

    @classmethod
    def for_trip(cls, trip: Trip) -> "TripIdentity":
        """Identity of a freshly seen trip."""
        server_id = trip.id if is_server_id(trip.id) else None
        return cls(offline_id=derive_offline_id(trip.id), server_id=server_id)

    def matches(self, ref: TripRef) -> bool:
        """Two-way match on server id or (derived) offline id."""
        if isinstance(ref, TripIdentity):
            if self.server_id is not None and self.server_id == ref.server_id:
                return True
            return self.offline_id is not None and self.offline_id == ref.offline_id

        if is_server_id(ref) and self.server_id is not None and ref == self.server_id:
            return True
        if self.offline_id is None or ref is None or ref == "":
            return False
        return self.offline_id == derive_offline_id(ref)


class OfflineTrip(Trip):
    """A trip decorated with local sync bookkeeping."""

    offline_id: str
    sync_status: SyncStatus = SyncStatus.pending
    last_modified: datetime
    server_id: int | None = None
    server_version: int | None = None
    sync_attempts: int = Field(0, ge=0)
    next_retry_at: datetime | None = None
    last_error: str | None = None
    retryable: bool = True

    @property
    def identity(self) -> TripIdentity:
        return TripIdentity(offline_id=self.offline_id, server_id=self.server_id)

    def to_trip(self) -> Trip:
        """Strip bookkeeping and return the plain trip."""
        return Trip.model_validate(self.model_dump(include=set(Trip.model_fields)))


class SyncMetadata(CamelModel):
    """Last-sync bookkeeping persisted next to the offline trips."""

    last_sync_attempt: datetime | None = None
    is_online: bool = True
