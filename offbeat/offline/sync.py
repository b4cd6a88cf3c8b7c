"""Sync coordinator - pushes locally cached trips to the remote collection.

Trips are synced strictly one at a time in store order. Each remote call is
bounded by a timeout so an unresponsive server demotes the trip to `failed`
instead of leaving it stuck in `pending`.

Failed trips are retried automatically on later passes with exponential
backoff until the attempt budget runs out. Non-retryable failures
(validation, auth, access denied, conflict) and exhausted trips wait for an
explicit `retry()`.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from offbeat.models.common import SyncStatus
from offbeat.models.offline import OfflineTrip, TripRef, is_server_id
from offbeat.models.trip import SavedTrip
from offbeat.offline.connectivity import ConnectivityMonitor
from offbeat.offline.remote import RemoteTripClient, TripApiError, TripNotFoundError
from offbeat.offline.store import OfflineTripStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Aggregate outcome of one sync pass."""

    synced: int = 0
    failed: int = 0
    skipped: bool = False
    errors: dict[str, str] = field(default_factory=dict)  # offline_id -> reason

    @property
    def message(self) -> str:
        """User-facing summary, e.g. "2 synced" or "2 synced, 1 failed"."""
        if self.skipped:
            return "Nothing to sync"
        if self.failed:
            return f"{self.synced} synced, {self.failed} failed"
        return f"{self.synced} synced"


# Metrics interface (to be implemented by actual metrics system)
class SyncMetrics:
    """Interface for sync metrics."""

    def record_latency(self, outcome: str, latency_ms: float) -> None:
        """Record sync attempt latency."""
        pass

    def inc_error(self, reason: str) -> None:
        """Increment error counter."""
        pass


# Logging interface
class SyncLogger:
    """Interface for structured logging."""

    def log_attempt(
        self,
        offline_id: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        server_id: int | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log trip sync attempt."""
        pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SyncCoordinator:
    """Reconciles pending local trips with the remote trip collection."""

    def __init__(
        self,
        store: OfflineTripStore,
        remote: RemoteTripClient,
        connectivity: ConnectivityMonitor | None = None,
        *,
        timeout_seconds: float = 30.0,
        max_attempts: int = 5,
        backoff_base_seconds: float = 2.0,
        backoff_max_seconds: float = 300.0,
        metrics: SyncMetrics | None = None,
        sync_logger: SyncLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize coordinator.

        Args:
            store: Offline trip store (the only shared mutable state)
            remote: Client for the remote trip collection
            connectivity: Online/offline signal source (optional)
            timeout_seconds: Bound on each remote call
            max_attempts: Automatic attempts before a trip needs retry()
            backoff_base_seconds: Delay after the first failure
            backoff_max_seconds: Upper bound on the backoff delay
            metrics: Metrics recorder (optional, defaults to no-op)
            sync_logger: Structured logger (optional, defaults to no-op)
            clock: Injectable time source (default: current UTC time)
        """
        self._store = store
        self._remote = remote
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base_seconds
        self._backoff_max = backoff_max_seconds
        self._metrics = metrics or SyncMetrics()
        self._sync_logger = sync_logger or SyncLogger()
        self._clock = clock or _utcnow
        self._syncing = False

        self._metadata = store.load_sync_metadata()
        self._unsubscribe: Callable[[], None] | None = None
        if connectivity is not None:
            self._set_online(connectivity.is_online)
            self._unsubscribe = connectivity.subscribe(self._set_online)

    # --- state ---

    @property
    def is_online(self) -> bool:
        return self._metadata.is_online

    @property
    def last_sync_attempt(self) -> datetime | None:
        return self._metadata.last_sync_attempt

    @property
    def pending_count(self) -> int:
        return self._store.pending_count

    @property
    def is_syncing(self) -> bool:
        return self._syncing

    def _set_online(self, is_online: bool) -> None:
        if is_online == self._metadata.is_online:
            return
        self._metadata = self._metadata.model_copy(update={"is_online": is_online})
        self._store.save_sync_metadata(self._metadata)

    def close(self) -> None:
        """Stop listening to connectivity changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def backoff_seconds(self, attempts: int) -> float:
        """Delay before the next automatic attempt after `attempts` failures."""
        return min(self._backoff_base * 2 ** max(attempts - 1, 0), self._backoff_max)

    def eligible(self, now: datetime | None = None) -> list[OfflineTrip]:
        """Entries the next pass would push, in store order."""
        now = now or self._clock()
        selected = []
        for trip in self._store.get_all():
            if trip.sync_status == SyncStatus.pending:
                selected.append(trip)
            elif (
                trip.sync_status == SyncStatus.failed
                and trip.retryable
                and trip.sync_attempts < self._max_attempts
                and (trip.next_retry_at is None or trip.next_retry_at <= now)
            ):
                selected.append(trip)
        return selected

    # --- operations ---

    async def sync(self) -> SyncResult:
        """Run one sync pass.

        Returns:
            SyncResult; `skipped` when offline, already syncing or nothing is due
        """
        if self._syncing or not self.is_online:
            return SyncResult(skipped=True)

        now = self._clock()
        trips = self.eligible(now)
        if not trips:
            return SyncResult(skipped=True)

        self._metadata = self._metadata.model_copy(update={"last_sync_attempt": now})
        self._store.save_sync_metadata(self._metadata)

        result = SyncResult()
        self._syncing = True
        try:
            for trip in trips:
                await self._sync_one(trip, result)
        finally:
            self._syncing = False

        if result.synced:
            self._remote.invalidate()

        logger.info(f"Sync pass finished: {result.message}")
        return result

    async def _push(self, trip: OfflineTrip) -> SavedTrip:
        if trip.server_id is None:
            return await self._remote.create_trip(trip.to_trip(), idempotency_key=trip.offline_id)
        return await self._remote.update_trip(
            trip.server_id, trip.to_trip(), expected_version=trip.server_version
        )

    async def _sync_one(self, trip: OfflineTrip, result: SyncResult) -> None:
        attempt = trip.sync_attempts + 1
        start = time.monotonic()

        try:
            saved = await asyncio.wait_for(self._push(trip), timeout=self._timeout)
        except TimeoutError:
            reason, retryable = "timeout", True
            error = f"Timed out after {self._timeout:g}s"
        except TripApiError as e:
            reason, retryable = type(e).__name__, e.retryable
            error = str(e)
        else:
            latency_ms = (time.monotonic() - start) * 1000
            self._store.mark_synced(
                trip.identity,
                saved.id,
                saved.version,
                if_unmodified_since=trip.last_modified,
            )
            self._metrics.record_latency("synced", latency_ms)
            self._sync_logger.log_attempt(
                trip.offline_id, attempt, "synced", latency_ms, server_id=saved.id
            )
            result.synced += 1
            return

        latency_ms = (time.monotonic() - start) * 1000
        can_retry = retryable and attempt < self._max_attempts
        next_retry_at = (
            self._clock() + timedelta(seconds=self.backoff_seconds(attempt)) if can_retry else None
        )
        self._store.mark_failed(
            trip.identity, error, retryable=can_retry, next_retry_at=next_retry_at
        )
        self._metrics.record_latency("failed", latency_ms)
        self._metrics.inc_error(reason)
        self._sync_logger.log_attempt(
            trip.offline_id,
            attempt,
            "failed",
            latency_ms,
            server_id=trip.server_id,
            error_reason=reason,
        )
        result.failed += 1
        result.errors[trip.offline_id] = error

    def retry(self, trip_id: TripRef) -> bool:
        """Re-queue a failed trip for the next pass, resetting its attempt budget."""
        trip = self._store.get(trip_id)
        if trip is None or trip.sync_status != SyncStatus.failed:
            return False
        return self._store.requeue(trip.identity)

    async def delete_trip(self, trip_id: TripRef) -> bool:
        """Delete a trip locally and, when it has a server id, remotely.

        Local-only trips never touch the network. For remote trips the server
        delete happens first; if it fails the error propagates and the local
        entry is left untouched.

        Returns:
            Whether anything was deleted
        """
        trip = self._store.get(trip_id)
        if trip is not None:
            server_id = trip.server_id
        else:
            server_id = trip_id if is_server_id(trip_id) else None

        remote_deleted = False
        if server_id is not None:
            try:
                await asyncio.wait_for(self._remote.delete_trip(server_id), timeout=self._timeout)
                remote_deleted = True
            except TripNotFoundError:
                logger.info(f"Trip {server_id} already gone on the server")

        removed = self._store.remove(trip.identity if trip is not None else trip_id)
        return removed or remote_deleted
