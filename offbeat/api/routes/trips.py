"""Trip endpoints - the remote trip collection.

Ownership is checked here rather than in the repository so that a trip owned
by someone else answers 403 while a missing trip answers 404.
"""

import logging
import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from pydantic import ValidationError

from offbeat.api.auth import get_current_context
from offbeat.api.deps import get_trip_repository
from offbeat.db.context import RequestContext
from offbeat.db.repositories import TripRecord, TripRepository, TripVersionConflictError
from offbeat.models.trip import SavedTrip, SharedTrip, ShareLink, TripBase, TripUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])

Repo = Annotated[TripRepository, Depends(get_trip_repository)]
Context = Annotated[RequestContext, Depends(get_current_context)]


def _validation_detail(error: ValidationError) -> list[dict[str, Any]]:
    """Per-field errors in the same shape FastAPI uses for request bodies."""
    return [
        {"loc": ["body", *err["loc"]], "msg": err["msg"], "type": err["type"]}
        for err in error.errors()
    ]


async def _owned_trip(repo: TripRepository, trip_id: int, ctx: RequestContext) -> TripRecord:
    """Load a trip and enforce ownership.

    Raises:
        HTTPException: 404 if missing, 403 if owned by another user
    """
    record = await repo.get_trip(trip_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trip not found")
    if record.user_id != ctx.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return record


@router.get("/shared/{shareable_id}", response_model=SharedTrip, response_model_by_alias=True)
async def get_shared_trip(shareable_id: str, repo: Repo) -> SharedTrip:
    """Public read of a shared trip (no auth).

    Returns:
        Trip content without ownership data

    Raises:
        HTTPException: 400 on a malformed share id, 404 if missing or not public
    """
    try:
        uuid.UUID(shareable_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid shareable ID format"
        ) from e

    record = await repo.get_by_shareable_id(shareable_id)
    if record is None or not record.is_public:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Shared trip not found or not public"
        )
    return record.to_shared_trip()


@router.get("", response_model=list[SavedTrip], response_model_by_alias=True)
async def list_trips(ctx: Context, repo: Repo) -> list[SavedTrip]:
    """List the caller's trips, newest first."""
    return [record.to_saved_trip() for record in await repo.list_trips(ctx)]


@router.get("/{trip_id}", response_model=SavedTrip, response_model_by_alias=True)
async def get_trip(trip_id: int, ctx: Context, repo: Repo) -> SavedTrip:
    """Get one of the caller's trips."""
    record = await _owned_trip(repo, trip_id, ctx)
    return record.to_saved_trip()


@router.post(
    "",
    response_model=SavedTrip,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_trip(
    trip: TripBase,
    ctx: Context,
    repo: Repo,
    response: Response,
    idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key")] = None,
) -> SavedTrip:
    """Create a trip owned by the caller.

    Any client-side `id` in the body is ignored; the server assigns one.
    A repeated create with the same Idempotency-Key replays the trip the
    first request created (200 with X-Idempotent-Replay) instead of adding
    a duplicate.
    """
    if idempotency_key:
        existing = await repo.get_by_client_key(idempotency_key, ctx)
        if existing is not None:
            logger.info(f"Replaying create of trip {existing.id} for key {idempotency_key!r}")
            response.status_code = status.HTTP_200_OK
            response.headers["X-Idempotent-Replay"] = "true"
            return existing.to_saved_trip()

    record = await repo.create_trip(trip, ctx, client_key=idempotency_key)
    logger.info(f"Created trip {record.id} for user {ctx.user_id}")
    return record.to_saved_trip()


@router.patch("/{trip_id}", response_model=SavedTrip, response_model_by_alias=True)
async def update_trip(
    trip_id: int,
    update: TripUpdate,
    ctx: Context,
    repo: Repo,
    if_match: Annotated[int | None, Header(alias="If-Match")] = None,
) -> SavedTrip:
    """Update fields of one of the caller's trips.

    Args:
        trip_id: Trip ID
        update: Fields to overwrite (unset fields are left untouched)
        ctx: Request context
        repo: Trip repository
        if_match: Expected current version; mismatch answers 409

    Returns:
        Updated trip with its new version

    Raises:
        HTTPException: 422 if the merged trip would be invalid, 409 on a stale If-Match
    """
    current = await _owned_trip(repo, trip_id, ctx)

    changes = update.model_dump(mode="json", by_alias=True, exclude_unset=True)
    try:
        TripBase.model_validate({**current.data, **changes})
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=_validation_detail(e)
        ) from e

    try:
        record = await repo.update_trip(trip_id, changes, expected_version=if_match)
    except TripVersionConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trip not found")
    return record.to_saved_trip()


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(trip_id: int, ctx: Context, repo: Repo) -> Response:
    """Delete one of the caller's trips."""
    await _owned_trip(repo, trip_id, ctx)
    await repo.delete_trip(trip_id)
    logger.info(f"Deleted trip {trip_id} for user {ctx.user_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{trip_id}/share", response_model=ShareLink, response_model_by_alias=True)
async def share_trip(trip_id: int, ctx: Context, repo: Repo) -> ShareLink:
    """Make a trip publicly readable; an existing share id is reused."""
    record = await _owned_trip(repo, trip_id, ctx)
    shareable_id = record.shareable_id or str(uuid.uuid4())

    shared = await repo.set_sharing(trip_id, shareable_id=shareable_id, is_public=True)
    if shared is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trip not found")

    return ShareLink(shareable_id=shareable_id, share_url=f"/trips/shared/{shareable_id}")


@router.post("/{trip_id}/unshare", status_code=status.HTTP_204_NO_CONTENT)
async def unshare_trip(trip_id: int, ctx: Context, repo: Repo) -> Response:
    """Revoke public access; the share id stays reserved for re-sharing."""
    await _owned_trip(repo, trip_id, ctx)
    await repo.set_sharing(trip_id, shareable_id=None, is_public=False)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
