"""Directions pass-through endpoint - GET /directions."""

import logging
from typing import Annotated, Any, Literal

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status

from offbeat.adapters.directions import (
    DirectionsServiceError,
    fetch_directions,
    validate_coordinates,
)
from offbeat.api.deps import get_http_client
from offbeat.config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["directions"])


@router.get("/directions")
async def directions(
    profile: Annotated[Literal["driving", "walking", "cycling"], Query()],
    coordinates: Annotated[str, Query(min_length=1, description="lng,lat;lng,lat[;...]")],
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any]:
    """Route with GeoJSON geometry between waypoints.

    Returns:
        Mapbox Directions response, passed through unchanged
    """
    if not validate_coordinates(coordinates):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="coordinates must be at least two 'lng,lat' pairs separated by ';'",
        )

    token = settings.mapbox_token or settings.mapbox_public_token
    if not token:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="MapBox token not configured",
        )

    try:
        return await fetch_directions(
            profile,
            coordinates,
            access_token=token,
            base_url=settings.mapbox_base_url,
            client=client,
        )
    except DirectionsServiceError as e:
        raise HTTPException(
            status_code=e.status_code, detail={"error": str(e), "details": e.details}
        ) from e
    except httpx.HTTPError as e:
        logger.error(f"Directions request failed: {e!r}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch directions data"
        ) from e
