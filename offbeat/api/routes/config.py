"""Client configuration endpoint - GET /config."""

from typing import Annotated

from fastapi import APIRouter, Depends

from offbeat.config import Settings, get_settings

router = APIRouter(tags=["config"])


@router.get("/config")
async def client_config(settings: Annotated[Settings, Depends(get_settings)]) -> dict[str, str]:
    """Public values the client needs; only the public map token is exposed."""
    return {"mapboxToken": settings.mapbox_public_token}
