"""Weather pass-through endpoints - GET /weather, GET /weather/forecast."""

import logging
from typing import Annotated, Any

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status

from offbeat.adapters.weather import (
    MAX_FORECAST_DAYS,
    WeatherServiceError,
    fetch_current_weather,
    fetch_forecast,
)
from offbeat.api.deps import get_http_client
from offbeat.config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weather", tags=["weather"])

Latitude = Annotated[float, Query(ge=-90, le=90)]
Longitude = Annotated[float, Query(ge=-180, le=180)]
HttpClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def _api_key(settings: Settings) -> str:
    if not settings.weather_api_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Weather service not configured",
        )
    return settings.weather_api_key


def _upstream_error(e: Exception) -> HTTPException:
    if isinstance(e, WeatherServiceError):
        return HTTPException(
            status_code=e.status_code, detail={"error": str(e), "details": e.details}
        )
    logger.error(f"Weather request failed: {e!r}")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch weather data"
    )


@router.get("")
async def current_weather(
    lat: Latitude, lng: Longitude, client: HttpClient, settings: AppSettings
) -> dict[str, Any]:
    """Current conditions at a coordinate."""
    try:
        return await fetch_current_weather(
            lat,
            lng,
            api_key=_api_key(settings),
            base_url=settings.weather_base_url,
            client=client,
        )
    except (WeatherServiceError, httpx.HTTPError) as e:
        raise _upstream_error(e) from e


@router.get("/forecast")
async def weather_forecast(
    lat: Latitude,
    lng: Longitude,
    client: HttpClient,
    settings: AppSettings,
    days: Annotated[int, Query(description=f"Clamped to 1..{MAX_FORECAST_DAYS}")] = 3,
) -> dict[str, Any]:
    """Daily forecast at a coordinate; `days` is clamped rather than rejected."""
    try:
        return await fetch_forecast(
            lat,
            lng,
            days,
            api_key=_api_key(settings),
            base_url=settings.weather_base_url,
            client=client,
        )
    except (WeatherServiceError, httpx.HTTPError) as e:
        raise _upstream_error(e) from e
