"""Directions adapter - proxies the Mapbox Directions API."""

import logging
import re
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DIRECTIONS_PROFILES = ("driving", "walking", "cycling")

# "lng,lat;lng,lat[;...]"
_COORDINATES_RE = re.compile(r"^-?\d+(\.\d+)?,-?\d+(\.\d+)?(;-?\d+(\.\d+)?,-?\d+(\.\d+)?)+$")


class DirectionsServiceError(Exception):
    """Upstream directions service returned an error."""

    def __init__(self, message: str, status_code: int, details: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def validate_coordinates(coordinates: str) -> bool:
    """Whether coordinates is a ";"-separated list of at least two lng,lat pairs."""
    return bool(_COORDINATES_RE.match(coordinates))


async def fetch_directions(
    profile: str,
    coordinates: str,
    *,
    access_token: str,
    base_url: str = "https://api.mapbox.com",
    timeout: float = 10.0,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Fetch a route with GeoJSON geometry between waypoints.

    Args:
        profile: One of driving, walking, cycling
        coordinates: "lng,lat;lng,lat[;...]"
        access_token: Mapbox token
        base_url: Mapbox API base URL
        timeout: Request timeout when this function creates the client
        client: Optional httpx client (for testing with mocks)

    Returns:
        Upstream JSON, passed through unchanged

    Raises:
        ValueError: On an unknown profile
        DirectionsServiceError: On upstream HTTP errors
    """
    if profile not in DIRECTIONS_PROFILES:
        raise ValueError(f"Invalid profile. Must be one of: {', '.join(DIRECTIONS_PROFILES)}")

    url = f"{base_url}/directions/v5/mapbox/{profile}/{coordinates}"
    params = {"geometries": "geojson", "steps": "true", "access_token": access_token}

    close_client = False
    if client is None:
        client = httpx.AsyncClient(timeout=timeout)
        close_client = True

    try:
        response = await client.get(url, params=params)
        if response.is_error:
            try:
                details: Any = response.json()
            except ValueError:
                details = response.text
            logger.warning(f"Mapbox Directions API returned {response.status_code}")
            raise DirectionsServiceError(
                "MapBox Directions API error", status_code=response.status_code, details=details
            )
        return response.json()
    finally:
        if close_client:
            await client.aclose()
