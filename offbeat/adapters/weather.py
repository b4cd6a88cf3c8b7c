"""Weather adapter for WeatherAPI.com (current conditions and forecast)."""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

MIN_FORECAST_DAYS = 1
MAX_FORECAST_DAYS = 7
DEFAULT_FORECAST_DAYS = 3


class WeatherServiceError(Exception):
    """Upstream weather service returned an error."""

    def __init__(self, message: str, status_code: int, details: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def clamp_forecast_days(days: int | None) -> int:
    """Clamp a requested forecast length to 1..7 days (3 when unset)."""
    if days is None:
        return DEFAULT_FORECAST_DAYS
    return min(max(days, MIN_FORECAST_DAYS), MAX_FORECAST_DAYS)


async def _get_json(
    url: str,
    params: dict[str, str | int],
    client: httpx.AsyncClient | None,
    timeout: float,
) -> dict[str, Any]:
    close_client = False
    if client is None:
        client = httpx.AsyncClient(timeout=timeout)
        close_client = True

    try:
        response = await client.get(url, params=params)
        if response.is_error:
            logger.warning(f"Weather API returned {response.status_code} for {url}")
            raise WeatherServiceError(
                "Weather API error", status_code=response.status_code, details=response.text
            )
        return response.json()
    finally:
        if close_client:
            await client.aclose()


async def fetch_current_weather(
    lat: float,
    lng: float,
    *,
    api_key: str,
    base_url: str = "https://api.weatherapi.com/v1",
    timeout: float = 10.0,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Fetch current conditions for a coordinate.

    Args:
        lat: Latitude
        lng: Longitude
        api_key: WeatherAPI.com key
        base_url: WeatherAPI.com base URL
        timeout: Request timeout when this function creates the client
        client: Optional httpx client (for testing with mocks)

    Returns:
        Upstream JSON, passed through unchanged

    Raises:
        WeatherServiceError: On upstream HTTP errors
        httpx.HTTPError: On network errors
    """
    params: dict[str, str | int] = {"key": api_key, "q": f"{lat},{lng}", "aqi": "no"}
    return await _get_json(f"{base_url}/current.json", params, client, timeout)


async def fetch_forecast(
    lat: float,
    lng: float,
    days: int | None = None,
    *,
    api_key: str,
    base_url: str = "https://api.weatherapi.com/v1",
    timeout: float = 10.0,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Fetch a daily forecast for a coordinate.

    `days` is clamped to 1..7.

    Returns:
        Upstream JSON, passed through unchanged
    """
    params: dict[str, str | int] = {
        "key": api_key,
        "q": f"{lat},{lng}",
        "days": clamp_forecast_days(days),
        "aqi": "no",
        "alerts": "no",
    }
    return await _get_json(f"{base_url}/forecast.json", params, client, timeout)
