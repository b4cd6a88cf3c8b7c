"""Defensive trip normalizer.

Turns loosely-structured trip JSON (LLM output or persisted records) into
canonical `Trip` models. Malformed fields are defaulted or dropped; a
malformed trip is skipped without failing the rest of the batch.
"""

import logging
import math
from typing import Any

from pydantic import ValidationError

from offbeat.models.common import LngLat
from offbeat.models.offline import is_server_id
from offbeat.models.trip import (
    Activity,
    ItineraryDay,
    Journey,
    Marker,
    RouteDetails,
    RouteGeometry,
    Segment,
    Trip,
)
from offbeat.normalizer.extract import extract_trip_payload
from offbeat.utils.metrics import record_normalizer_outcome

logger = logging.getLogger(__name__)

DEFAULT_TRAVEL_MODE = "driving"

# Keys under which a batch of trips may arrive
_BATCH_KEYS = ("trip", "trips", "tripData")


def parse_trips_from_text(text: str | None) -> list[Trip] | None:
    """Extract and normalize trips from assistant text.

    Returns:
        Normalized trips, or None when the text carries no valid trip data
    """
    payload = extract_trip_payload(text)
    if payload is None:
        record_normalizer_outcome("no_json")
        return None
    return normalize_trips(payload)


def normalize_trips(raw: Any) -> list[Trip] | None:
    """Normalize a raw trip batch.

    Accepts `{"trip": [...]}`, `{"trips": [...]}`, a bare list of trips or a
    single trip object.

    Returns:
        List of trips (never empty), or None when no valid trip was found
    """
    trips: list[Trip] = []
    for index, candidate in enumerate(_trip_candidates(raw)):
        trip = normalize_trip(candidate)
        if trip is None:
            logger.warning(f"Skipping malformed trip at index {index}")
            continue
        trips.append(trip)

    if not trips:
        record_normalizer_outcome("no_valid_trips")
        return None

    record_normalizer_outcome("trips")
    return trips


def normalize_trip(raw: Any) -> Trip | None:
    """Normalize a single raw trip object, or return None if unusable.

    `id` and `title` are required; everything else is defaulted.
    """
    if not isinstance(raw, dict):
        return None

    trip_id = _trip_id(raw.get("id"))
    title = _text(raw.get("title"))
    if trip_id is None or not title:
        return None

    journey_raw = _first(raw, "journey", "journeyData", "journey_data")
    if not isinstance(journey_raw, dict):
        journey_raw = {}

    markers = _markers(_first(raw, "markers") or journey_raw.get("markers"))
    segments = [
        segment
        for segment in (_segment(item) for item in _as_list(journey_raw.get("segments")))
        if segment is not None
    ]

    bounds = _bounds(journey_raw.get("bounds") or raw.get("bounds"))
    if bounds is None:
        bounds = _bounds_of(_all_points(markers, segments))

    total_distance = _non_negative(_first(journey_raw, "totalDistance", "total_distance"))
    if total_distance is None:
        total_distance = sum(s.distance for s in segments)
    total_duration = _non_negative(_first(journey_raw, "totalDuration", "total_duration"))
    if total_duration is None:
        total_duration = sum(s.duration for s in segments)

    map_center = (
        _lnglat(_first(raw, "mapCenter", "map_center"))
        or _centroid([m.coordinates for m in markers])
        or _bounds_center(bounds)
    )

    itinerary, day_activities = _itinerary(raw.get("itinerary"))
    activities = [
        activity
        for activity in (_activity(item, None) for item in _as_list(raw.get("activities")))
        if activity is not None
    ] + day_activities

    try:
        return Trip(
            id=trip_id,
            title=title,
            description=_text(raw.get("description")),
            location=_text(_first(raw, "location", "region")),
            duration=_duration(raw),
            difficulty_level=_text(_first(raw, "difficultyLevel", "difficulty_level", "intensity")),
            price_estimate=_price(raw),
            why_we_chose_this=_joined(_first(raw, "whyWeChoseThis", "why_we_chose_this")),
            suggested_guides=_guides(raw),
            map_center=map_center,
            markers=markers,
            journey=Journey(
                segments=segments,
                total_distance=total_distance,
                total_duration=total_duration,
                bounds=bounds,
            ),
            itinerary=itinerary,
            activities=activities or None,
        )
    except ValidationError as e:
        logger.warning(f"Trip {trip_id!r} failed validation after normalization: {e}")
        return None


# --- candidates & scalars ---


def _trip_candidates(raw: Any) -> list[Any]:
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, dict):
        return []
    for key in _BATCH_KEYS:
        value = raw.get(key)
        if isinstance(value, list):
            return value
        if isinstance(value, dict):
            return [value]
    if "title" in raw or "id" in raw:
        return [raw]
    return []


def _first(raw: dict[str, Any], *keys: str) -> Any:
    """First present (non-None) value among camelCase/snake_case spellings."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _trip_id(value: Any) -> int | str | None:
    if is_server_id(value):
        return value
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if is_server_id(value) or isinstance(value, float):
        return str(value)
    return ""


def _joined(value: Any) -> str:
    if isinstance(value, list):
        return " ".join(_text(item) for item in value if _text(item))
    return _text(value)


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _non_negative(value: Any) -> float | None:
    number = _number(value)
    if number is None:
        return None
    return max(number, 0.0)


def _int(value: Any) -> int | None:
    number = _number(value)
    if number is None or number != int(number):
        return None
    return int(number)


def _strings(value: Any) -> list[str]:
    return [text for text in (_text(item) for item in _as_list(value)) if text]


def _duration(raw: dict[str, Any]) -> str:
    text = _text(raw.get("duration"))
    if text:
        return text
    days = _int(raw.get("duration_days"))
    if days is not None and days > 0:
        return f"{days} Days"
    return ""


def _price(raw: dict[str, Any]) -> str:
    text = _text(_first(raw, "priceEstimate", "price_estimate"))
    if text:
        return text
    price_range = raw.get("price_range")
    if isinstance(price_range, dict):
        low = _number(price_range.get("min"))
        high = _number(price_range.get("max"))
        currency = _text(price_range.get("currency")) or "USD"
        if low is not None and high is not None:
            return f"{low:,.0f} - {high:,.0f} {currency}"
    return ""


def _guides(raw: dict[str, Any]) -> list[str]:
    guides = _strings(_first(raw, "suggestedGuides", "suggested_guides"))
    if guides:
        return guides
    names = []
    for outfitter in _as_list(raw.get("recommended_outfitters")):
        if isinstance(outfitter, dict) and _text(outfitter.get("name")):
            names.append(_text(outfitter.get("name")))
    return names


# --- geospatial ---


def _lnglat(value: Any) -> LngLat | None:
    """Decode a [lng, lat] pair (or a lng/lat mapping) within valid ranges."""
    if isinstance(value, dict):
        lng = _number(_first(value, "lng", "lon", "longitude"))
        lat = _number(_first(value, "lat", "latitude"))
    elif isinstance(value, (list, tuple)) and len(value) >= 2:
        lng, lat = _number(value[0]), _number(value[1])
    else:
        return None

    if lng is None or lat is None:
        return None
    if not (-180 <= lng <= 180 and -90 <= lat <= 90):
        return None
    return (lng, lat)


def _markers(value: Any) -> list[Marker]:
    markers = []
    for item in _as_list(value):
        if not isinstance(item, dict):
            continue
        coordinates = _lnglat(_first(item, "coordinates", "location"))
        if coordinates is None:
            continue
        markers.append(Marker(coordinates=coordinates, name=_text(item.get("name"))))
    return markers


def _geometry(value: Any) -> RouteGeometry | None:
    """Accept a GeoJSON LineString or a bare coordinate list."""
    raw_points = value.get("coordinates") if isinstance(value, dict) else value
    points = [p for p in (_lnglat(item) for item in _as_list(raw_points)) if p is not None]
    if len(points) < 2:
        return None
    return RouteGeometry(coordinates=points)


def _bounds(value: Any) -> tuple[LngLat, LngLat] | None:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    first, second = _lnglat(value[0]), _lnglat(value[1])
    if first is None or second is None:
        return None
    return _bounds_of([first, second])


def _bounds_of(points: list[LngLat]) -> tuple[LngLat, LngLat] | None:
    if not points:
        return None
    lngs = [p[0] for p in points]
    lats = [p[1] for p in points]
    return ((min(lngs), min(lats)), (max(lngs), max(lats)))


def _bounds_center(bounds: tuple[LngLat, LngLat] | None) -> LngLat | None:
    if bounds is None:
        return None
    (west, south), (east, north) = bounds
    return ((west + east) / 2, (south + north) / 2)


def _centroid(points: list[LngLat]) -> LngLat | None:
    if not points:
        return None
    return (
        sum(p[0] for p in points) / len(points),
        sum(p[1] for p in points) / len(points),
    )


def _all_points(markers: list[Marker], segments: list[Segment]) -> list[LngLat]:
    points = [m.coordinates for m in markers]
    for segment in segments:
        if segment.geometry is not None:
            points.extend(segment.geometry.coordinates)
    return points


# --- journey & itinerary ---


def _segment(raw: Any) -> Segment | None:
    if not isinstance(raw, dict):
        return None
    mode = _text(raw.get("mode")).lower() or DEFAULT_TRAVEL_MODE
    return Segment(
        mode=mode,
        from_=_text(raw.get("from")),
        to=_text(raw.get("to")),
        distance=_non_negative(raw.get("distance")) or 0.0,
        duration=_non_negative(raw.get("duration")) or 0.0,
        terrain=_text(raw.get("terrain")) or None,
        geometry=_geometry(raw.get("geometry")),
    )


def _itinerary(value: Any) -> tuple[list[ItineraryDay], list[Activity]]:
    """Normalize itinerary days; structured day activities are lifted out."""
    days: list[ItineraryDay] = []
    lifted: list[Activity] = []

    for position, item in enumerate(_as_list(value), start=1):
        if not isinstance(item, dict):
            continue
        day_number = _int(item.get("day"))
        if day_number is None:
            day_number = position

        labels: list[str] = []
        for entry in _as_list(item.get("activities")):
            if isinstance(entry, dict):
                activity = _activity(entry, day_number)
                if activity is not None:
                    labels.append(activity.title)
                    lifted.append(activity)
            elif _text(entry):
                labels.append(_text(entry))

        accommodation = item.get("accommodation")
        lodging = item.get("lodging")
        if accommodation is None and isinstance(lodging, dict):
            accommodation = lodging.get("name")

        days.append(
            ItineraryDay(
                day=day_number,
                title=_text(item.get("title")),
                description=_text(item.get("description")),
                activities=labels,
                accommodation=_text(accommodation) or None,
            )
        )

    return days, lifted


def _location_label(value: Any) -> str | None:
    text = _text(value)
    if text:
        return text
    point = _lnglat(value)
    if point is not None:
        return f"{point[1]:.4f}, {point[0]:.4f}"
    return None


def _route_details(raw: dict[str, Any]) -> RouteDetails | None:
    details = raw.get("route_details")
    if isinstance(details, dict):
        return RouteDetails(
            distance_miles=_non_negative(details.get("distance_miles")),
            elevation_gain_ft=_non_negative(details.get("elevation_gain_ft")),
            elevation_loss_ft=_non_negative(details.get("elevation_loss_ft")),
            high_point_ft=_number(details.get("high_point_ft")),
            terrain=_text(details.get("terrain")) or None,
            route_type=_text(details.get("route_type")) or None,
        )

    distance = _non_negative(raw.get("distance"))
    gain = _non_negative(raw.get("elevation_gain"))
    if distance is None and gain is None:
        return None
    return RouteDetails(distance_miles=distance, elevation_gain_ft=gain)


def _activity(raw: Any, day: int | None) -> Activity | None:
    if not isinstance(raw, dict):
        return None
    title = _text(_first(raw, "title", "name"))
    if not title:
        return None

    activity_day = _int(raw.get("day"))
    return Activity(
        id=_text(raw.get("id")) or None,
        title=title,
        type=_text(raw.get("type")).lower() or None,
        day=activity_day if activity_day is not None else day,
        difficulty=_text(raw.get("difficulty")) or None,
        duration_hours=_non_negative(raw.get("duration_hours")),
        start_location=_location_label(raw.get("start_location")),
        end_location=_location_label(raw.get("end_location")),
        highlights=_strings(raw.get("highlights")),
        hazards=_strings(raw.get("hazards")),
        route_details=_route_details(raw),
        route_geometry=_geometry(_first(raw, "route_geometry", "route")),
    )
