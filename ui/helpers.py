"""Helper functions for UI - API client calls + pure view builders.

View builders take normalized trips and return plain dicts for rendering.
They never mutate the trip and never raise on missing geometry or empty
collections.
"""

from datetime import datetime
from typing import Any

import httpx

from offbeat.models.common import LngLat, SyncStatus
from offbeat.models.trip import Journey, Marker, Trip

DEFAULT_ACTIVITY_DAY = 1


def get_auth_header(user_id: int = 1) -> dict[str, str]:
    """Get auth header for API calls (dev user by default)."""
    return {"Authorization": f"Bearer {user_id}"}


def send_chat_message(
    backend_url: str,
    user_message: str,
    session_id: str | None = None,
    messages: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Call POST /chat.

    Args:
        backend_url: Backend base URL (e.g. http://localhost:8000)
        user_message: New user text
        session_id: Existing conversation, or None to start one
        messages: Prior turns held by the client

    Returns:
        ChatResponse dict (camelCase keys)

    Raises:
        httpx.HTTPStatusError: If request fails
    """
    response = httpx.post(
        f"{backend_url}/chat",
        json={"userMessage": user_message, "sessionId": session_id, "messages": messages or []},
        timeout=120.0,  # LLM replies can be slow
    )
    response.raise_for_status()
    result: dict[str, Any] = response.json()
    return result


# --- Map ---


def _bounds_center(journey: Journey) -> LngLat | None:
    if journey.bounds is None:
        return None
    (west, south), (east, north) = journey.bounds
    return ((west + east) / 2, (south + north) / 2)


def _marker_lookup(markers: list[Marker]) -> dict[str, LngLat]:
    return {m.name.strip().lower(): m.coordinates for m in markers if m.name.strip()}


def build_map_view(trip: Trip) -> dict[str, Any]:
    """Build map view data for a trip.

    Segments without renderable geometry get no route line; their endpoints
    are still resolved against marker names so the stops can be shown.

    Returns:
        Dict with center, markers, routes, stops, bounds and an empty flag
    """
    journey = trip.journey
    by_name = _marker_lookup(trip.markers)

    routes = []
    stops = []
    for index, segment in enumerate(journey.segments):
        stops.append(
            {
                "segment": index,
                "from": segment.from_,
                "to": segment.to,
                "from_coordinates": by_name.get(segment.from_.strip().lower()),
                "to_coordinates": by_name.get(segment.to.strip().lower()),
            }
        )
        if segment.geometry is not None:
            routes.append(
                {
                    "segment": index,
                    "mode": segment.mode,
                    "coordinates": list(segment.geometry.coordinates),
                }
            )

    center = trip.map_center or _bounds_center(journey)
    if center is None and trip.markers:
        center = trip.markers[0].coordinates

    return {
        "center": center,
        "markers": [{"name": m.name, "coordinates": m.coordinates} for m in trip.markers],
        "routes": routes,
        "stops": stops,
        "bounds": journey.bounds,
        "empty": not trip.markers and not routes,
    }


# --- Itinerary ---


def build_itinerary_view(trip: Trip, expanded_days: set[int] | None = None) -> dict[str, Any]:
    """Build itinerary view for a trip.

    Args:
        trip: Normalized trip
        expanded_days: Day numbers whose details are open (presentation state only)

    Returns:
        Dict with days (ordered by day number), guides and status
    """
    expanded_days = expanded_days or set()
    days = [
        {
            "day": day.day,
            "title": day.title or f"Day {day.day}",
            "description": day.description,
            "activities": list(day.activities),
            "accommodation": day.accommodation,
            "expanded": day.day in expanded_days,
        }
        for day in sorted(trip.itinerary, key=lambda d: d.day)
    ]

    return {
        "days": days,
        "guides": list(trip.suggested_guides),
        "status": "ready" if days else "empty",
    }


# --- Activity timeline ---


def build_activity_timeline(trip: Trip) -> dict[str, Any]:
    """Group activities by day, ascending.

    Structured activities are used when present (an activity without a day
    belongs to day 1); otherwise each itinerary day's activity strings are
    listed.

    Returns:
        Dict with mode ("structured", "simple" or "empty") and day groups
    """
    if trip.activities:
        groups: dict[int, list[dict[str, Any]]] = {}
        for activity in trip.activities:
            details = activity.route_details
            groups.setdefault(activity.day or DEFAULT_ACTIVITY_DAY, []).append(
                {
                    "title": activity.title,
                    "type": activity.type,
                    "difficulty": activity.difficulty,
                    "duration_hours": activity.duration_hours,
                    "start_location": activity.start_location,
                    "end_location": activity.end_location,
                    "highlights": list(activity.highlights),
                    "hazards": list(activity.hazards),
                    "distance_miles": details.distance_miles if details else None,
                    "elevation_gain_ft": details.elevation_gain_ft if details else None,
                    "has_route": activity.route_geometry is not None,
                }
            )
        return {
            "mode": "structured",
            "groups": [{"day": day, "items": groups[day]} for day in sorted(groups)],
        }

    simple = [
        {"day": day.day, "items": [{"title": title} for title in day.activities]}
        for day in sorted(trip.itinerary, key=lambda d: d.day)
        if day.activities
    ]
    return {"mode": "simple" if simple else "empty", "groups": simple}


# --- Offline status ---


def format_last_sync(last_sync_attempt: datetime | None) -> str:
    if last_sync_attempt is None:
        return "Never"
    return last_sync_attempt.strftime("%Y-%m-%d %H:%M")


def build_sync_badge(
    is_online: bool,
    pending_count: int,
    last_sync_attempt: datetime | None,
    is_syncing: bool = False,
) -> dict[str, Any]:
    """Build the offline status indicator.

    Returns:
        Dict with label, pending text, last sync text, sync button state and hint
    """
    if not is_online:
        hint = "You must be online to sync trips"
    elif pending_count == 0:
        hint = "No trips to sync"
    else:
        hint = "Sync offline trips to your account"

    pending_label = None
    if not is_online and pending_count > 0:
        pending_label = f"{pending_count} {'trip' if pending_count == 1 else 'trips'} to sync"

    return {
        "label": "Online" if is_online else "Offline",
        "pending_label": pending_label,
        "last_sync": format_last_sync(last_sync_attempt),
        "button_label": "Syncing..." if is_syncing else "Sync Now",
        "can_sync": is_online and not is_syncing and pending_count > 0,
        "hint": hint,
    }


_TRIP_BADGES = {
    SyncStatus.pending: (
        "Offline",
        "This trip is stored offline and will be synchronized when you're online",
    ),
    SyncStatus.synced: ("Synced", "This trip has been synchronized with your account"),
    SyncStatus.failed: (
        "Sync Failed",
        "Failed to synchronize this trip. Will try again when you're online",
    ),
}


def build_trip_badge(status: SyncStatus) -> dict[str, str]:
    """Per-trip sync badge (label + tooltip)."""
    label, tooltip = _TRIP_BADGES[status]
    return {"status": status.value, "label": label, "tooltip": tooltip}
