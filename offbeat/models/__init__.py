"""Models package - re-exports for convenience."""

from offbeat.models.chat import ChatMessage, ChatReply, ChatRequest, ChatResponse
from offbeat.models.common import KNOWN_TRAVEL_MODES, LngLat, SyncStatus, TravelMode
from offbeat.models.offline import (
    IdentityKind,
    OfflineTrip,
    SyncMetadata,
    TripIdentity,
    derive_offline_id,
)
from offbeat.models.trip import (
    Activity,
    ItineraryDay,
    Journey,
    Marker,
    RouteDetails,
    RouteGeometry,
    SavedTrip,
    Segment,
    ShareLink,
    SharedTrip,
    Trip,
    TripBase,
    TripUpdate,
)

__all__ = [
    # Common
    "LngLat",
    "TravelMode",
    "KNOWN_TRAVEL_MODES",
    "SyncStatus",
    # Trip
    "Trip",
    "TripBase",
    "TripUpdate",
    "SavedTrip",
    "SharedTrip",
    "ShareLink",
    "Marker",
    "RouteGeometry",
    "Segment",
    "Journey",
    "ItineraryDay",
    "Activity",
    "RouteDetails",
    # Offline
    "OfflineTrip",
    "TripIdentity",
    "IdentityKind",
    "SyncMetadata",
    "derive_offline_id",
    # Chat
    "ChatMessage",
    "ChatRequest",
    "ChatReply",
    "ChatResponse",
]
