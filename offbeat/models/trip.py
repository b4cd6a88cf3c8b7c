"""Trip models - the canonical unit of value."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from offbeat.models.common import CamelModel, LngLat


class Marker(CamelModel):
    """Named point of interest on the trip map."""

    coordinates: LngLat
    name: str


class RouteGeometry(CamelModel):
    """GeoJSON LineString; two points minimum to be drawable."""

    type: Literal["LineString"] = "LineString"
    coordinates: list[LngLat] = Field(..., min_length=2)


class Segment(CamelModel):
    """One leg of a journey between two named points."""

    mode: str = "driving"
    from_: str = Field("", alias="from")
    to: str = ""
    distance: float = Field(0.0, ge=0, description="Meters")
    duration: float = Field(0.0, ge=0, description="Seconds")
    terrain: str | None = None
    geometry: RouteGeometry | None = None

    @property
    def has_route(self) -> bool:
        """Whether the segment can be drawn as a line."""
        return self.geometry is not None


class Journey(CamelModel):
    """Ordered segments plus aggregate totals and bounding box."""

    segments: list[Segment] = Field(default_factory=list)
    total_distance: float = Field(0.0, ge=0)
    total_duration: float = Field(0.0, ge=0)
    bounds: tuple[LngLat, LngLat] | None = None  # [southwest, northeast]


class ItineraryDay(CamelModel):
    """One day of the itinerary."""

    day: int
    title: str = ""
    description: str = ""
    activities: list[str] = Field(default_factory=list)
    accommodation: str | None = None


class RouteDetails(BaseModel):
    """Structured route statistics for an activity."""

    distance_miles: float | None = None
    elevation_gain_ft: float | None = None
    elevation_loss_ft: float | None = None
    high_point_ft: float | None = None
    terrain: str | None = None
    route_type: str | None = None


class Activity(BaseModel):
    """Richer activity record used by the activity timeline.

    Uses snake_case keys on the wire, matching the structured activity
    schema the LLM is prompted with.
    """

    id: str | None = None
    title: str
    type: str | None = None
    day: int | None = None
    difficulty: str | None = None
    duration_hours: float | None = Field(None, ge=0)
    start_location: str | None = None
    end_location: str | None = None
    highlights: list[str] = Field(default_factory=list)
    hazards: list[str] = Field(default_factory=list)
    route_details: RouteDetails | None = None
    route_geometry: RouteGeometry | None = None


class TripBase(CamelModel):
    """Trip content without identity; the server-side create payload."""

    title: str = Field(..., min_length=1)
    description: str = ""
    location: str = ""
    duration: str = ""
    difficulty_level: str = ""
    price_estimate: str = ""
    why_we_chose_this: str = ""
    suggested_guides: list[str] = Field(default_factory=list)
    map_center: LngLat | None = None
    markers: list[Marker] = Field(default_factory=list)
    journey: Journey = Field(default_factory=Journey)
    itinerary: list[ItineraryDay] = Field(default_factory=list)
    activities: list[Activity] | None = None


class Trip(TripBase):
    """Trip with identity.

    `id` is the server-assigned integer once persisted, or a client-generated
    string before that.
    """

    id: int | str


# Trip fields a PATCH may explicitly clear
_CLEARABLE_FIELDS = frozenset({"map_center", "activities"})


class TripUpdate(CamelModel):
    """Partial trip for PATCH; unset fields are left untouched.

    Explicit nulls are only accepted for fields a stored trip may lack.
    """

    title: str | None = Field(None, min_length=1)
    description: str | None = None
    location: str | None = None
    duration: str | None = None
    difficulty_level: str | None = None
    price_estimate: str | None = None
    why_we_chose_this: str | None = None
    suggested_guides: list[str] | None = None
    map_center: LngLat | None = None
    markers: list[Marker] | None = None
    journey: Journey | None = None
    itinerary: list[ItineraryDay] | None = None
    activities: list[Activity] | None = None

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "TripUpdate":
        nulled = sorted(
            name
            for name in self.model_fields_set
            if getattr(self, name) is None and name not in _CLEARABLE_FIELDS
        )
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self


class SavedTrip(Trip):
    """Trip as stored in the remote collection."""

    id: int
    user_id: int
    version: int = 1
    shareable_id: str | None = None
    is_public: bool = False
    created_at: datetime
    updated_at: datetime


class SharedTrip(CamelModel):
    """Public view of a shared trip - no ownership data."""

    id: int
    title: str
    description: str
    location: str
    duration: str
    difficulty_level: str
    price_estimate: str
    map_center: LngLat | None
    markers: list[Marker]
    journey: Journey
    itinerary: list[ItineraryDay]
    created_at: datetime


class ShareLink(CamelModel):
    """Result of sharing a trip."""

    shareable_id: str
    share_url: str
