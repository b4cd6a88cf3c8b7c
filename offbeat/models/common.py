"""Common types and enums shared across all models."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Longitude = Annotated[float, Field(ge=-180, le=180)]
Latitude = Annotated[float, Field(ge=-90, le=90)]

# [longitude, latitude], the order every map library expects
LngLat = tuple[Longitude, Latitude]


class CamelModel(BaseModel):
    """Base model whose wire format uses camelCase keys.

    Python code uses snake_case attribute names; JSON in and out of the API
    and the offline cache uses the camelCase keys the LLM prompt produces.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TravelMode(str, Enum):
    """Known journey segment travel modes.

    The set is open: segments keep unknown modes as plain lowercase strings.
    """

    walking = "walking"
    driving = "driving"
    cycling = "cycling"
    transit = "transit"
    biking = "biking"
    hiking = "hiking"
    rafting = "rafting"


KNOWN_TRAVEL_MODES = frozenset(mode.value for mode in TravelMode)


class SyncStatus(str, Enum):
    """Relationship of a locally cached trip to the remote collection."""

    pending = "pending"
    synced = "synced"
    failed = "failed"
