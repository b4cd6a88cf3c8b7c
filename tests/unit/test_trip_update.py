"""Unit tests for partial trip updates."""

import pytest
from pydantic import ValidationError

from offbeat.models.trip import TripUpdate


def test_rejects_null_for_required_fields() -> None:
    """Test explicit nulls for fields every trip has are rejected."""
    with pytest.raises(ValidationError) as exc_info:
        TripUpdate.model_validate({"title": None, "journey": None})

    message = str(exc_info.value)
    assert "title" in message
    assert "journey" in message


def test_allows_null_for_optional_fields() -> None:
    """Test fields a stored trip may lack can be cleared."""
    update = TripUpdate.model_validate({"mapCenter": None, "activities": None})

    assert update.model_dump(by_alias=True, exclude_unset=True) == {
        "mapCenter": None,
        "activities": None,
    }


def test_unset_fields_are_not_nulls() -> None:
    """Test leaving fields out is not the same as sending null."""
    update = TripUpdate.model_validate({"title": "Renamed"})

    assert update.model_dump(exclude_unset=True) == {"title": "Renamed"}
