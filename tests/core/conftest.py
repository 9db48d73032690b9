"""Shared fixtures for core tests."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from parentconnect.core.entity import ScheduledEntity
from parentconnect.core.geo import Coordinate


@pytest.fixture
def home():
    """Reference point used for distance filtering."""
    return Coordinate(37.7749, -122.4194)


@pytest.fixture
def make_entity():
    """Factory for entities with sensible defaults."""

    def _make(entity_id="evt", **overrides):
        fields = {
            "id": entity_id,
            "title": "Story Time",
            "location": "Mission Library",
            "occurs_at": datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc),
            "coordinate": None,
            "age_range": "3-5 years",
            "is_paid": False,
            "price": Decimal("0"),
        }
        fields.update(overrides)
        return ScheduledEntity(**fields)

    return _make
