"""Shared fixtures for shell tests."""

from datetime import datetime, timezone

import pytest

from parentconnect.core.entity import ScheduledEntity
from parentconnect.core.geo import Coordinate


@pytest.fixture
def sample_entity():
    """Create a sample capacity-limited event."""
    return ScheduledEntity(
        id="evt-1",
        title="Toddler Music Circle",
        location="Noe Valley Library",
        occurs_at=datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc),
        coordinate=Coordinate(37.7502, -122.4337),
        age_range="0-2 years",
        capacity=3,
    )
