"""Unit tests for geographic calculations.

Pure function tests - no mocks needed, fast execution.
"""

import math

import pytest

from parentconnect.core.errors import InvalidInputError
from parentconnect.core.geo import (
    Coordinate,
    distance_between,
    distance_miles,
    is_within_radius,
)


SAN_FRANCISCO = Coordinate(37.7749, -122.4194)
LOS_ANGELES = Coordinate(34.0522, -118.2437)

# One degree of latitude in miles on a sphere of radius 3958.8
MILES_PER_DEGREE_LAT = 2 * math.pi * 3958.8 / 360


def north_of(origin: Coordinate, miles: float) -> Coordinate:
    """Point the given number of miles due north of origin."""
    return Coordinate(origin.latitude + miles / MILES_PER_DEGREE_LAT, origin.longitude)


class TestCoordinate:
    """Tests for Coordinate validation."""

    def test_accepts_boundary_values(self):
        """Poles and the antimeridian are valid."""
        Coordinate(90.0, 180.0)
        Coordinate(-90.0, -180.0)

    def test_rejects_latitude_out_of_range(self):
        """Latitude beyond 90 fails fast."""
        with pytest.raises(InvalidInputError) as exc_info:
            Coordinate(91.0, 0.0)
        assert "Latitude" in exc_info.value.message

    def test_rejects_longitude_out_of_range(self):
        """Longitude beyond 180 fails fast."""
        with pytest.raises(InvalidInputError) as exc_info:
            Coordinate(0.0, -181.0)
        assert "Longitude" in exc_info.value.message

    def test_rejects_nan(self):
        """NaN is not a coordinate."""
        with pytest.raises(InvalidInputError):
            Coordinate(float("nan"), 0.0)


class TestDistanceMiles:
    """Tests for distance_miles() Haversine implementation."""

    def test_same_point_returns_zero(self):
        """Distance from point to itself should be zero."""
        assert distance_miles(SAN_FRANCISCO, SAN_FRANCISCO) == pytest.approx(0.0, abs=0.001)

    def test_known_distance_sf_to_la(self):
        """SF to LA should be approximately 347 miles."""
        assert distance_miles(SAN_FRANCISCO, LOS_ANGELES) == pytest.approx(347, rel=0.02)

    def test_known_distance_nyc_to_london(self):
        """NYC to London should be approximately 3461 miles."""
        nyc = Coordinate(40.7128, -74.0060)
        london = Coordinate(51.5074, -0.1278)

        assert distance_miles(nyc, london) == pytest.approx(3461, rel=0.02)

    def test_symmetric(self):
        """Distance should be the same in both directions."""
        d1 = distance_miles(SAN_FRANCISCO, LOS_ANGELES)
        d2 = distance_miles(LOS_ANGELES, SAN_FRANCISCO)

        assert d1 == pytest.approx(d2, rel=0.001)

    def test_short_distance_due_north(self):
        """A point 3.2 miles north measures 3.2 miles."""
        assert distance_miles(SAN_FRANCISCO, north_of(SAN_FRANCISCO, 3.2)) == pytest.approx(3.2, rel=0.001)


class TestDistanceBetween:
    """Tests for distance_between() with optional coordinates."""

    def test_returns_none_when_first_missing(self):
        assert distance_between(None, SAN_FRANCISCO) is None

    def test_returns_none_when_second_missing(self):
        assert distance_between(SAN_FRANCISCO, None) is None

    def test_returns_distance_when_both_present(self):
        assert distance_between(SAN_FRANCISCO, LOS_ANGELES) == pytest.approx(
            distance_miles(SAN_FRANCISCO, LOS_ANGELES)
        )


class TestIsWithinRadius:
    """Tests for is_within_radius() function."""

    def test_inside_radius(self):
        assert is_within_radius(SAN_FRANCISCO, north_of(SAN_FRANCISCO, 1.5), 2.0) is True

    def test_outside_radius(self):
        assert is_within_radius(SAN_FRANCISCO, north_of(SAN_FRANCISCO, 3.2), 2.0) is False
