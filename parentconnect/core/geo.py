"""Geographic calculations - Pure functions.

This module provides coordinates and great-circle distances used by the
distance facet. All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass

from parentconnect.core.errors import InvalidInputError


# Earth's mean radius in miles
EARTH_RADIUS_MILES = 3958.8


@dataclass(frozen=True)
class Coordinate:
    """A validated latitude/longitude pair.

    Attributes:
        latitude: Degrees north, in [-90, 90]
        longitude: Degrees east, in [-180, 180]

    Raises:
        InvalidInputError: If either value is out of range or not finite
    """
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.latitude) and -90 <= self.latitude <= 90):
            raise InvalidInputError(
                f"Latitude {self.latitude} out of range [-90, 90]",
                field="latitude",
            )
        if not (math.isfinite(self.longitude) and -180 <= self.longitude <= 180):
            raise InvalidInputError(
                f"Longitude {self.longitude} out of range [-180, 180]",
                field="longitude",
            )


@dataclass(frozen=True)
class NamedPlace:
    """A user-chosen reference location (e.g., "Home", "Grandma's").

    Attributes:
        name: Human-readable name shown in place of "Current Location"
        coordinate: Where the place is
    """
    name: str
    coordinate: Coordinate


def distance_miles(a: Coordinate, b: Coordinate) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance in miles
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_MILES * c


def distance_between(a: Coordinate | None, b: Coordinate | None) -> float | None:
    """Distance in miles, or None when either side is unknown.

    Pure function.
    """
    if a is None or b is None:
        return None
    return distance_miles(a, b)


def is_within_radius(a: Coordinate, b: Coordinate, radius_miles: float) -> bool:
    """Check if two points are within radius_miles of each other.

    Pure function.
    """
    return distance_miles(a, b) <= radius_miles
