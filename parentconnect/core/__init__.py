"""Functional Core - Pure functions with no side effects.

This module contains all scheduling and discovery logic:
- Coordinates and great-circle distances
- Recurrence expansion
- Facet filtering
- Series creation and discovery ranking
- Capacity tracking (in-memory, lock-serialized)

Nothing here performs I/O.
"""

from parentconnect.core.capacity import (
    CapacityErrorKind,
    CapacityResult,
    CapacityTracker,
    Membership,
)
from parentconnect.core.discovery import DiscoveryMatch, create_series, discover, rank
from parentconnect.core.entity import EntityKind, ScheduledEntity
from parentconnect.core.errors import EntityExistsError, EntityNotFoundError, InvalidInputError
from parentconnect.core.filters import DateFacet, DistanceFacet, FilterSpec, PriceFacet
from parentconnect.core.geo import Coordinate, NamedPlace, distance_miles
from parentconnect.core.recurrence import RecurrenceRule, RecurrenceUnit, expand

__all__ = [
    # Capacity
    "CapacityErrorKind",
    "CapacityResult",
    "CapacityTracker",
    "Membership",
    # Discovery
    "DiscoveryMatch",
    "create_series",
    "discover",
    "rank",
    # Entity
    "EntityKind",
    "ScheduledEntity",
    # Errors
    "EntityExistsError",
    "EntityNotFoundError",
    "InvalidInputError",
    # Filters
    "DateFacet",
    "DistanceFacet",
    "FilterSpec",
    "PriceFacet",
    # Geo
    "Coordinate",
    "NamedPlace",
    "distance_miles",
    # Recurrence
    "RecurrenceRule",
    "RecurrenceUnit",
    "expand",
]
