"""Facet filter evaluation - Pure functions.

Decides whether one scheduled entity satisfies each facet of a FilterSpec.
Facets are AND-combined: a candidate must pass every active facet. Date
windows are resolved against a caller-supplied "now", never the wall clock.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from parentconnect.core.entity import ScheduledEntity
from parentconnect.core.geo import Coordinate, is_within_radius


# Common age ranges for kids' activities
AGE_RANGES = (
    "All Ages",
    "0-2 years",
    "3-5 years",
    "6-8 years",
    "9-12 years",
    "Teenagers",
)


class PriceFacet(Enum):
    """Price filter options."""

    ANY = "All"
    FREE_ONLY = "Free"
    PAID_ONLY = "Paid"

    @property
    def label(self) -> str:
        return self.value


class DateFacet(Enum):
    """Date window filter options."""

    ANY = "All"
    TODAY = "Today"
    THIS_WEEK = "This Week"
    THIS_MONTH = "This Month"

    @property
    def label(self) -> str:
        return self.value


class DistanceFacet(Enum):
    """Distance filter options, each with a threshold in miles."""

    ANY = "any"
    WALKING = "walking"
    NEARBY = "nearby"
    SHORT_DRIVE = "short_drive"
    LOCAL_AREA = "local_area"

    @property
    def max_miles(self) -> float:
        return _DISTANCE_THRESHOLDS[self]

    @property
    def label(self) -> str:
        return _DISTANCE_LABELS[self]


_DISTANCE_THRESHOLDS = {
    DistanceFacet.ANY: float("inf"),
    DistanceFacet.WALKING: 0.5,
    DistanceFacet.NEARBY: 2.0,
    DistanceFacet.SHORT_DRIVE: 5.0,
    DistanceFacet.LOCAL_AREA: 10.0,
}

_DISTANCE_LABELS = {
    DistanceFacet.ANY: "Any Distance",
    DistanceFacet.WALKING: "Walking (0.5 miles)",
    DistanceFacet.NEARBY: "Nearby (<2 miles)",
    DistanceFacet.SHORT_DRIVE: "Short Drive (5 miles)",
    DistanceFacet.LOCAL_AREA: "Local Area (10 miles)",
}


@dataclass(frozen=True)
class FilterSpec:
    """A faceted discovery query.

    Attributes:
        price: Price facet
        age_range: Exact age label to match, None for any
        date: Date window facet
        distance: Distance facet
        reference_point: Point distances are measured from
        search_text: Case-insensitive text matched against title and location
    """
    price: PriceFacet = PriceFacet.ANY
    age_range: str | None = None
    date: DateFacet = DateFacet.ANY
    distance: DistanceFacet = DistanceFacet.ANY
    reference_point: Coordinate | None = None
    search_text: str = ""


def start_of_day(moment: datetime) -> datetime:
    """Midnight at the start of moment's day, in moment's timezone."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length.

    Pure function.
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def date_window(facet: DateFacet, now: datetime) -> tuple[datetime, datetime] | None:
    """Resolve a date facet into a half-open [from, to) interval.

    Pure function.

    Args:
        facet: Date facet to resolve
        now: Reference instant supplied by the caller

    Returns:
        (from, to) tuple, or None for DateFacet.ANY
    """
    if facet is DateFacet.ANY:
        return None

    today = start_of_day(now)

    if facet is DateFacet.TODAY:
        return today, today + timedelta(days=1)
    if facet is DateFacet.THIS_WEEK:
        return today, today + timedelta(days=7)
    return today, add_months(today, 1)


def matches_price(entity: ScheduledEntity, facet: PriceFacet) -> bool:
    """Pure function."""
    if facet is PriceFacet.FREE_ONLY:
        return not entity.is_paid
    if facet is PriceFacet.PAID_ONLY:
        return entity.is_paid
    return True


def matches_age(entity: ScheduledEntity, age_range: str | None) -> bool:
    """Exact categorical match; None matches every entity.

    Pure function.
    """
    if age_range is None:
        return True
    return entity.age_range == age_range


def matches_date(entity: ScheduledEntity, facet: DateFacet, now: datetime) -> bool:
    """Pure function."""
    window = date_window(facet, now)
    if window is None:
        return True
    start, end = window
    return start <= entity.occurs_at < end


def matches_distance(
    entity: ScheduledEntity,
    facet: DistanceFacet,
    reference_point: Coordinate | None,
) -> bool:
    """Check the distance facet.

    Pure function. Fails closed: with any facet other than ANY, an entity
    without a coordinate (or a query without a reference point) is excluded.
    """
    if facet is DistanceFacet.ANY:
        return True

    if entity.coordinate is None or reference_point is None:
        return False

    return is_within_radius(entity.coordinate, reference_point, facet.max_miles)


def matches_search(entity: ScheduledEntity, search_text: str) -> bool:
    """Case-insensitive substring match on title or location.

    Pure function.
    """
    needle = search_text.strip().lower()
    if not needle:
        return True
    return needle in entity.title.lower() or needle in entity.location.lower()


def matches_filter(entity: ScheduledEntity, spec: FilterSpec, now: datetime) -> bool:
    """Evaluate every facet of spec against an entity.

    Pure function.

    Args:
        entity: Candidate to check
        spec: Faceted query
        now: Reference instant for the date facet

    Returns:
        True if the entity passes all facets
    """
    return (
        matches_price(entity, spec.price)
        and matches_age(entity, spec.age_range)
        and matches_date(entity, spec.date, now)
        and matches_search(entity, spec.search_text)
        and matches_distance(entity, spec.distance, spec.reference_point)
    )


def active_facet_count(spec: FilterSpec) -> int:
    """Number of facets that narrow results (search text excluded).

    Pure function.
    """
    return sum([
        spec.price is not PriceFacet.ANY,
        spec.age_range is not None,
        spec.date is not DateFacet.ANY,
        spec.distance is not DistanceFacet.ANY,
    ])
