"""Scheduled entity model and document parsing - Pure functions.

A ScheduledEntity generalizes an event and a playdate: one concrete
occurrence with a place, a time, audience facets and an optional capacity.
Parsing to and from the stored document form lives here so both
repositories share it.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from parentconnect.core.errors import InvalidInputError
from parentconnect.core.geo import Coordinate


# Stored form of "no participant limit"
UNLIMITED_CAPACITY = -1

DEFAULT_AGE_RANGE = "All Ages"


class EntityKind(Enum):
    """What sort of gathering an entity is."""

    EVENT = "event"
    PLAYDATE = "playdate"


@dataclass(frozen=True)
class ScheduledEntity:
    """Immutable occurrence of an event or playdate.

    Attributes:
        id: Unique identifier, assigned at creation
        title: Display title
        location: Free-text location label
        occurs_at: When this occurrence takes place (naive values are taken as UTC)
        coordinate: Where it takes place, None if not geocoded
        age_range: Categorical audience label (e.g., "3-5 years")
        is_paid: Whether attendance costs money
        price: Price, meaningful only when is_paid
        capacity: Maximum participants, None for unlimited
        series_id: Shared by occurrences created from one recurrence rule
        kind: Event or playdate
        description: Free-text description
        created_by: Organizer's user ID
    """
    id: str
    title: str
    location: str
    occurs_at: datetime
    coordinate: Coordinate | None = None
    age_range: str = DEFAULT_AGE_RANGE
    is_paid: bool = False
    price: Decimal = Decimal("0")
    capacity: int | None = None
    series_id: str | None = None
    kind: EntityKind = EntityKind.EVENT
    description: str = ""
    created_by: str | None = None

    def __post_init__(self) -> None:
        if self.occurs_at.tzinfo is None:
            object.__setattr__(self, "occurs_at", self.occurs_at.replace(tzinfo=timezone.utc))
        if self.price < 0:
            raise InvalidInputError("Price cannot be negative", field="price")
        if self.capacity is not None and self.capacity < 0:
            raise InvalidInputError("Capacity cannot be negative", field="capacity")

    @property
    def is_free(self) -> bool:
        return not self.is_paid

    @property
    def has_capacity_limit(self) -> bool:
        return self.capacity is not None

    def with_occurrence(self, entity_id: str, occurs_at: datetime) -> "ScheduledEntity":
        """Copy with a new identity and time; every other field is kept."""
        return replace(self, id=entity_id, occurs_at=occurs_at)


def normalize_capacity(value: Any) -> int | None:
    """Convert a stored capacity (-1 or missing = unlimited) to the model form.

    Pure function.

    Raises:
        InvalidInputError: If the value is not an integer >= -1
    """
    if value is None:
        return None
    try:
        capacity = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid capacity: {value!r}", field="capacity")
    if capacity == UNLIMITED_CAPACITY:
        return None
    if capacity < 0:
        raise InvalidInputError(f"Invalid capacity: {capacity}", field="capacity")
    return capacity


def parse_timestamp(value: Any, field: str = "occurs_at") -> datetime:
    """Parse an ISO-8601 string or datetime into an aware datetime.

    Naive values are taken to be UTC.

    Raises:
        InvalidInputError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise InvalidInputError(f"Invalid timestamp: {value!r}", field=field)
    else:
        raise InvalidInputError(f"Invalid timestamp: {value!r}", field=field)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_inclusive_end(
    value: Any,
    field: str = "series_end",
    tz: tzinfo = timezone.utc,
) -> datetime:
    """Parse an end bound where a bare date covers that whole day.

    "2024-01-22" becomes the last instant of January 22 in tz, so an
    occurrence at any time that day is still within the bound. Full
    timestamps are parsed as in parse_timestamp.

    Raises:
        InvalidInputError: If the value cannot be parsed
    """
    day = None
    if isinstance(value, date) and not isinstance(value, datetime):
        day = value
    elif isinstance(value, str) and len(value.strip()) == 10:
        try:
            day = date.fromisoformat(value.strip())
        except ValueError:
            raise InvalidInputError(f"Invalid date: {value!r}", field=field)

    if day is not None:
        return datetime.combine(day, time.max, tzinfo=tz)
    return parse_timestamp(value, field=field)


def _parse_coordinate(data: dict[str, Any]) -> Coordinate | None:
    lat = data.get("latitude")
    lon = data.get("longitude")
    if lat is None or lon is None:
        return None
    try:
        return Coordinate(latitude=float(lat), longitude=float(lon))
    except (TypeError, ValueError):
        raise InvalidInputError(
            f"Invalid coordinate: ({lat!r}, {lon!r})",
            field="coordinate",
        )


def _parse_price(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise InvalidInputError(f"Invalid price: {value!r}", field="price")


def entity_from_dict(data: dict[str, Any]) -> ScheduledEntity:
    """Parse a stored document or request body into a ScheduledEntity.

    Pure function.

    Args:
        data: Mapping with at least id, title, location and occurs_at

    Returns:
        Parsed entity

    Raises:
        InvalidInputError: If a required field is missing or malformed
    """
    for required in ("id", "title", "location", "occurs_at"):
        if not data.get(required):
            raise InvalidInputError(f"Missing required field: {required}", field=required)

    try:
        kind = EntityKind(data.get("kind", EntityKind.EVENT.value))
    except ValueError:
        raise InvalidInputError(f"Unknown kind: {data.get('kind')!r}", field="kind")

    return ScheduledEntity(
        id=str(data["id"]),
        title=data["title"],
        location=data["location"],
        occurs_at=parse_timestamp(data["occurs_at"]),
        coordinate=_parse_coordinate(data),
        age_range=data.get("age_range") or DEFAULT_AGE_RANGE,
        is_paid=bool(data.get("is_paid", False)),
        price=_parse_price(data.get("price")),
        capacity=normalize_capacity(data.get("capacity")),
        series_id=data.get("series_id"),
        kind=kind,
        description=data.get("description", ""),
        created_by=data.get("created_by"),
    )


def entity_to_dict(entity: ScheduledEntity) -> dict[str, Any]:
    """Convert an entity to its stored document form.

    Pure function.
    """
    return {
        "id": entity.id,
        "title": entity.title,
        "location": entity.location,
        "occurs_at": entity.occurs_at.isoformat(),
        "latitude": entity.coordinate.latitude if entity.coordinate else None,
        "longitude": entity.coordinate.longitude if entity.coordinate else None,
        "age_range": entity.age_range,
        "is_paid": entity.is_paid,
        "price": str(entity.price),
        "capacity": entity.capacity if entity.capacity is not None else UNLIMITED_CAPACITY,
        "series_id": entity.series_id,
        "kind": entity.kind.value,
        "description": entity.description,
        "created_by": entity.created_by,
    }
