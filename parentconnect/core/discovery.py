"""Series creation and discovery ranking - Pure functions.

create_series turns one base entity and an optional recurrence rule into
the occurrences to store. discover filters candidates through every facet
and orders survivors soonest first, nearest first on ties.
"""

import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Iterable

from parentconnect.core.entity import ScheduledEntity
from parentconnect.core.filters import FilterSpec, matches_filter
from parentconnect.core.geo import distance_between
from parentconnect.core.recurrence import MAX_OCCURRENCES, RecurrenceRule, expand


def new_id() -> str:
    """Fresh opaque identifier."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class DiscoveryMatch:
    """A discovered entity with its distance from the reference point.

    Attributes:
        entity: The matching entity
        distance_miles: Distance from the query's reference point, None if unknown
    """
    entity: ScheduledEntity
    distance_miles: float | None

    @property
    def sort_key(self) -> tuple[datetime, float]:
        distance = math.inf if self.distance_miles is None else self.distance_miles
        return (self.entity.occurs_at, distance)


def create_series(
    base: ScheduledEntity,
    rule: RecurrenceRule | None,
    id_factory: Callable[[], str] = new_id,
    max_occurrences: int = MAX_OCCURRENCES,
) -> list[ScheduledEntity]:
    """Build the occurrences of a possibly recurring entity.

    Pure function apart from id_factory.

    Without a rule the result is [base], untouched. With a rule, the first
    occurrence keeps base.id and every later one gets a fresh ID; all of
    them share a new series_id and every other field of base.

    Args:
        base: First occurrence, with the static fields to copy
        rule: Recurrence rule, or None for a one-off
        id_factory: Source of new entity and series IDs
        max_occurrences: Cap passed to the recurrence expander

    Returns:
        Occurrences ordered by occurs_at
    """
    if rule is None:
        return [base]

    series_id = id_factory()
    timestamps = expand(base.occurs_at, rule, max_occurrences)

    series = []
    for index, occurs_at in enumerate(timestamps):
        entity_id = base.id if index == 0 else id_factory()
        occurrence = base.with_occurrence(entity_id, occurs_at)
        series.append(replace(occurrence, series_id=series_id))

    return series


def rank(
    candidates: Iterable[ScheduledEntity],
    spec: FilterSpec,
    now: datetime,
) -> list[DiscoveryMatch]:
    """Filter candidates and order matches with their distances.

    Pure function. Ordering is by occurs_at, then distance with unknown
    distances last. The sort is stable, so exact ties keep input order.

    Args:
        candidates: Snapshot of entities to search
        spec: Faceted query
        now: Reference instant for date facets

    Returns:
        Matches, soonest first
    """
    matches = [
        DiscoveryMatch(
            entity=entity,
            distance_miles=distance_between(entity.coordinate, spec.reference_point),
        )
        for entity in candidates
        if matches_filter(entity, spec, now)
    ]
    matches.sort(key=lambda m: m.sort_key)
    return matches


def discover(
    candidates: Iterable[ScheduledEntity],
    spec: FilterSpec,
    now: datetime,
) -> list[ScheduledEntity]:
    """Filter and order candidates for a discovery listing.

    Pure function. Never fails; no match yields an empty list.
    """
    return [match.entity for match in rank(candidates, spec, now)]
