"""Recurrence expansion - Pure functions.

Expands a recurrence rule into the bounded, ordered list of occurrence
timestamps for a series. All functions are pure with no side effects.

Monthly recurrence uses a fixed 30-day interval rather than calendar
months, so expansion never depends on calendar or timezone rules.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterator

from parentconnect.core.errors import InvalidInputError


# Upper bound on occurrences in one series, including the original
MAX_OCCURRENCES = 10


class RecurrenceUnit(Enum):
    """Unit of a recurrence interval."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def length(self) -> timedelta:
        """Fixed length of one unit."""
        return _UNIT_LENGTHS[self]

    @property
    def noun(self) -> str:
        return _UNIT_NOUNS[self]


_UNIT_LENGTHS = {
    RecurrenceUnit.DAILY: timedelta(days=1),
    RecurrenceUnit.WEEKLY: timedelta(days=7),
    RecurrenceUnit.MONTHLY: timedelta(days=30),
}

_UNIT_NOUNS = {
    RecurrenceUnit.DAILY: "day",
    RecurrenceUnit.WEEKLY: "week",
    RecurrenceUnit.MONTHLY: "month",
}


@dataclass(frozen=True)
class RecurrenceRule:
    """How a series repeats.

    Attributes:
        unit: Daily, weekly or monthly
        frequency: Repeat every N units (positive)
        series_end: No occurrence is generated after this instant

    Raises:
        InvalidInputError: If frequency is not a positive integer
    """
    unit: RecurrenceUnit
    frequency: int
    series_end: datetime

    def __post_init__(self) -> None:
        if isinstance(self.frequency, bool) or not isinstance(self.frequency, int):
            raise InvalidInputError(
                f"Frequency must be an integer, got {self.frequency!r}",
                field="frequency",
            )
        if self.frequency < 1:
            raise InvalidInputError(
                f"Frequency must be positive, got {self.frequency}",
                field="frequency",
            )

    @property
    def interval(self) -> timedelta:
        """Time between consecutive occurrences."""
        return self.unit.length * self.frequency


def iter_occurrences(
    start: datetime,
    rule: RecurrenceRule,
    max_occurrences: int = MAX_OCCURRENCES,
) -> Iterator[datetime]:
    """Lazily yield occurrence timestamps for a series.

    Pure function. The first value is always start itself; later values are
    spaced by rule.interval and never pass rule.series_end. Generation stops
    after max_occurrences values even when series_end is far away.

    Args:
        start: First occurrence
        rule: Recurrence rule
        max_occurrences: Cap on the number of values, clamped to MAX_OCCURRENCES

    Yields:
        Strictly increasing timestamps
    """
    limit = max(1, min(max_occurrences, MAX_OCCURRENCES))

    yield start
    produced = 1
    current = start + rule.interval

    while produced < limit and current <= rule.series_end:
        yield current
        produced += 1
        current = current + rule.interval


def expand(
    start: datetime,
    rule: RecurrenceRule,
    max_occurrences: int = MAX_OCCURRENCES,
) -> list[datetime]:
    """Expand a rule into its list of occurrence timestamps.

    Pure function. Calling twice with the same inputs gives the same list.
    A rule ending before start yields only [start].

    Args:
        start: First occurrence
        rule: Recurrence rule
        max_occurrences: Cap on the number of occurrences

    Returns:
        Ordered occurrence timestamps, at least one
    """
    return list(iter_occurrences(start, rule, max_occurrences))


def describe_rule(rule: RecurrenceRule) -> str:
    """Human-readable repeat description, e.g. "Every 2 weeks".

    Pure function.
    """
    if rule.frequency == 1:
        return f"Every {rule.unit.noun}"
    return f"Every {rule.frequency} {rule.unit.noun}s"
