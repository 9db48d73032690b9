"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Implementations live
in the shell layer; the core and orchestrator depend only on these.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from parentconnect.core.capacity import CapacityErrorKind, Membership
from parentconnect.core.entity import ScheduledEntity


class Repository(ABC):
    """Interface for scheduled entity persistence."""

    @abstractmethod
    def list_candidates(self) -> list[ScheduledEntity]:
        """Return a consistent snapshot of all stored entities."""
        ...

    @abstractmethod
    def persist(self, entities: Iterable[ScheduledEntity]) -> bool:
        """Store entities atomically: all of them or none.

        Returns:
            True if every entity was stored
        """
        ...

    @abstractmethod
    def get(self, entity_id: str) -> ScheduledEntity | None:
        """Return an entity by ID, or None if not found."""
        ...

    @abstractmethod
    def list_series(self, series_id: str) -> list[ScheduledEntity]:
        """Return all stored occurrences of a series, ordered by occurs_at."""
        ...

    @abstractmethod
    def delete(self, entity_id: str) -> bool:
        """Delete one entity. Sibling occurrences are left alone."""
        ...


class ParticipationStore(ABC):
    """Interface for durable membership records.

    The store is shared by every process serving an entity. Writes are
    conditional: each re-checks its precondition against the stored state
    atomically and returns None when applied, or the CapacityErrorKind
    explaining the refusal (STORAGE_FAILED for I/O errors).
    """

    @abstractmethod
    def load_members(self, entity_id: str) -> list[Membership]:
        """Return current members of an entity, oldest first."""
        ...

    @abstractmethod
    def load_capacity(self, entity_id: str, default: int | None) -> int | None:
        """Return the last recorded capacity, or default if none was recorded."""
        ...

    @abstractmethod
    def record_join(
        self,
        entity_id: str,
        membership: Membership,
        capacity: int | None,
    ) -> CapacityErrorKind | None:
        """Add a membership unless the participant is present or the entity is full.

        A capacity recorded in the store takes precedence over the one passed.
        """
        ...

    @abstractmethod
    def record_leave(self, entity_id: str, participant_id: str) -> CapacityErrorKind | None:
        """Remove a membership; NOT_A_MEMBER if it is not stored."""
        ...

    @abstractmethod
    def record_capacity(self, entity_id: str, capacity: int | None) -> CapacityErrorKind | None:
        """Store a new limit; BELOW_CURRENT_OCCUPANCY if members exceed it."""
        ...
