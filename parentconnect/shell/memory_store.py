"""In-memory stores - Imperative Shell.

Process-local implementations of the repository and participation store.
Each store guards its dictionaries with one lock so reads see a consistent
snapshot and multi-entity writes are all-or-nothing. Used for local runs
and tests.
"""

import logging
import threading
from typing import Iterable

from parentconnect.core.capacity import CapacityErrorKind, Membership
from parentconnect.core.entity import ScheduledEntity
from parentconnect.core.interfaces import ParticipationStore, Repository


logger = logging.getLogger(__name__)


class InMemoryRepository(Repository):
    """Scheduled entities keyed by entity ID."""

    def __init__(self, entities: Iterable[ScheduledEntity] = ()) -> None:
        self._lock = threading.Lock()
        self._entities: dict[str, ScheduledEntity] = {e.id: e for e in entities}

    def list_candidates(self) -> list[ScheduledEntity]:
        with self._lock:
            return list(self._entities.values())

    def persist(self, entities: Iterable[ScheduledEntity]) -> bool:
        batch = list(entities)
        ids = [e.id for e in batch]
        if len(set(ids)) != len(ids):
            logger.error("Refusing to persist batch with duplicate IDs")
            return False

        with self._lock:
            self._entities.update({e.id: e for e in batch})

        logger.info("Persisted %d entities", len(batch))
        return True

    def get(self, entity_id: str) -> ScheduledEntity | None:
        with self._lock:
            return self._entities.get(entity_id)

    def list_series(self, series_id: str) -> list[ScheduledEntity]:
        with self._lock:
            series = [e for e in self._entities.values() if e.series_id == series_id]
        return sorted(series, key=lambda e: e.occurs_at)

    def delete(self, entity_id: str) -> bool:
        with self._lock:
            return self._entities.pop(entity_id, None) is not None


class InMemoryParticipationStore(ParticipationStore):
    """Membership records and capacity overrides keyed by entity ID.

    Every conditional write checks and applies under the store lock, so
    trackers in different engines sharing one store see a single order
    of changes.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._members: dict[str, dict[str, Membership]] = {}
        self._capacities: dict[str, int | None] = {}

    def load_members(self, entity_id: str) -> list[Membership]:
        with self._lock:
            return list(self._members.get(entity_id, {}).values())

    def load_capacity(self, entity_id: str, default: int | None) -> int | None:
        with self._lock:
            return self._capacities.get(entity_id, default)

    def record_join(
        self,
        entity_id: str,
        membership: Membership,
        capacity: int | None,
    ) -> CapacityErrorKind | None:
        with self._lock:
            members = self._members.setdefault(entity_id, {})
            if membership.participant_id in members:
                return CapacityErrorKind.ALREADY_JOINED

            limit = self._capacities.get(entity_id, capacity)
            if limit is not None and len(members) >= limit:
                logger.info("Refused join of %s to %s: full", membership.participant_id, entity_id)
                return CapacityErrorKind.FULL

            members[membership.participant_id] = membership
        return None

    def record_leave(self, entity_id: str, participant_id: str) -> CapacityErrorKind | None:
        with self._lock:
            members = self._members.get(entity_id, {})
            if members.pop(participant_id, None) is None:
                return CapacityErrorKind.NOT_A_MEMBER
        return None

    def record_capacity(self, entity_id: str, capacity: int | None) -> CapacityErrorKind | None:
        with self._lock:
            if capacity is not None and len(self._members.get(entity_id, {})) > capacity:
                return CapacityErrorKind.BELOW_CURRENT_OCCUPANCY
            self._capacities[entity_id] = capacity
        return None
