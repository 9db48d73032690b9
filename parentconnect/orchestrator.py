"""Orchestrator - Wires Functional Core and Imperative Shell.

DiscoveryEngine coordinates the pure series/discovery functions with the
repository and participation store, and owns one CapacityTracker per
entity so that joins and leaves on the same entity are serialized while
different entities proceed in parallel.
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable

from parentconnect.core.capacity import CapacityResult, CapacityTracker, Membership
from parentconnect.core.config import Config
from parentconnect.core.discovery import DiscoveryMatch, create_series, new_id, rank
from parentconnect.core.entity import ScheduledEntity
from parentconnect.core.errors import EntityExistsError, EntityNotFoundError
from parentconnect.core.filters import FilterSpec
from parentconnect.core.interfaces import ParticipationStore, Repository
from parentconnect.core.recurrence import RecurrenceRule
from parentconnect.shell.firestore_store import (
    FirestoreConfig,
    FirestoreParticipationStore,
    FirestoreRepository,
)
from parentconnect.shell.memory_store import InMemoryParticipationStore, InMemoryRepository


logger = logging.getLogger(__name__)


@dataclass
class SeriesResult:
    """Result of creating an event or playdate series.

    Attributes:
        entities: Occurrences created, soonest first
        persisted: Whether the repository stored all of them
        error: Error message if not persisted
    """
    entities: list[ScheduledEntity]
    persisted: bool
    error: str | None = None

    @property
    def series_id(self) -> str | None:
        return self.entities[0].series_id if self.entities else None

    @property
    def summary(self) -> str:
        """Human-readable summary of the creation result."""
        state = "stored" if self.persisted else "not stored"
        return f"{len(self.entities)} occurrence(s) {state}"


@dataclass
class DiscoveryResult:
    """Result of a discovery query.

    Attributes:
        matches: Matching entities with distances, soonest first
        candidates_scanned: Number of candidates in the snapshot
    """
    matches: list[DiscoveryMatch] = field(default_factory=list)
    candidates_scanned: int = 0

    @property
    def entities(self) -> list[ScheduledEntity]:
        return [m.entity for m in self.matches]


def build_stores(config: Config) -> tuple[Repository, ParticipationStore]:
    """Create the repository and participation store named by config."""
    if config.storage_backend == "firestore":
        firestore_config = FirestoreConfig(
            project_id=config.firestore_project,
            database=config.firestore_database,
            entities_collection=config.entities_collection,
            participation_collection=config.participation_collection,
        )
        return (
            FirestoreRepository(firestore_config),
            FirestoreParticipationStore(firestore_config),
        )

    return InMemoryRepository(), InMemoryParticipationStore()


class DiscoveryEngine:
    """Creates series, answers discovery queries and applies participation changes.

    This class wires together:
    - Core functions (series expansion, filtering, ranking)
    - Repository (entity snapshots and atomic series writes)
    - Participation store (durable membership records)
    - Per-entity capacity trackers (serialized join/leave/capacity changes)
    """

    def __init__(
        self,
        config: Config | None = None,
        repository: Repository | None = None,
        participation_store: ParticipationStore | None = None,
        id_factory: Callable[[], str] = new_id,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration
            repository: Entity repository (created from config if not provided)
            participation_store: Membership store (created from config if not provided)
            id_factory: Source of entity and series IDs
            clock: Source of join timestamps (trackers default to UTC now)
        """
        self.config = config or Config()
        if repository is None or participation_store is None:
            default_repository, default_store = build_stores(self.config)
            repository = repository or default_repository
            participation_store = participation_store or default_store
        self.repository = repository
        self.participation_store = participation_store
        self.id_factory = id_factory
        self.clock = clock
        self._trackers: dict[str, CapacityTracker] = {}
        self._registry_lock = threading.Lock()

    def _new_tracker(self, entity: ScheduledEntity, members: list[Membership]) -> CapacityTracker:
        kwargs = {}
        if self.clock is not None:
            kwargs["clock"] = self.clock
        return CapacityTracker(
            entity_id=entity.id,
            capacity=self.participation_store.load_capacity(entity.id, entity.capacity),
            members=members,
            store=self.participation_store,
            **kwargs,
        )

    def tracker_for(self, entity_id: str) -> CapacityTracker:
        """Return the tracker for an entity, loading it on first use.

        Raises:
            EntityNotFoundError: If the repository has no such entity
        """
        with self._registry_lock:
            tracker = self._trackers.get(entity_id)
            if tracker is not None:
                return tracker

        entity = self.repository.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)

        members = self.participation_store.load_members(entity_id)
        loaded = self._new_tracker(entity, members)

        with self._registry_lock:
            # Another caller may have loaded it meanwhile; keep the first
            return self._trackers.setdefault(entity_id, loaded)

    def create_series(
        self,
        base: ScheduledEntity,
        rule: RecurrenceRule | None = None,
    ) -> SeriesResult:
        """Expand and persist a one-off or recurring entity.

        Args:
            base: First occurrence
            rule: Recurrence rule, or None for a one-off

        Returns:
            SeriesResult; nothing is stored unless every occurrence is

        Raises:
            EntityExistsError: If an occurrence ID is already stored
        """
        entities = create_series(
            base,
            rule,
            id_factory=self.id_factory,
            max_occurrences=self.config.max_occurrences,
        )

        for entity in entities:
            if self.repository.get(entity.id) is not None:
                raise EntityExistsError(entity.id)

        if not self.repository.persist(entities):
            logger.error("Failed to persist series for %s", base.title)
            return SeriesResult(
                entities=entities,
                persisted=False,
                error="Failed to persist series",
            )

        trackers = [self._new_tracker(entity, []) for entity in entities]
        with self._registry_lock:
            for tracker in trackers:
                self._trackers.setdefault(tracker.entity_id, tracker)

        logger.info(
            "Created %d occurrence(s) of '%s' starting %s",
            len(entities),
            base.title,
            base.occurs_at.isoformat(),
        )
        return SeriesResult(entities=entities, persisted=True)

    def discover(self, spec: FilterSpec, now: datetime) -> DiscoveryResult:
        """Filter and rank the repository's current snapshot.

        Args:
            spec: Faceted query
            now: Reference instant supplied by the caller

        Returns:
            DiscoveryResult, possibly empty
        """
        candidates = self.repository.list_candidates()
        matches = rank(candidates, spec, now)

        logger.info(
            "Discovery matched %d of %d candidates",
            len(matches),
            len(candidates),
        )
        return DiscoveryResult(matches=matches, candidates_scanned=len(candidates))

    def _log_result(self, action: str, result: CapacityResult) -> CapacityResult:
        if result.success:
            logger.info(
                "%s %s: %s (%d participants)",
                action,
                result.entity_id,
                result.participant_id or "-",
                result.participants_count,
            )
        else:
            logger.warning("%s %s refused: %s", action, result.entity_id, result.message)
        return result

    def join(
        self,
        entity_id: str,
        participant_id: str,
        privacy_level: str | None = None,
    ) -> CapacityResult:
        """Add a participant to an entity."""
        tracker = self.tracker_for(entity_id)
        result = tracker.join(
            participant_id,
            privacy_level=privacy_level or self.config.default_privacy_level,
        )
        return self._log_result("Join", result)

    def leave(self, entity_id: str, participant_id: str) -> CapacityResult:
        """Remove a participant at their own request."""
        return self._log_result("Leave", self.tracker_for(entity_id).leave(participant_id))

    def remove_participant(self, entity_id: str, participant_id: str) -> CapacityResult:
        """Remove a participant at the organizer's request."""
        tracker = self.tracker_for(entity_id)
        return self._log_result("Remove", tracker.remove_participant(participant_id))

    def set_capacity(self, entity_id: str, new_capacity: int | None) -> CapacityResult:
        """Change an entity's participant limit.

        The stored entity is updated too so listings show the new limit.
        The update runs under the tracker's lock, so concurrent changes
        reach the repository in the order the tracker applied them.
        """

        def update_entity(capacity: int | None) -> None:
            entity = self.repository.get(entity_id)
            if entity is not None and not self.repository.persist([replace(entity, capacity=capacity)]):
                logger.error("Capacity of %s changed but entity was not updated", entity_id)

        tracker = self.tracker_for(entity_id)
        return self._log_result(
            "Set capacity",
            tracker.set_capacity(new_capacity, on_change=update_entity),
        )

    def participants(self, entity_id: str) -> list[Membership]:
        """Current members of an entity, oldest first."""
        return self.tracker_for(entity_id).members()

    def series(self, series_id: str) -> list[ScheduledEntity]:
        """Stored occurrences of a series, soonest first."""
        return self.repository.list_series(series_id)
