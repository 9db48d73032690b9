"""Capacity tracking - participation state for one scheduled entity.

A CapacityTracker owns the member list of one event or playdate and keeps
0 <= participants_count <= capacity at all times. join, leave and
set_capacity are serialized by a per-tracker lock, so concurrent callers
racing for the last spot cannot oversubscribe the entity. Trackers for
different entities share nothing and run in parallel.

With a ParticipationStore attached, each change reloads the stored state
under the lock and is then written with a conditional store operation, so
trackers in different processes sharing one store cannot oversubscribe
either.

Expected failures (full, double join, leave without join) are returned as
CapacityResult values, never raised.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable

from parentconnect.core.entity import normalize_capacity
from parentconnect.core.errors import InvalidInputError

if TYPE_CHECKING:
    from parentconnect.core.interfaces import ParticipationStore


PRIVACY_LEVELS = ("Public", "Friends Only", "Private")

DEFAULT_PRIVACY_LEVEL = "Public"


class CapacityErrorKind(Enum):
    """Why a participation change was refused."""

    FULL = "full"
    ALREADY_JOINED = "already_joined"
    NOT_A_MEMBER = "not_a_member"
    BELOW_CURRENT_OCCUPANCY = "below_current_occupancy"
    STORAGE_FAILED = "storage_failed"


@dataclass(frozen=True)
class Membership:
    """One participant's place in an entity.

    Attributes:
        participant_id: User ID of the participant
        joined_at: When the participant joined
        privacy_level: Who may see this participation
    """
    participant_id: str
    joined_at: datetime
    privacy_level: str = DEFAULT_PRIVACY_LEVEL


@dataclass(frozen=True)
class CapacityResult:
    """Outcome of a join, leave or capacity change.

    Attributes:
        success: Whether the change was applied
        entity_id: Entity the change targeted
        participant_id: Participant involved (None for capacity changes)
        participants_count: Member count after the attempt
        capacity: Capacity after the attempt, None for unlimited
        error: Failure kind (None on success)
        message: Human-readable failure description (None on success)
    """
    success: bool
    entity_id: str
    participant_id: str | None
    participants_count: int
    capacity: int | None
    error: CapacityErrorKind | None = None
    message: str | None = None

    @property
    def spots_remaining(self) -> int | None:
        """Open spots, None when capacity is unlimited."""
        if self.capacity is None:
            return None
        return self.capacity - self.participants_count


@dataclass(frozen=True)
class CapacitySnapshot:
    """Point-in-time view of a tracker.

    Attributes:
        entity_id: Entity the snapshot belongs to
        capacity: Capacity, None for unlimited
        members: Memberships, oldest first
    """
    entity_id: str
    capacity: int | None
    members: tuple[Membership, ...]

    @property
    def participants_count(self) -> int:
        return len(self.members)

    @property
    def spots_remaining(self) -> int | None:
        if self.capacity is None:
            return None
        return self.capacity - len(self.members)

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and len(self.members) >= self.capacity


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CapacityTracker:
    """Keeps one scheduled entity within its participant limit.

    Args:
        entity_id: Entity this tracker owns participation for
        capacity: Maximum participants; None or -1 for unlimited
        members: Existing memberships (e.g., loaded from a store)
        store: Shared participation store; read before and conditionally
            written before each in-memory change
        clock: Source of join timestamps

    Raises:
        InvalidInputError: If members are duplicated or exceed capacity
    """

    def __init__(
        self,
        entity_id: str,
        capacity: int | None = None,
        members: Iterable[Membership] = (),
        store: "ParticipationStore | None" = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.entity_id = entity_id
        self._capacity = normalize_capacity(capacity)
        self._store = store
        self._clock = clock
        self._lock = threading.Lock()
        self._members: dict[str, Membership] = {}

        for membership in members:
            if membership.participant_id in self._members:
                raise InvalidInputError(
                    f"Duplicate member {membership.participant_id} for {entity_id}",
                    field="members",
                )
            self._members[membership.participant_id] = membership

        if self._capacity is not None and len(self._members) > self._capacity:
            raise InvalidInputError(
                f"{len(self._members)} members exceed capacity {self._capacity} for {entity_id}",
                field="capacity",
            )

    @property
    def capacity(self) -> int | None:
        return self._capacity

    @property
    def participants_count(self) -> int:
        return len(self._members)

    @property
    def spots_remaining(self) -> int | None:
        """Open spots, always derived from capacity and member count."""
        return self.snapshot().spots_remaining

    @property
    def is_full(self) -> bool:
        return self.snapshot().is_full

    def is_member(self, participant_id: str) -> bool:
        return participant_id in self._members

    def members(self) -> list[Membership]:
        """Current memberships, oldest first."""
        return list(self.snapshot().members)

    def snapshot(self) -> CapacitySnapshot:
        """Consistent copy of capacity and members."""
        with self._lock:
            return CapacitySnapshot(
                entity_id=self.entity_id,
                capacity=self._capacity,
                members=tuple(self._members.values()),
            )

    def _result(
        self,
        participant_id: str | None,
        error: CapacityErrorKind | None = None,
        message: str | None = None,
    ) -> CapacityResult:
        # Caller holds the lock
        return CapacityResult(
            success=error is None,
            entity_id=self.entity_id,
            participant_id=participant_id,
            participants_count=len(self._members),
            capacity=self._capacity,
            error=error,
            message=message,
        )

    def _refuse(
        self,
        participant_id: str | None,
        error: CapacityErrorKind,
        requested_capacity: int | None = None,
    ) -> CapacityResult:
        # Caller holds the lock
        count = len(self._members)
        if error is CapacityErrorKind.FULL:
            message = f"{self.entity_id} is full: {count}/{self._capacity} spots taken"
        elif error is CapacityErrorKind.ALREADY_JOINED:
            message = f"{participant_id} has already joined {self.entity_id}"
        elif error is CapacityErrorKind.NOT_A_MEMBER:
            message = f"{participant_id} is not a participant of {self.entity_id}"
        elif error is CapacityErrorKind.BELOW_CURRENT_OCCUPANCY:
            message = (
                f"Cannot set capacity of {self.entity_id} to {requested_capacity}: "
                f"{count} participants already joined"
            )
        else:
            message = f"Could not store participation change for {self.entity_id}"
        return self._result(participant_id, error, message)

    def _sync(self) -> None:
        """Reload members and capacity from the store, if there is one.

        Other processes write to the same store, so the in-memory copy
        may be stale; the stored state wins.
        """
        # Caller holds the lock
        if self._store is None:
            return
        self._capacity = self._store.load_capacity(self.entity_id, self._capacity)
        self._members = {
            m.participant_id: m for m in self._store.load_members(self.entity_id)
        }

    def _stored(self, refused: CapacityErrorKind | None) -> bool:
        # Caller holds the lock. A conditional write refused by the store
        # means another process changed the entity; pick up its state.
        if refused is None:
            return True
        if refused is not CapacityErrorKind.STORAGE_FAILED:
            self._sync()
        return False

    def join(
        self,
        participant_id: str,
        privacy_level: str = DEFAULT_PRIVACY_LEVEL,
    ) -> CapacityResult:
        """Add a participant if there is room.

        With a store, the decision is made twice: once against freshly
        loaded state, and again by the store's conditional write, which
        refuses the join if another process took the last spot meanwhile.

        Args:
            participant_id: User joining
            privacy_level: One of PRIVACY_LEVELS

        Returns:
            CapacityResult; fails with ALREADY_JOINED, FULL or STORAGE_FAILED

        Raises:
            InvalidInputError: If privacy_level is unknown
        """
        if privacy_level not in PRIVACY_LEVELS:
            raise InvalidInputError(
                f"Unknown privacy level: {privacy_level!r}",
                field="privacy_level",
            )

        with self._lock:
            self._sync()

            if participant_id in self._members:
                return self._refuse(participant_id, CapacityErrorKind.ALREADY_JOINED)

            if self._capacity is not None and len(self._members) >= self._capacity:
                return self._refuse(participant_id, CapacityErrorKind.FULL)

            membership = Membership(
                participant_id=participant_id,
                joined_at=self._clock(),
                privacy_level=privacy_level,
            )

            if self._store is not None:
                refused = self._store.record_join(self.entity_id, membership, self._capacity)
                if not self._stored(refused):
                    return self._refuse(participant_id, refused)

            self._members[participant_id] = membership
            return self._result(participant_id)

    def leave(self, participant_id: str) -> CapacityResult:
        """Remove a participant.

        Returns:
            CapacityResult; fails with NOT_A_MEMBER or STORAGE_FAILED
        """
        with self._lock:
            self._sync()

            if participant_id not in self._members:
                return self._refuse(participant_id, CapacityErrorKind.NOT_A_MEMBER)

            if self._store is not None:
                refused = self._store.record_leave(self.entity_id, participant_id)
                if not self._stored(refused):
                    return self._refuse(participant_id, refused)

            del self._members[participant_id]
            return self._result(participant_id)

    def remove_participant(self, participant_id: str) -> CapacityResult:
        """Organizer-initiated removal; same rules as leave."""
        return self.leave(participant_id)

    def set_capacity(
        self,
        new_capacity: int | None,
        on_change: Callable[[int | None], None] | None = None,
    ) -> CapacityResult:
        """Change the participant limit.

        Args:
            new_capacity: New limit; None or -1 for unlimited
            on_change: Called with the new limit while the tracker is still
                locked, so follow-up writes are ordered like the changes

        Returns:
            CapacityResult; fails with BELOW_CURRENT_OCCUPANCY or STORAGE_FAILED

        Raises:
            InvalidInputError: If new_capacity is malformed
        """
        capacity = normalize_capacity(new_capacity)

        with self._lock:
            self._sync()

            if capacity is not None and capacity < len(self._members):
                return self._refuse(
                    None,
                    CapacityErrorKind.BELOW_CURRENT_OCCUPANCY,
                    requested_capacity=capacity,
                )

            if self._store is not None:
                refused = self._store.record_capacity(self.entity_id, capacity)
                if not self._stored(refused):
                    return self._refuse(None, refused, requested_capacity=capacity)

            self._capacity = capacity
            if on_change is not None:
                on_change(capacity)
            return self._result(None)
