"""Firestore stores - Imperative Shell.

This module persists scheduled entities and membership records in
Google Cloud Firestore.

Collections:
    <entities_collection>/<entity_id>       one document per occurrence
    <participation_collection>/<entity_id>  {"members": {...}, "capacity": N}

All I/O is contained here; filtering and capacity rules are in the core.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from parentconnect.core.capacity import DEFAULT_PRIVACY_LEVEL, CapacityErrorKind, Membership
from parentconnect.core.entity import (
    UNLIMITED_CAPACITY,
    ScheduledEntity,
    entity_from_dict,
    entity_to_dict,
    normalize_capacity,
    parse_timestamp,
)
from parentconnect.core.errors import InvalidInputError
from parentconnect.core.interfaces import ParticipationStore, Repository


logger = logging.getLogger(__name__)


# Firestore rejects batches larger than this
MAX_BATCH_WRITES = 500


@dataclass
class FirestoreConfig:
    """Configuration for Firestore stores.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        entities_collection: Collection holding scheduled entities
        participation_collection: Collection holding membership documents
    """
    project_id: str | None = None
    database: str | None = None
    entities_collection: str = "scheduled_entities"
    participation_collection: str = "participation"


class _FirestoreBase:
    """Lazy Firestore client shared by both stores."""

    def __init__(
        self,
        config: FirestoreConfig | None = None,
        client: firestore.Client | None = None,
    ) -> None:
        self.config = config or FirestoreConfig()
        self._client = client

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client


class FirestoreRepository(_FirestoreBase, Repository):
    """Scheduled entities stored one document per occurrence."""

    def _collection(self) -> Any:
        return self.client.collection(self.config.entities_collection)

    def _parse_documents(self, docs: Iterable[Any]) -> list[ScheduledEntity]:
        entities = []
        for doc in docs:
            data = doc.to_dict() or {}
            data.setdefault("id", doc.id)
            try:
                entities.append(entity_from_dict(data))
            except InvalidInputError as e:
                logger.warning("Skipping malformed entity %s: %s", doc.id, e.message)
        return entities

    def list_candidates(self) -> list[ScheduledEntity]:
        """Fetch every stored entity.

        This method performs database I/O.

        Returns:
            Entities, or an empty list if Firestore is unavailable
        """
        logger.info("Fetching candidates from Firestore")

        try:
            entities = self._parse_documents(self._collection().stream())
        except Exception as e:
            logger.error("Failed to fetch candidates: %s", str(e))
            return []

        logger.info("Fetched %d candidates from Firestore", len(entities))
        return entities

    def persist(self, entities: Iterable[ScheduledEntity]) -> bool:
        """Write entities in a single batch so a series is stored whole.

        This method performs database I/O.

        Returns:
            True if the batch committed
        """
        batch_entities = list(entities)
        if not batch_entities:
            return True

        if len(batch_entities) > MAX_BATCH_WRITES:
            logger.error(
                "Cannot persist %d entities atomically (limit %d)",
                len(batch_entities),
                MAX_BATCH_WRITES,
            )
            return False

        logger.info("Persisting %d entities to Firestore", len(batch_entities))

        try:
            batch = self.client.batch()
            for entity in batch_entities:
                batch.set(self._collection().document(entity.id), entity_to_dict(entity))
            batch.commit()

            logger.info("Successfully persisted entities")
            return True

        except Exception as e:
            logger.error("Failed to persist entities: %s", str(e))
            return False

    def get(self, entity_id: str) -> ScheduledEntity | None:
        """Fetch one entity; raises if Firestore is unavailable."""
        doc = self._collection().document(entity_id).get()
        if not doc.exists:
            return None
        entities = self._parse_documents([doc])
        return entities[0] if entities else None

    def list_series(self, series_id: str) -> list[ScheduledEntity]:
        """Fetch every stored occurrence of a series, soonest first."""
        try:
            docs = self._collection().where(
                filter=FieldFilter("series_id", "==", series_id)
            ).stream()
            entities = self._parse_documents(docs)
        except Exception as e:
            logger.error("Failed to fetch series %s: %s", series_id, str(e))
            return []

        return sorted(entities, key=lambda e: e.occurs_at)

    def delete(self, entity_id: str) -> bool:
        """Delete one occurrence; siblings in its series are kept."""
        try:
            self._collection().document(entity_id).delete()
            logger.info("Deleted entity %s", entity_id)
            return True
        except Exception as e:
            logger.error("Failed to delete entity %s: %s", entity_id, str(e))
            return False


class FirestoreParticipationStore(_FirestoreBase, ParticipationStore):
    """Membership records stored as a map in one document per entity.

    Document structure:
    {
        "members": {
            "<participant_id>": {"joined_at": <timestamp>, "privacy_level": "Public"},
            ...
        },
        "capacity": 10,
        "updated_at": <timestamp>
    }
    """

    def _doc_ref(self, entity_id: str) -> Any:
        return (
            self.client
            .collection(self.config.participation_collection)
            .document(entity_id)
        )

    def _read(self, entity_id: str) -> dict[str, Any] | None:
        doc = self._doc_ref(entity_id).get()
        if not doc.exists:
            return None
        return doc.to_dict() or {}

    def load_members(self, entity_id: str) -> list[Membership]:
        """Fetch members of an entity, oldest first.

        Errors propagate: an empty list here would let a full entity
        accept more participants.
        """
        data = self._read(entity_id)
        if data is None:
            return []

        members = [
            Membership(
                participant_id=participant_id,
                joined_at=parse_timestamp(record.get("joined_at"), field="joined_at"),
                privacy_level=record.get("privacy_level", DEFAULT_PRIVACY_LEVEL),
            )
            for participant_id, record in (data.get("members") or {}).items()
        ]

        logger.debug("Loaded %d members for %s", len(members), entity_id)
        return sorted(members, key=lambda m: m.joined_at)

    def load_capacity(self, entity_id: str, default: int | None) -> int | None:
        data = self._read(entity_id)
        if data is None or "capacity" not in data:
            return default
        return normalize_capacity(data["capacity"])

    def _transact(
        self,
        entity_id: str,
        action: str,
        apply: Callable[[Any, Any, dict[str, Any]], CapacityErrorKind | None],
    ) -> CapacityErrorKind | None:
        """Run a read-check-write on the entity's document in a transaction.

        Firestore retries the function if the document changes between the
        read and the commit, so apply always decides on current data.

        Args:
            entity_id: Entity whose participation document is changed
            action: Description used in logs
            apply: Called with (transaction, doc_ref, data); returns None
                after staging its write, or the refusal kind

        Returns:
            None if committed, the refusal kind, or STORAGE_FAILED on error
        """
        doc_ref = self._doc_ref(entity_id)

        @firestore.transactional
        def run(transaction: Any) -> CapacityErrorKind | None:
            snapshot = doc_ref.get(transaction=transaction)
            data = (snapshot.to_dict() or {}) if snapshot.exists else {}
            return apply(transaction, doc_ref, data)

        try:
            refused = run(self.client.transaction())
        except Exception as e:
            logger.error("Failed to record %s for %s: %s", action, entity_id, str(e))
            return CapacityErrorKind.STORAGE_FAILED

        if refused is not None:
            logger.info("Store refused %s for %s: %s", action, entity_id, refused.value)
        return refused

    def record_join(
        self,
        entity_id: str,
        membership: Membership,
        capacity: int | None,
    ) -> CapacityErrorKind | None:
        def apply(transaction: Any, doc_ref: Any, data: dict[str, Any]) -> CapacityErrorKind | None:
            members = data.get("members") or {}
            if membership.participant_id in members:
                return CapacityErrorKind.ALREADY_JOINED

            limit = normalize_capacity(data["capacity"]) if "capacity" in data else capacity
            if limit is not None and len(members) >= limit:
                return CapacityErrorKind.FULL

            transaction.set(
                doc_ref,
                {
                    "members": {
                        membership.participant_id: {
                            "joined_at": membership.joined_at,
                            "privacy_level": membership.privacy_level,
                        },
                    },
                    "updated_at": datetime.now(timezone.utc),
                },
                merge=True,
            )
            return None

        return self._transact(entity_id, f"join of {membership.participant_id}", apply)

    def record_leave(self, entity_id: str, participant_id: str) -> CapacityErrorKind | None:
        def apply(transaction: Any, doc_ref: Any, data: dict[str, Any]) -> CapacityErrorKind | None:
            if participant_id not in (data.get("members") or {}):
                return CapacityErrorKind.NOT_A_MEMBER

            transaction.update(doc_ref, {
                firestore.Client.field_path("members", participant_id): firestore.DELETE_FIELD,
                "updated_at": datetime.now(timezone.utc),
            })
            return None

        return self._transact(entity_id, f"leave of {participant_id}", apply)

    def record_capacity(self, entity_id: str, capacity: int | None) -> CapacityErrorKind | None:
        def apply(transaction: Any, doc_ref: Any, data: dict[str, Any]) -> CapacityErrorKind | None:
            if capacity is not None and len(data.get("members") or {}) > capacity:
                return CapacityErrorKind.BELOW_CURRENT_OCCUPANCY

            transaction.set(
                doc_ref,
                {
                    "capacity": UNLIMITED_CAPACITY if capacity is None else capacity,
                    "updated_at": datetime.now(timezone.utc),
                },
                merge=True,
            )
            return None

        return self._transact(entity_id, "capacity change", apply)
