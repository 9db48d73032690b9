"""Tests for the Firestore stores.

Uses a mocked Firestore client; no network access.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, Mock, patch

import pytest

from parentconnect.core.capacity import CapacityErrorKind, Membership
from parentconnect.core.entity import entity_to_dict
from parentconnect.shell.firestore_store import (
    MAX_BATCH_WRITES,
    FirestoreConfig,
    FirestoreParticipationStore,
    FirestoreRepository,
)


def make_doc(doc_id, data, exists=True):
    doc = Mock()
    doc.id = doc_id
    doc.exists = exists
    doc.to_dict.return_value = data
    return doc


@pytest.fixture
def mock_client():
    """Create a mocked Firestore client."""
    return MagicMock()


@pytest.fixture
def config():
    return FirestoreConfig(
        project_id="parents-test",
        entities_collection="events",
        participation_collection="attendees",
    )


class TestClientInitialization:
    """Tests for lazy client creation."""

    def test_injected_client_used(self, mock_client, config):
        repo = FirestoreRepository(config, client=mock_client)
        assert repo.client is mock_client

    def test_lazy_client_uses_config(self, config):
        config.database = "events-db"
        with patch("parentconnect.shell.firestore_store.firestore.Client") as client_cls:
            repo = FirestoreRepository(config)
            client = repo.client
            assert repo.client is client

        client_cls.assert_called_once_with(project="parents-test", database="events-db")


class TestFirestoreRepository:
    """Tests for FirestoreRepository."""

    def test_list_candidates(self, mock_client, config, sample_entity):
        collection = mock_client.collection.return_value
        collection.stream.return_value = [make_doc("evt-1", entity_to_dict(sample_entity))]

        repo = FirestoreRepository(config, client=mock_client)

        assert repo.list_candidates() == [sample_entity]
        mock_client.collection.assert_called_with("events")

    def test_malformed_documents_skipped(self, mock_client, config, sample_entity):
        collection = mock_client.collection.return_value
        collection.stream.return_value = [
            make_doc("bad", {"title": "No time or place"}),
            make_doc("evt-1", entity_to_dict(sample_entity)),
        ]

        repo = FirestoreRepository(config, client=mock_client)

        assert [e.id for e in repo.list_candidates()] == ["evt-1"]

    def test_document_id_used_when_field_missing(self, mock_client, config, sample_entity):
        data = entity_to_dict(sample_entity)
        del data["id"]
        mock_client.collection.return_value.stream.return_value = [make_doc("evt-1", data)]

        repo = FirestoreRepository(config, client=mock_client)

        assert repo.list_candidates()[0].id == "evt-1"

    def test_list_candidates_error_returns_empty(self, mock_client, config):
        mock_client.collection.return_value.stream.side_effect = Exception("unavailable")

        repo = FirestoreRepository(config, client=mock_client)

        assert repo.list_candidates() == []

    def test_persist_writes_one_batch(self, mock_client, config, sample_entity):
        batch = mock_client.batch.return_value
        entities = [sample_entity, replace(sample_entity, id="evt-2")]

        repo = FirestoreRepository(config, client=mock_client)

        assert repo.persist(entities) is True
        assert batch.set.call_count == 2
        batch.commit.assert_called_once()

    def test_persist_commit_failure(self, mock_client, config, sample_entity):
        mock_client.batch.return_value.commit.side_effect = Exception("aborted")

        repo = FirestoreRepository(config, client=mock_client)

        assert repo.persist([sample_entity]) is False

    def test_persist_over_batch_limit(self, mock_client, config, sample_entity):
        entities = [replace(sample_entity, id=f"evt-{i}") for i in range(MAX_BATCH_WRITES + 1)]

        repo = FirestoreRepository(config, client=mock_client)

        assert repo.persist(entities) is False
        mock_client.batch.assert_not_called()

    def test_persist_empty(self, mock_client, config):
        repo = FirestoreRepository(config, client=mock_client)

        assert repo.persist([]) is True
        mock_client.batch.assert_not_called()

    def test_get(self, mock_client, config, sample_entity):
        document = mock_client.collection.return_value.document
        document.return_value.get.return_value = make_doc("evt-1", entity_to_dict(sample_entity))

        repo = FirestoreRepository(config, client=mock_client)

        assert repo.get("evt-1") == sample_entity
        document.assert_called_with("evt-1")

    def test_get_missing(self, mock_client, config):
        document = mock_client.collection.return_value.document
        document.return_value.get.return_value = make_doc("nope", None, exists=False)

        repo = FirestoreRepository(config, client=mock_client)

        assert repo.get("nope") is None

    def test_list_series_sorted(self, mock_client, config, sample_entity):
        first = replace(sample_entity, series_id="s1")
        second = replace(sample_entity, id="evt-2", series_id="s1",
                         occurs_at=sample_entity.occurs_at + timedelta(days=7))
        query = mock_client.collection.return_value.where.return_value
        query.stream.return_value = [
            make_doc("evt-2", entity_to_dict(second)),
            make_doc("evt-1", entity_to_dict(first)),
        ]

        repo = FirestoreRepository(config, client=mock_client)

        assert [e.id for e in repo.list_series("s1")] == ["evt-1", "evt-2"]

    def test_delete(self, mock_client, config):
        repo = FirestoreRepository(config, client=mock_client)

        assert repo.delete("evt-1") is True
        mock_client.collection.return_value.document.return_value.delete.assert_called_once()

    def test_delete_failure(self, mock_client, config):
        mock_client.collection.return_value.document.return_value.delete.side_effect = Exception("x")

        repo = FirestoreRepository(config, client=mock_client)

        assert repo.delete("evt-1") is False


class TestFirestoreParticipationStore:
    """Tests for FirestoreParticipationStore."""

    def _doc_ref(self, mock_client):
        return mock_client.collection.return_value.document.return_value

    def test_load_members_sorted_by_join_time(self, mock_client, config):
        early = datetime(2024, 2, 1, tzinfo=timezone.utc)
        late = early + timedelta(hours=1)
        self._doc_ref(mock_client).get.return_value = make_doc("evt-1", {
            "members": {
                "p2": {"joined_at": late, "privacy_level": "Private"},
                "p1": {"joined_at": early},
            },
        })

        store = FirestoreParticipationStore(config, client=mock_client)
        members = store.load_members("evt-1")

        assert members == [
            Membership("p1", early, "Public"),
            Membership("p2", late, "Private"),
        ]
        mock_client.collection.assert_called_with("attendees")

    def test_load_members_no_document(self, mock_client, config):
        self._doc_ref(mock_client).get.return_value = make_doc("evt-1", None, exists=False)

        store = FirestoreParticipationStore(config, client=mock_client)

        assert store.load_members("evt-1") == []

    def test_load_members_error_propagates(self, mock_client, config):
        """Failure to read members must not look like an empty entity."""
        self._doc_ref(mock_client).get.side_effect = Exception("unavailable")

        store = FirestoreParticipationStore(config, client=mock_client)

        with pytest.raises(Exception, match="unavailable"):
            store.load_members("evt-1")

    def test_load_capacity(self, mock_client, config):
        doc_ref = self._doc_ref(mock_client)
        store = FirestoreParticipationStore(config, client=mock_client)

        doc_ref.get.return_value = make_doc("evt-1", {"members": {}})
        assert store.load_capacity("evt-1", 4) == 4

        doc_ref.get.return_value = make_doc("evt-1", {"capacity": 9})
        assert store.load_capacity("evt-1", 4) == 9

        doc_ref.get.return_value = make_doc("evt-1", {"capacity": -1})
        assert store.load_capacity("evt-1", 4) is None

    @pytest.fixture
    def run_inline(self):
        """Run transactional functions once, without Firestore's retry loop."""
        with patch(
            "parentconnect.shell.firestore_store.firestore.transactional",
            side_effect=lambda func: func,
        ):
            yield

    def _stored(self, mock_client, data):
        self._doc_ref(mock_client).get.return_value = make_doc("evt-1", data, exists=data is not None)
        return mock_client.transaction.return_value

    def test_record_join_merges(self, mock_client, config, run_inline):
        joined = datetime(2024, 2, 1, tzinfo=timezone.utc)
        transaction = self._stored(mock_client, None)
        store = FirestoreParticipationStore(config, client=mock_client)

        assert store.record_join("evt-1", Membership("p1", joined, "Friends Only"), 3) is None

        args, kwargs = transaction.set.call_args
        assert args[0] is self._doc_ref(mock_client)
        assert args[1]["members"] == {"p1": {"joined_at": joined, "privacy_level": "Friends Only"}}
        assert kwargs == {"merge": True}
        self._doc_ref(mock_client).get.assert_called_with(transaction=transaction)

    def test_record_join_full(self, mock_client, config, run_inline):
        """The capacity check runs against the document read in the transaction."""
        joined = datetime(2024, 2, 1, tzinfo=timezone.utc)
        transaction = self._stored(mock_client, {"members": {"p0": {"joined_at": joined}}})
        store = FirestoreParticipationStore(config, client=mock_client)

        assert store.record_join("evt-1", Membership("p1", joined), 1) is CapacityErrorKind.FULL
        transaction.set.assert_not_called()

    def test_record_join_uses_stored_capacity(self, mock_client, config, run_inline):
        joined = datetime(2024, 2, 1, tzinfo=timezone.utc)
        self._stored(mock_client, {"members": {"p0": {"joined_at": joined}}, "capacity": 1})
        store = FirestoreParticipationStore(config, client=mock_client)

        assert store.record_join("evt-1", Membership("p1", joined), 10) is CapacityErrorKind.FULL

    def test_record_join_already_joined(self, mock_client, config, run_inline):
        joined = datetime(2024, 2, 1, tzinfo=timezone.utc)
        self._stored(mock_client, {"members": {"p1": {"joined_at": joined}}})
        store = FirestoreParticipationStore(config, client=mock_client)

        result = store.record_join("evt-1", Membership("p1", joined), None)

        assert result is CapacityErrorKind.ALREADY_JOINED

    def test_record_join_failure(self, mock_client, config, run_inline):
        self._doc_ref(mock_client).get.side_effect = Exception("deadline exceeded")
        store = FirestoreParticipationStore(config, client=mock_client)

        joined = datetime(2024, 2, 1, tzinfo=timezone.utc)
        result = store.record_join("evt-1", Membership("p1", joined), None)

        assert result is CapacityErrorKind.STORAGE_FAILED

    def test_record_leave_deletes_member_field(self, mock_client, config, run_inline):
        joined = datetime(2024, 2, 1, tzinfo=timezone.utc)
        transaction = self._stored(mock_client, {"members": {"p1": {"joined_at": joined}}})
        store = FirestoreParticipationStore(config, client=mock_client)

        assert store.record_leave("evt-1", "p1") is None

        update = transaction.update.call_args[0][1]
        assert "members.p1" in update

    def test_record_leave_not_a_member(self, mock_client, config, run_inline):
        transaction = self._stored(mock_client, {"members": {}})
        store = FirestoreParticipationStore(config, client=mock_client)

        assert store.record_leave("evt-1", "p1") is CapacityErrorKind.NOT_A_MEMBER
        transaction.update.assert_not_called()

    def test_record_capacity_unlimited_sentinel(self, mock_client, config, run_inline):
        transaction = self._stored(mock_client, None)
        store = FirestoreParticipationStore(config, client=mock_client)

        assert store.record_capacity("evt-1", None) is None

        args, _ = transaction.set.call_args
        assert args[1]["capacity"] == -1

    def test_record_capacity_below_members(self, mock_client, config, run_inline):
        joined = datetime(2024, 2, 1, tzinfo=timezone.utc)
        transaction = self._stored(mock_client, {"members": {
            "p1": {"joined_at": joined},
            "p2": {"joined_at": joined},
        }})
        store = FirestoreParticipationStore(config, client=mock_client)

        assert store.record_capacity("evt-1", 1) is CapacityErrorKind.BELOW_CURRENT_OCCUPANCY
        transaction.set.assert_not_called()
