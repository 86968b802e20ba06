"""
Unit tests for the Relation Toggle Engine (engine.toggle).

Tests cover:
- Toggle involution for likes and subscriptions
- Discriminant validation
- Race resolution (duplicate create, vanished delete)
- Bounded retries and CONFLICT on exhaustion
- Store failure mapping
- Integrity failures other than unique violations
- Races against the SQL store
"""

import uuid
from unittest.mock import MagicMock

import pytest

from db.session import build_session_factory
from engine.result import EngineError, ErrorKind
from engine.toggle import RelationToggleEngine, ToggleState, resolve_target_kind
from store.base import Collection, DuplicateRecordError, Filter, RelationKind, StoreError, TargetKind
from store.sql_store import SqlContentStore


def _relations(store, **conditions):
    filter = Filter()
    for name, value in conditions.items():
        filter = filter.eq(name, value)
    return store.find(Collection.RELATIONS, filter)


# =============================================================================
# Involution Tests
# =============================================================================

class TestToggleInvolution:
    """Two toggles restore the original state."""

    def test_like_then_unlike(self, store, bob, v1):
        engine = RelationToggleEngine(store)

        first = engine.toggle_relation(RelationKind.LIKE, bob["id"], v1["id"], TargetKind.VIDEO)
        assert first.success
        assert first.value.state == ToggleState.ADDED
        assert first.value.record["actor_id"] == bob["id"]
        assert len(_relations(store, target_id=v1["id"])) == 1

        second = engine.toggle_relation(RelationKind.LIKE, bob["id"], v1["id"], TargetKind.VIDEO)
        assert second.success
        assert second.value.state == ToggleState.REMOVED
        assert second.value.record["id"] == first.value.record["id"]
        assert _relations(store, target_id=v1["id"]) == []

    def test_subscription_infers_channel_target(self, store, alice, bob):
        engine = RelationToggleEngine(store)

        result = engine.toggle_relation(RelationKind.SUBSCRIPTION, bob["id"], alice["id"])

        assert result.success
        assert result.value.record["target_kind"] == TargetKind.CHANNEL
        assert result.value.record["kind"] == RelationKind.SUBSCRIPTION

    def test_string_ids_are_normalised(self, store, bob, v1):
        engine = RelationToggleEngine(store)

        engine.toggle_relation(RelationKind.LIKE, str(bob["id"]).upper(), str(v1["id"]), TargetKind.VIDEO)
        result = engine.toggle_relation(RelationKind.LIKE, bob["id"], v1["id"], TargetKind.VIDEO)

        assert result.value.state == ToggleState.REMOVED

    def test_likes_are_independent_per_target_kind(self, store, bob, v1):
        engine = RelationToggleEngine(store)
        engine.toggle_relation(RelationKind.LIKE, bob["id"], v1["id"], TargetKind.VIDEO)

        # Same raw id, different target kind: a separate relation
        result = engine.toggle_relation(RelationKind.LIKE, bob["id"], v1["id"], TargetKind.TWEET)

        assert result.value.state == ToggleState.ADDED
        assert len(_relations(store, actor_id=bob["id"])) == 2

    def test_store_rejects_duplicate_relation(self, store, bob, v1):
        fields = {
            "kind": RelationKind.LIKE,
            "actor_id": bob["id"],
            "target_kind": TargetKind.VIDEO,
            "target_id": v1["id"],
        }
        store.create_one(Collection.RELATIONS, fields)
        with pytest.raises(DuplicateRecordError):
            store.create_one(Collection.RELATIONS, fields)


# =============================================================================
# Validation Tests
# =============================================================================

class TestToggleValidation:

    def test_invalid_actor_id(self, store, v1):
        result = RelationToggleEngine(store).toggle_relation(
            RelationKind.LIKE, "not-a-uuid", v1["id"], TargetKind.VIDEO)
        assert not result.success
        assert result.error == ErrorKind.INVALID_IDENTIFIER

    def test_invalid_target_id(self, store, bob):
        result = RelationToggleEngine(store).toggle_relation(
            RelationKind.LIKE, bob["id"], "v1", TargetKind.VIDEO)
        assert result.error == ErrorKind.INVALID_IDENTIFIER
        assert result.message == "Invalid video id"

    def test_like_requires_target_kind(self):
        with pytest.raises(EngineError) as exc_info:
            resolve_target_kind(RelationKind.LIKE, None)
        assert exc_info.value.kind == ErrorKind.VALIDATION_FAILURE

    def test_subscription_cannot_target_content(self):
        with pytest.raises(EngineError) as exc_info:
            resolve_target_kind(RelationKind.SUBSCRIPTION, TargetKind.VIDEO)
        assert exc_info.value.kind == ErrorKind.VALIDATION_FAILURE

    def test_like_cannot_target_channel(self, store, alice, bob):
        result = RelationToggleEngine(store).toggle_relation(
            RelationKind.LIKE, bob["id"], alice["id"], TargetKind.CHANNEL)
        assert result.error == ErrorKind.VALIDATION_FAILURE

    def test_unknown_kind_strings(self):
        with pytest.raises(EngineError):
            resolve_target_kind("follow", None)
        with pytest.raises(EngineError):
            resolve_target_kind(RelationKind.LIKE, "playlist")


# =============================================================================
# Race Resolution Tests
# =============================================================================

@pytest.fixture
def ids():
    return uuid.uuid4(), uuid.uuid4()


@pytest.fixture
def existing(ids):
    actor, target = ids
    return {
        "id": uuid.uuid4(),
        "kind": RelationKind.LIKE,
        "actor_id": actor,
        "target_kind": TargetKind.VIDEO,
        "target_id": target,
    }


class TestToggleConflicts:
    """Concurrent writers on the same pair resolve without surfacing the race."""

    def test_duplicate_create_retries_as_delete(self, ids, existing):
        store = MagicMock()
        store.find_one.side_effect = [None, existing]
        store.create_one.side_effect = DuplicateRecordError("duplicate")
        store.delete_one.return_value = existing

        result = RelationToggleEngine(store).toggle_relation(RelationKind.LIKE, *ids, TargetKind.VIDEO)

        assert result.success
        assert result.value.state == ToggleState.REMOVED
        store.delete_one.assert_called_once_with(Collection.RELATIONS, existing["id"])

    def test_vanished_delete_retries_as_create(self, ids, existing):
        store = MagicMock()
        store.find_one.return_value = existing
        store.delete_one.return_value = None
        store.create_one.return_value = existing

        result = RelationToggleEngine(store).toggle_relation(RelationKind.LIKE, *ids, TargetKind.VIDEO)

        assert result.success
        assert result.value.state == ToggleState.ADDED
        assert store.create_one.call_count == 1

    def test_exhausted_attempts_return_conflict(self, ids):
        store = MagicMock()
        store.find_one.return_value = None
        store.create_one.side_effect = DuplicateRecordError("duplicate")

        result = RelationToggleEngine(store, max_attempts=3).toggle_relation(
            RelationKind.LIKE, *ids, TargetKind.VIDEO)

        assert not result.success
        assert result.error == ErrorKind.CONFLICT
        assert store.create_one.call_count == 3

    def test_max_attempts_is_at_least_one(self, ids):
        store = MagicMock()
        store.find_one.return_value = None
        store.create_one.side_effect = DuplicateRecordError("duplicate")

        result = RelationToggleEngine(store, max_attempts=0).toggle_relation(
            RelationKind.LIKE, *ids, TargetKind.VIDEO)

        assert result.error == ErrorKind.CONFLICT
        assert store.create_one.call_count == 1

    def test_store_failure_is_not_retried(self, ids):
        store = MagicMock()
        store.find_one.side_effect = StoreError("connection lost")

        result = RelationToggleEngine(store).toggle_relation(RelationKind.LIKE, *ids, TargetKind.VIDEO)

        assert result.error == ErrorKind.STORE_FAILURE
        assert store.find_one.call_count == 1
        store.create_one.assert_not_called()


# =============================================================================
# SQL Store Races
# =============================================================================

class CountingStore(SqlContentStore):

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.creates = 0

    def create_one(self, collection, fields):
        self.creates += 1
        return super().create_one(collection, fields)


class CreateRaceStore(SqlContentStore):
    """Another writer inserts the same relation just before our insert."""

    raced = False

    def create_one(self, collection, fields):
        if collection == Collection.RELATIONS and not self.raced:
            self.raced = True
            super().create_one(collection, dict(fields))
        return super().create_one(collection, fields)


class DeleteRaceStore(SqlContentStore):
    """Another writer deletes the relation just before our delete."""

    raced = False

    def delete_one(self, collection, record_id):
        if collection == Collection.RELATIONS and not self.raced:
            self.raced = True
            super().delete_one(collection, record_id)
        return super().delete_one(collection, record_id)


class TestStoreRaces:
    """The same races as above, resolved against a real database."""

    def test_concurrent_insert_resolves_to_removed(self, engine, bob, v1):
        store = CreateRaceStore(build_session_factory(engine))

        result = RelationToggleEngine(store).toggle_relation(
            RelationKind.LIKE, bob["id"], v1["id"], TargetKind.VIDEO)

        assert result.success
        assert result.value.state == ToggleState.REMOVED
        assert _relations(store, actor_id=bob["id"]) == []

    def test_concurrent_delete_resolves_to_added(self, engine, store, bob, v1):
        RelationToggleEngine(store).toggle_relation(RelationKind.LIKE, bob["id"], v1["id"], TargetKind.VIDEO)
        racing = DeleteRaceStore(build_session_factory(engine))

        result = RelationToggleEngine(racing).toggle_relation(
            RelationKind.LIKE, bob["id"], v1["id"], TargetKind.VIDEO)

        assert result.success
        assert result.value.state == ToggleState.ADDED
        assert len(_relations(store, actor_id=bob["id"])) == 1


# =============================================================================
# Integrity Failure Tests
# =============================================================================

class TestIntegrityFailures:
    """Only unique violations count as a lost race."""

    def test_sqlite_enforces_foreign_keys(self, engine):
        with engine.connect() as connection:
            assert connection.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

    def test_unknown_actor_is_store_error_not_duplicate(self, store, v1):
        with pytest.raises(StoreError) as exc_info:
            store.create_one(Collection.RELATIONS, {
                "kind": RelationKind.LIKE,
                "actor_id": uuid.uuid4(),
                "target_kind": TargetKind.VIDEO,
                "target_id": v1["id"],
            })
        assert not isinstance(exc_info.value, DuplicateRecordError)

    def test_missing_column_is_store_error_not_duplicate(self, store, bob):
        with pytest.raises(StoreError) as exc_info:
            store.create_one(Collection.RELATIONS, {
                "kind": RelationKind.LIKE,
                "actor_id": bob["id"],
                "target_kind": TargetKind.VIDEO,
            })
        assert not isinstance(exc_info.value, DuplicateRecordError)

    def test_toggle_for_unknown_actor_is_store_failure(self, store):
        result = RelationToggleEngine(store).toggle_relation(
            RelationKind.LIKE, uuid.uuid4(), uuid.uuid4(), TargetKind.VIDEO)

        assert result.error == ErrorKind.STORE_FAILURE
        assert store.find(Collection.RELATIONS) == []

    def test_unknown_actor_is_not_retried(self, engine, v1):
        store = CountingStore(build_session_factory(engine))

        RelationToggleEngine(store, max_attempts=3).toggle_relation(
            RelationKind.LIKE, uuid.uuid4(), v1["id"], TargetKind.VIDEO)

        assert store.creates == 1


