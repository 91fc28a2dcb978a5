"""
Tests for trainer-client assignments.
"""
import logging

import pytest

from access import AssignmentError, DataIntegrityError, StoreError, Unauthorized
from access import RelationshipDirectory
from conftest import ADMIN, TRAINER_1, TRAINER_2, WORKOUTS, FailingStore


class TestAssignments:
    """Assigning and removing clients."""

    def test_assign_and_lookup(self, relationships):
        """An assignment is visible from both sides."""
        relationships.assign_client_to_trainer("c1", "t1")

        assert relationships.is_assigned("t1", "c1")
        assert relationships.get_client_ids_for_trainer("t1") == ["c1"]
        assert [row["trainerId"] for row in relationships.get_trainers_for_client("c1")] == ["t1"]

    def test_assign_is_idempotent(self, relationships, store):
        """Assigning twice keeps one active row."""
        first = relationships.assign_client_to_trainer("c1", "t1")
        second = relationships.assign_client_to_trainer("c1", "t1")

        assert first["_id"] == second["_id"]
        assert len(store.get_all(RelationshipDirectory.COLLECTION)) == 1

    def test_assign_requires_ids(self, relationships):
        """Assignments without both ids are integrity violations."""
        with pytest.raises(DataIntegrityError):
            relationships.assign_client_to_trainer("c1", "")

    def test_not_assigned(self, relationships):
        """Unrelated and empty ids are never assigned."""
        relationships.assign_client_to_trainer("c1", "t1")
        assert not relationships.is_assigned("t1", "c2")
        assert not relationships.is_assigned("t2", "c1")
        assert not relationships.is_assigned("", "c1")
        assert not relationships.is_assigned("t1", "")

    def test_remove_assignment_keeps_history(self, relationships, store):
        """Removal deactivates the row instead of deleting it."""
        relationships.assign_client_to_trainer("c1", "t1")
        assert relationships.remove_assignment("c1", "t1") == 1

        assert not relationships.is_assigned("t1", "c1")
        rows = store.get_all(RelationshipDirectory.COLLECTION)
        assert [row["status"] for row in rows] == ["inactive"]

    def test_remove_missing_assignment(self, relationships):
        """Removing a non-existent assignment is a no-op."""
        assert relationships.remove_assignment("c1", "t1") == 0

    def test_store_failure_propagates(self, db):
        """A failed lookup is an error, not 'not assigned'."""
        with pytest.raises(StoreError):
            RelationshipDirectory(FailingStore(db)).is_assigned("t1", "c1")

    def test_assign_warns_about_other_trainer(self, relationships, caplog):
        """A second active trainer is allowed but logged."""
        relationships.assign_client_to_trainer("c1", "t1")
        with caplog.at_level(logging.WARNING, logger="access.relationships"):
            relationships.assign_client_to_trainer("c1", "t2")

        assert "already has active trainer(s) t1" in caplog.text
        assert relationships.is_assigned("t1", "c1")
        assert relationships.is_assigned("t2", "c1")

    def test_racing_assign_keeps_one_active_row(self, relationships, store, monkeypatch):
        """Two assigns that both miss the pre-check still store one row."""
        monkeypatch.setattr(relationships, "_active", lambda **filters: [])
        first = relationships.assign_client_to_trainer("c1", "t1")
        second = relationships.assign_client_to_trainer("c1", "t1")

        assert first["_id"] == second["_id"]
        assert len(store.get_all(RelationshipDirectory.COLLECTION)) == 1

    def test_assign_again_after_removal(self, relationships, store):
        """A removed pair can be assigned again; the old row stays."""
        relationships.assign_client_to_trainer("c1", "t1")
        relationships.remove_assignment("c1", "t1")
        row = relationships.assign_client_to_trainer("c1", "t1")

        assert row["status"] == "active"
        assert relationships.is_assigned("t1", "c1")
        rows = store.get_all(RelationshipDirectory.COLLECTION)
        assert sorted(r["status"] for r in rows) == ["active", "inactive"]

    def test_assign_after_direct_deactivation(self, relationships, store):
        """A row deactivated outside the directory does not block a new assign."""
        old = relationships.assign_client_to_trainer("c1", "t1")
        store.update(RelationshipDirectory.COLLECTION, old["_id"], {"status": "inactive"})

        row = relationships.assign_client_to_trainer("c1", "t1")

        assert row["_id"] != old["_id"]
        assert row["status"] == "active"
        assert len(store.get_all(RelationshipDirectory.COLLECTION)) == 2


class TestReassignment:
    """Moving a client between trainers."""

    def test_reassign_moves_access(self, relationships, store):
        """The new trainer is assigned and the old one is not."""
        relationships.assign_client_to_trainer("c1", "t1")
        row = relationships.reassign("c1", "t1", "t2")

        assert row["trainerId"] == "t2"
        assert "t1" in row["notes"]
        assert relationships.is_assigned("t2", "c1")
        assert not relationships.is_assigned("t1", "c1")
        assert len(store.get_all(RelationshipDirectory.COLLECTION)) == 2

    def test_reassign_unassigned_client(self, relationships):
        """The client must be assigned to the source trainer."""
        relationships.assign_client_to_trainer("c1", "t1")
        with pytest.raises(AssignmentError):
            relationships.reassign("c1", "t2", "t1")

    def test_reassign_requires_target(self, relationships):
        """A missing target leaves the current assignment in place."""
        relationships.assign_client_to_trainer("c1", "t1")
        with pytest.raises(AssignmentError):
            relationships.reassign("c1", "t1", "")
        assert relationships.is_assigned("t1", "c1")

    def test_reassign_to_same_trainer(self, relationships):
        """Reassigning to the current trainer changes nothing."""
        current = relationships.assign_client_to_trainer("c1", "t1")
        assert relationships.reassign("c1", "t1", "t1")["_id"] == current["_id"]

    def test_history_after_reassignment(self, gateway, relationships, seeded):
        """
        Historical records keep their trainerId.

        The new trainer reads the client's history through get_for_client;
        the old trainer keeps the records it authored but loses access to
        the client.
        """
        relationships.reassign("c1", "t1", "t2")

        history = gateway.get_for_client(WORKOUTS, "c1", TRAINER_2)
        assert len(history) == 2
        assert all(item["trainerId"] == "t1" for item in history)

        authored = gateway.get_scoped(WORKOUTS, TRAINER_1)
        assert {item["clientId"] for item in authored} == {"c1"}

        with pytest.raises(Unauthorized):
            gateway.get_for_client(WORKOUTS, "c1", TRAINER_1)

        assert len(gateway.get_for_client(WORKOUTS, "c1", ADMIN)) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
