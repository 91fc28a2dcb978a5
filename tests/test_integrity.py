"""
Tests for the data integrity validator and audit.
"""
import pytest

from access import (
    DataIntegrityError,
    ProtectedCollection,
    audit_collection,
    get_validated_collections,
    get_validation_rule,
    has_validation_rule,
    run_full_audit,
    validate_record,
    validate_records,
)
from conftest import WORKOUTS


class TestValidateRecord:
    """Write-time validation."""

    def test_weekly_checkin_missing_fields(self):
        """Exactly the three missing fields are reported, in rule order."""
        with pytest.raises(DataIntegrityError) as exc_info:
            validate_record("weeklycheckins", {"clientId": "x"})

        error = exc_info.value
        assert error.missing_fields == ["trainerId", "weekNumber", "weekStartDate"]
        assert error.collection == "weeklycheckins"
        assert "Missing required fields: trainerId, weekNumber, weekStartDate" in error.message

    def test_complete_record_passes(self):
        """A record with every required field is accepted."""
        validate_record("weeklycheckins", {
            "clientId": "c1",
            "trainerId": "t1",
            "weekNumber": 1,
            "weekStartDate": "2024-01-01",
        })

    def test_empty_string_counts_as_missing(self):
        """Empty strings and None are missing."""
        with pytest.raises(DataIntegrityError) as exc_info:
            validate_record(WORKOUTS, {"clientId": "", "trainerId": None, "weekNumber": 1})
        assert exc_info.value.missing_fields == ["clientId", "trainerId"]

    def test_zero_is_not_missing(self):
        """Falsy non-empty values are present."""
        validate_record(WORKOUTS, {"clientId": "c1", "trainerId": "t1", "weekNumber": 0})

    def test_collection_without_rule(self):
        """Collections without a rule are not validated."""
        validate_record("memberroles", {})

    def test_enum_collection(self):
        """ProtectedCollection members are accepted."""
        with pytest.raises(DataIntegrityError):
            validate_record(ProtectedCollection.TRAINER_NOTIFICATIONS, {})

    def test_validate_records_collects_failures(self):
        """Batch validation reports instead of raising."""
        report = validate_records("programs", [{"trainerId": "t1"}, {}, {"trainerId": ""}])
        assert report.valid == 1
        assert report.invalid == 2
        assert all(isinstance(e, DataIntegrityError) for e in report.errors)


class TestRules:
    """Rule lookups."""

    def test_every_protected_collection_has_a_rule(self):
        """Protected collections are always validated."""
        for collection in ProtectedCollection:
            assert has_validation_rule(collection)

    def test_extra_scoped_collections(self):
        """Non-gateway scoped collections carry rules too."""
        assert get_validation_rule("progresscheckins").required_fields == ("clientId",)
        assert get_validation_rule("programdrafts").required_fields == ("trainerId", "programId")
        assert "programs" in get_validated_collections()
        assert get_validation_rule("memberroles") is None


class TestAudit:
    """Audit of existing records."""

    def test_audit_counts_missing_fields(self, store):
        """Missing client, trainer and both are counted separately."""
        store.insert(WORKOUTS, {"clientId": "c1", "trainerId": "t1", "weekNumber": 1})
        no_client = store.insert(WORKOUTS, {"trainerId": "t1", "weekNumber": 1})
        no_trainer = store.insert(WORKOUTS, {"clientId": "c1", "weekNumber": 1})
        neither = store.insert(WORKOUTS, {"weekNumber": 1})

        result = audit_collection(store, WORKOUTS)

        assert result.total_records == 4
        assert result.missing_client_id == 1
        assert result.missing_trainer_id == 1
        assert result.missing_both == 1
        assert result.invalid_records == 3
        assert result.percentage_affected == 75
        assert set(result.sample_ids) == {no_client["_id"], no_trainer["_id"], neither["_id"]}

    def test_audit_ignores_fields_the_rule_does_not_require(self, store):
        """Trainer notifications have no clientId and are still valid."""
        store.insert("trainernotifications", {"trainerId": "t1"})
        result = audit_collection(store, "trainernotifications")
        assert result.missing_client_id == 0
        assert result.invalid_records == 0

    def test_empty_collection(self, store):
        """An empty collection is 0% affected."""
        result = audit_collection(store, "weeklysummaries")
        assert result.total_records == 0
        assert result.percentage_affected == 0

    def test_full_audit(self, store):
        """Every validated collection is audited."""
        results = run_full_audit(store)
        assert [r.collection for r in results] == get_validated_collections()
        assert "timestamp" in results[0].to_dict()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
