"""
Data integrity validator.

Ensures every create/update on a scoped collection carries the fields
the gateway filters on. A record without its ownership fields is a
violation, not a "public" record.

Also provides audit queries that report existing records missing their
ownership fields.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from database.store import RecordStore
from .collections import (
    CLIENT_FIELD,
    COLLECTION_POLICIES,
    TRAINER_FIELD,
    ProtectedCollection,
)
from .exceptions import DataIntegrityError

logger = logging.getLogger(__name__)

SAMPLE_ID_LIMIT = 10


@dataclass(frozen=True)
class ValidationRule:
    """Required-field rule for one collection."""
    collection: str
    required_fields: tuple
    description: str
    severity: str = "critical"


def _build_rules() -> Dict[str, ValidationRule]:
    rules = {
        policy.name: ValidationRule(
            collection=policy.name,
            required_fields=policy.required_fields,
            description=policy.description,
            severity=policy.severity,
        )
        for policy in COLLECTION_POLICIES.values()
    }
    # Scoped but not served through the gateway
    for rule in (
        ValidationRule(
            collection="progresscheckins",
            required_fields=("clientId",),
            description="Progress check-ins must include client ID for scoping",
        ),
        ValidationRule(
            collection="programdrafts",
            required_fields=("trainerId", "programId"),
            description="Program drafts must include trainer and program ID",
        ),
        ValidationRule(
            collection="programs",
            required_fields=("trainerId",),
            description="Programs must include trainer ID for scoping",
        ),
    ):
        rules[rule.collection] = rule
    return rules


VALIDATION_RULES: Dict[str, ValidationRule] = _build_rules()


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _name(collection) -> str:
    return collection.value if isinstance(collection, ProtectedCollection) else collection


def validate_record(collection: str, record: Mapping[str, Any]) -> None:
    """
    Validate that a record includes all required fields for its collection.

    A field is missing when it is absent, None, or an empty string.
    Collections without a rule are not validated.

    Args:
        collection: The collection name
        record: The record to validate

    Raises:
        DataIntegrityError: If any required field is missing
    """
    name = _name(collection)
    rule = VALIDATION_RULES.get(name)
    if rule is None:
        return

    missing = [f for f in rule.required_fields if _is_missing(record.get(f))]
    if missing:
        logger.warning("Rejected %s record missing %s", name, ", ".join(missing))
        raise DataIntegrityError(name, missing, rule)


@dataclass
class ValidationReport:
    """Result of validating a batch of records."""
    valid: int = 0
    invalid: int = 0
    errors: List[DataIntegrityError] = field(default_factory=list)


def validate_records(collection: str, records: Sequence[Mapping[str, Any]]) -> ValidationReport:
    """Validate multiple records, collecting the failures instead of raising."""
    report = ValidationReport()
    for record in records:
        try:
            validate_record(collection, record)
            report.valid += 1
        except DataIntegrityError as e:
            report.errors.append(e)
            report.invalid += 1
    return report


def get_validation_rule(collection: str) -> Optional[ValidationRule]:
    """Get the validation rule for a collection, if any."""
    return VALIDATION_RULES.get(_name(collection))


def get_all_validation_rules() -> List[ValidationRule]:
    return list(VALIDATION_RULES.values())


def has_validation_rule(collection: str) -> bool:
    return _name(collection) in VALIDATION_RULES


def get_validated_collections() -> List[str]:
    return list(VALIDATION_RULES.keys())


# ============== Audit ==============

@dataclass
class AuditResult:
    """Missing-ownership counts for one collection."""
    collection: str
    total_records: int = 0
    missing_client_id: int = 0
    missing_trainer_id: int = 0
    missing_both: int = 0
    invalid_records: int = 0
    sample_ids: List[str] = field(default_factory=list)
    timestamp: str = ""

    @property
    def percentage_affected(self) -> int:
        if not self.total_records:
            return 0
        affected = self.missing_client_id + self.missing_trainer_id + self.missing_both
        return round(affected / self.total_records * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "total_records": self.total_records,
            "missing_client_id": self.missing_client_id,
            "missing_trainer_id": self.missing_trainer_id,
            "missing_both": self.missing_both,
            "invalid_records": self.invalid_records,
            "percentage_affected": self.percentage_affected,
            "sample_ids": self.sample_ids,
            "timestamp": self.timestamp,
        }


def audit_collection(store: RecordStore, collection: str) -> AuditResult:
    """
    Audit a collection for records missing their ownership fields.

    Only the ownership fields the collection's rule requires are counted
    as missing; `invalid_records` counts records failing the full rule.
    """
    name = _name(collection)
    rule = VALIDATION_RULES.get(name)
    required = rule.required_fields if rule else ()
    require_client = CLIENT_FIELD in required
    require_trainer = TRAINER_FIELD in required

    items = store.get_all(name)
    result = AuditResult(
        collection=name,
        total_records=len(items),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )

    for item in items:
        no_client = require_client and _is_missing(item.get(CLIENT_FIELD))
        no_trainer = require_trainer and _is_missing(item.get(TRAINER_FIELD))

        flagged = True
        if no_client and no_trainer:
            result.missing_both += 1
        elif no_client:
            result.missing_client_id += 1
        elif no_trainer:
            result.missing_trainer_id += 1
        else:
            flagged = False

        if rule and any(_is_missing(item.get(f)) for f in required):
            result.invalid_records += 1
            flagged = True

        if flagged and len(result.sample_ids) < SAMPLE_ID_LIMIT:
            result.sample_ids.append(item["_id"])

    if result.invalid_records:
        logger.warning(
            "Audit of %s: %d of %d records violate the integrity rule",
            name, result.invalid_records, result.total_records
        )
    return result


def run_full_audit(store: RecordStore) -> List[AuditResult]:
    """Audit every collection that has a validation rule."""
    return [audit_collection(store, name) for name in get_validated_collections()]
