"""
Protected collection table.

The closed set of collections whose reads and writes must go through the
secure data access gateway. Each collection carries its own policy: the
fields every record must have and which ownership fields it is scoped by.
Adding a protected collection means adding one enum member and one policy
entry here.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple, Union

from .exceptions import NotProtectedCollection

# Ownership fields on protected records
CLIENT_FIELD = "clientId"
TRAINER_FIELD = "trainerId"
OWNERSHIP_FIELDS = (CLIENT_FIELD, TRAINER_FIELD)


class ProtectedCollection(str, Enum):
    """Protected collection identifiers."""
    CLIENT_ASSIGNED_WORKOUTS = "clientassignedworkouts"
    PROGRAM_ASSIGNMENTS = "programassignments"
    CLIENT_PROFILES = "clientprofiles"
    TRAINER_CLIENT_ASSIGNMENTS = "trainerclientassignments"
    TRAINER_CLIENT_NOTES = "trainerclientnotes"
    TRAINER_CLIENT_MESSAGES = "trainerclientmessages"
    WEEKLY_CHECKINS = "weeklycheckins"
    WEEKLY_SUMMARIES = "weeklysummaries"
    WEEKLY_COACHES_NOTES = "weeklycoachesnotes"
    TRAINER_NOTIFICATIONS = "trainernotifications"

    @property
    def policy(self) -> "CollectionPolicy":
        return COLLECTION_POLICIES[self]


@dataclass(frozen=True)
class CollectionPolicy:
    """
    Per-collection rule.

    Attributes:
        name: Collection name in the record store
        required_fields: Fields every record must carry (non-empty)
        description: Human-readable reason, used in integrity errors
        client_scoped: Records carry the client they are about
        trainer_scoped: Records carry the trainer who owns them
        severity: 'critical' or 'warning'
        admin_writes_only: Only admins may create or update records
            through the gateway
        deletable: Records may be physically deleted (admin only)
    """
    name: str
    required_fields: Tuple[str, ...]
    description: str
    client_scoped: bool = True
    trainer_scoped: bool = True
    severity: str = "critical"
    admin_writes_only: bool = False
    deletable: bool = True

    @property
    def scoping_fields(self) -> Tuple[str, ...]:
        fields = []
        if self.client_scoped:
            fields.append(CLIENT_FIELD)
        if self.trainer_scoped:
            fields.append(TRAINER_FIELD)
        return tuple(fields)


COLLECTION_POLICIES: Dict[ProtectedCollection, CollectionPolicy] = {
    ProtectedCollection.CLIENT_ASSIGNED_WORKOUTS: CollectionPolicy(
        name="clientassignedworkouts",
        required_fields=("clientId", "trainerId", "weekNumber"),
        description="Assigned workouts must include client, trainer, and week",
    ),
    ProtectedCollection.PROGRAM_ASSIGNMENTS: CollectionPolicy(
        name="programassignments",
        required_fields=("clientId", "trainerId", "programId"),
        description="Program assignments must include client, trainer, and program",
    ),
    ProtectedCollection.CLIENT_PROFILES: CollectionPolicy(
        name="clientprofiles",
        required_fields=("clientId",),
        description="Client profiles must include client ID for scoping",
        trainer_scoped=False,
    ),
    ProtectedCollection.TRAINER_CLIENT_ASSIGNMENTS: CollectionPolicy(
        name="trainerclientassignments",
        required_fields=("trainerId", "clientId", "status"),
        description="Trainer-client assignments must include trainer, client, and status",
        admin_writes_only=True,
        deletable=False,
    ),
    ProtectedCollection.TRAINER_CLIENT_NOTES: CollectionPolicy(
        name="trainerclientnotes",
        required_fields=("trainerId", "clientId"),
        description="Trainer notes must include trainer and client IDs",
    ),
    ProtectedCollection.TRAINER_CLIENT_MESSAGES: CollectionPolicy(
        name="trainerclientmessages",
        required_fields=("trainerId", "clientId"),
        description="Messages must include trainer and client IDs",
    ),
    ProtectedCollection.WEEKLY_CHECKINS: CollectionPolicy(
        name="weeklycheckins",
        required_fields=("clientId", "trainerId", "weekNumber", "weekStartDate"),
        description="Weekly check-ins must include client, trainer, and week info",
    ),
    ProtectedCollection.WEEKLY_SUMMARIES: CollectionPolicy(
        name="weeklysummaries",
        required_fields=("clientId", "trainerId"),
        description="Weekly summaries must include client and trainer IDs",
    ),
    ProtectedCollection.WEEKLY_COACHES_NOTES: CollectionPolicy(
        name="weeklycoachesnotes",
        required_fields=("trainerId", "clientId"),
        description="Weekly coach notes must include trainer and client IDs",
    ),
    ProtectedCollection.TRAINER_NOTIFICATIONS: CollectionPolicy(
        name="trainernotifications",
        required_fields=("trainerId",),
        description="Trainer notifications must include trainer ID",
        client_scoped=False,
    ),
}


def is_protected_collection(name: Union[str, ProtectedCollection]) -> bool:
    """Check if a collection is on the protected allowlist."""
    try:
        ProtectedCollection(name)
    except ValueError:
        return False
    return True


def get_protected_collections() -> List[str]:
    """Names of all protected collections."""
    return [collection.value for collection in ProtectedCollection]


def resolve_collection(name: Union[str, ProtectedCollection]) -> ProtectedCollection:
    """
    Turn a collection name into its protected identifier.

    Raises:
        NotProtectedCollection: If the name is not on the allowlist
    """
    try:
        return ProtectedCollection(name)
    except ValueError:
        raise NotProtectedCollection(str(name)) from None
