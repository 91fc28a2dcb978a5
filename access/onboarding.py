"""
Member onboarding.

First authenticated use of the portal: give the member the default
'client' role and, when a default trainer is configured, assign them to
that trainer. The trainer assignment is best-effort; a failure is logged
and never blocks sign-up.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from database.store import RecordStore, StoreError
from .auth_context import AuthContext, AuthContextResolver, Identity
from .exceptions import DataIntegrityError
from .relationships import RelationshipDirectory
from .roles import ROLE_COLLECTION, STATUS_ACTIVE, Role, RoleDirectory

logger = logging.getLogger(__name__)


def onboard_member(
    store: RecordStore,
    identity: Identity,
    default_trainer_id: Optional[str] = None
) -> Optional[AuthContext]:
    """
    Ensure a member has a role and, for clients, a trainer.

    Args:
        store: The record store
        identity: The authenticated identity
        default_trainer_id: Trainer that new clients are assigned to

    Returns:
        The member's auth context, or None if the identity has no member
        id or the member's role has been deactivated
    """
    if not identity or not identity.member_id:
        return None

    roles = RoleDirectory(store)
    roles.set_default_role(identity.member_id)

    context = AuthContextResolver(roles).resolve(identity)
    if context is None:
        return None

    if context.role == Role.CLIENT and default_trainer_id:
        assign_new_client_to_trainer(store, context.member_id, default_trainer_id)

    return context


def assign_new_client_to_trainer(store: RecordStore, client_id: str, trainer_id: str) -> bool:
    """
    Best-effort assignment of a new client to a trainer.

    Clients that already have an active trainer are left alone.

    Returns:
        True if the client ends up with an active trainer
    """
    relationships = RelationshipDirectory(store)
    try:
        if relationships.get_trainers_for_client(client_id):
            return True
        relationships.assign_client_to_trainer(
            client_id, trainer_id, notes="Auto-assigned to default trainer"
        )
        return True
    except (StoreError, DataIntegrityError) as e:
        logger.warning("Failed to auto-assign client %s to trainer %s: %s", client_id, trainer_id, e)
        return False


@dataclass
class BackfillSummary:
    """Outcome of assigning existing clients to a trainer."""
    total: int = 0
    assigned: int = 0
    skipped: int = 0
    failed: int = 0
    failed_client_ids: List[str] = field(default_factory=list)


def backfill_default_trainer(store: RecordStore, trainer_id: str) -> BackfillSummary:
    """
    Assign every active client without a trainer to the given trainer.

    Idempotent: clients that already have an active trainer are skipped.
    """
    relationships = RelationshipDirectory(store)
    client_ids = []
    for row in store.get_all(ROLE_COLLECTION, filters={"status": STATUS_ACTIVE}):
        member_id = row.get("memberId")
        if row.get("role") == Role.CLIENT.value and member_id and member_id not in client_ids:
            client_ids.append(member_id)

    summary = BackfillSummary(total=len(client_ids))
    logger.info("Starting trainer backfill for %d clients", summary.total)

    for client_id in client_ids:
        try:
            if relationships.get_trainers_for_client(client_id):
                summary.skipped += 1
                continue
            relationships.assign_client_to_trainer(
                client_id, trainer_id, notes="Backfilled to default trainer"
            )
            summary.assigned += 1
        except (StoreError, DataIntegrityError) as e:
            logger.warning("Backfill failed for client %s: %s", client_id, e)
            summary.failed += 1
            summary.failed_client_ids.append(client_id)

    logger.info(
        "Backfill complete: %d assigned, %d skipped, %d failed",
        summary.assigned, summary.skipped, summary.failed
    )
    return summary
