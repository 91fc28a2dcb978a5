"""
Relationship directory.

Resolves and changes trainer-client assignments. A trainer may only act
on a client's data while an active assignment row exists for that exact
pair. Assignment rows are never deleted: removal and reassignment mark
the old row inactive and keep it as history.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from database.store import RecordStore
from .collections import ProtectedCollection
from .exceptions import AssignmentError
from .integrity import validate_record

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"


def active_pair_key(client_id: str, trainer_id: str) -> str:
    """Store key held by the active assignment of a pair."""
    return f"active:{client_id}:{trainer_id}"


class RelationshipDirectory:
    """Service for trainer-client assignment lookups and changes."""

    COLLECTION = ProtectedCollection.TRAINER_CLIENT_ASSIGNMENTS.value

    def __init__(self, store: RecordStore):
        self.store = store

    def _active(self, **filters: str) -> List[Dict[str, Any]]:
        filters["status"] = STATUS_ACTIVE
        rows = self.store.get_all(self.COLLECTION, filters=filters)
        # Re-check in process; never trust the store to have filtered
        return [
            row for row in rows
            if row.get("status") == STATUS_ACTIVE
            and all(row.get(k) == v for k, v in filters.items())
        ]

    def get_clients_for_trainer(self, trainer_id: str) -> List[Dict[str, Any]]:
        """Active assignments of a trainer."""
        if not trainer_id:
            return []
        return self._active(trainerId=trainer_id)

    def get_client_ids_for_trainer(self, trainer_id: str) -> List[str]:
        """Ids of the clients a trainer is actively assigned to."""
        seen = []
        for row in self.get_clients_for_trainer(trainer_id):
            client_id = row.get("clientId")
            if client_id and client_id not in seen:
                seen.append(client_id)
        return seen

    def get_trainers_for_client(self, client_id: str) -> List[Dict[str, Any]]:
        """Active assignments of a client (normally zero or one)."""
        if not client_id:
            return []
        return self._active(clientId=client_id)

    def is_assigned(self, trainer_id: str, client_id: str) -> bool:
        """
        Check if a trainer is actively assigned to a client.

        Store failures propagate; they are never read as "assigned".
        """
        if not trainer_id or not client_id:
            return False
        return bool(self._active(trainerId=trainer_id, clientId=client_id))

    def assign_client_to_trainer(
        self,
        client_id: str,
        trainer_id: str,
        notes: str = ""
    ) -> Dict[str, Any]:
        """
        Assign a client to a trainer.

        Idempotent: an existing active assignment for the pair is returned
        unchanged. The active row is keyed by the pair in the store, so
        concurrent calls still leave a single active row.

        Other active trainers of the client are kept; use reassign to
        move a client instead.

        Returns:
            The active assignment row
        """
        existing = self._active(trainerId=trainer_id, clientId=client_id) if trainer_id and client_id else []
        if existing:
            return existing[0]

        assignment = {
            "trainerId": trainer_id,
            "clientId": client_id,
            "status": STATUS_ACTIVE,
            "assignmentDate": datetime.now(timezone.utc).isoformat(),
            "notes": notes or "",
        }
        validate_record(self.COLLECTION, assignment)

        others = [row.get("trainerId") for row in self.get_trainers_for_client(client_id)]
        if others:
            logger.warning(
                "Client %s already has active trainer(s) %s; adding %s (use reassign to move)",
                client_id, ", ".join(str(t) for t in others), trainer_id
            )

        row, created = self.store.insert_if_absent(
            self.COLLECTION, active_pair_key(client_id, trainer_id), assignment
        )
        if not created and row.get("status") != STATUS_ACTIVE:
            # Deactivated without releasing its key; free it and retry
            self.store.update(self.COLLECTION, row["_id"], {}, release_unique_key=True)
            row, created = self.store.insert_if_absent(
                self.COLLECTION, active_pair_key(client_id, trainer_id), assignment
            )
        if created:
            logger.info("Assigned client %s to trainer %s", client_id, trainer_id)
        return row

    def remove_assignment(self, client_id: str, trainer_id: str) -> int:
        """
        Deactivate the active assignment(s) for a pair.

        The deactivated row releases the pair key, so the pair can be
        assigned again later.

        Returns:
            Number of rows deactivated
        """
        rows = self._active(trainerId=trainer_id, clientId=client_id) if trainer_id and client_id else []
        for row in rows:
            self.store.update(
                self.COLLECTION, row["_id"], {"status": STATUS_INACTIVE}, release_unique_key=True
            )
        if rows:
            logger.info("Removed client %s from trainer %s", client_id, trainer_id)
        return len(rows)

    def reassign(self, client_id: str, from_trainer_id: str, to_trainer_id: str) -> Dict[str, Any]:
        """
        Move a client from one trainer to another.

        The old row is deactivated and a new active row is created; the
        old row stays as history.

        Raises:
            AssignmentError: If the client is not actively assigned to
                from_trainer_id
        """
        if not to_trainer_id:
            raise AssignmentError("A target trainer is required", client_id=client_id)

        if from_trainer_id == to_trainer_id:
            current = self._active(trainerId=to_trainer_id, clientId=client_id)
            if not current:
                raise AssignmentError(
                    f"Client {client_id} is not assigned to trainer {from_trainer_id}",
                    client_id=client_id,
                    trainer_id=from_trainer_id,
                )
            return current[0]

        if not self.remove_assignment(client_id, from_trainer_id):
            raise AssignmentError(
                f"Client {client_id} is not assigned to trainer {from_trainer_id}",
                client_id=client_id,
                trainer_id=from_trainer_id,
            )
        return self.assign_client_to_trainer(
            client_id,
            to_trainer_id,
            notes=f"Reassigned from trainer {from_trainer_id}",
        )
