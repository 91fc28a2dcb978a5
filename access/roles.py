"""
Role directory.

Resolves a member id to its role from the `memberroles` collection and
manages role assignments. Role information always comes from the store,
never from the caller.

One row per member is guaranteed by the store's conditional insert
(unique key "member:<memberId>"); rows are never deleted, only
deactivated.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from database.store import RecordStore, StoreError
from .exceptions import InvalidRoleError, Unauthorized

logger = logging.getLogger(__name__)

ROLE_COLLECTION = "memberroles"

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"


class Role(str, Enum):
    """Member roles."""
    CLIENT = "client"
    TRAINER = "trainer"
    ADMIN = "admin"


def parse_role(value: Union[str, Role, None]) -> Role:
    """
    Parse a role value.

    Raises:
        InvalidRoleError: If the value is not a known role
    """
    try:
        return Role(value)
    except ValueError:
        raise InvalidRoleError(value) from None


class RoleLookupStatus(str, Enum):
    """Outcome of a role lookup."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class RoleLookup:
    """
    Typed result of a role lookup.

    `FAILED` means the store could not be read; it must be treated as a
    denial and never as "no role yet".
    """
    member_id: str
    status: RoleLookupStatus
    role: Optional[Role] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == RoleLookupStatus.FOUND

    @property
    def failed(self) -> bool:
        return self.status == RoleLookupStatus.FAILED


def _role_key(member_id: str) -> str:
    return f"member:{member_id}"


class RoleDirectory:
    """Service for role lookups and role assignment."""

    def __init__(self, store: RecordStore):
        self.store = store

    def get_role(self, member_id: str) -> Optional[Role]:
        """
        Get the member's active role.

        Args:
            member_id: The member id to look up

        Returns:
            The active role, or None if the member has no active role

        Raises:
            StoreError: If the lookup itself failed
        """
        if not member_id:
            return None

        rows = self.store.get_all(
            ROLE_COLLECTION,
            filters={"memberId": member_id, "status": STATUS_ACTIVE},
        )
        if not rows:
            return None

        if len(rows) > 1:
            logger.warning(
                "Member %s has %d active role assignments; using the first",
                member_id, len(rows)
            )

        value = rows[0].get("role")
        try:
            return Role(value)
        except ValueError:
            logger.warning("Member %s has unknown role value %r", member_id, value)
            return None

    def lookup_role(self, member_id: str) -> RoleLookup:
        """
        Look up the member's role, reporting store failures explicitly.

        Never raises for store failures; the result says FAILED instead.
        """
        try:
            role = self.get_role(member_id)
        except StoreError as e:
            logger.error("Role lookup failed for %s: %s", member_id, e)
            return RoleLookup(member_id, RoleLookupStatus.FAILED, error=str(e))

        if role is None:
            return RoleLookup(member_id, RoleLookupStatus.NOT_FOUND)
        return RoleLookup(member_id, RoleLookupStatus.FOUND, role=role)

    def set_default_role(self, member_id: str) -> Optional[Role]:
        """
        Give a first-time member the 'client' role.

        Idempotent: if the member already has a role assignment nothing is
        written. Concurrent calls for the same member create at most one
        row.

        Returns:
            The member's active role after the call (None if their
            assignment exists but was deactivated)
        """
        if not member_id:
            raise ValueError("member_id is required")

        row, created = self.store.insert_if_absent(
            ROLE_COLLECTION,
            _role_key(member_id),
            {
                "memberId": member_id,
                "role": Role.CLIENT.value,
                "status": STATUS_ACTIVE,
                "assignmentDate": datetime.now(timezone.utc).isoformat(),
            },
        )
        if created:
            logger.info("Created default client role for %s", member_id)

        if row.get("status") != STATUS_ACTIVE:
            return None
        try:
            return Role(row.get("role"))
        except ValueError:
            return None

    def set_role(self, member_id: str, role: Union[str, Role]) -> None:
        """
        Create or update the member's role assignment.

        The caller must already have verified that the acting member is
        an admin (see change_role).
        """
        new_role = parse_role(role)
        if not member_id:
            raise ValueError("member_id is required")

        row, created = self.store.insert_if_absent(
            ROLE_COLLECTION,
            _role_key(member_id),
            {
                "memberId": member_id,
                "role": new_role.value,
                "status": STATUS_ACTIVE,
                "assignmentDate": datetime.now(timezone.utc).isoformat(),
            },
        )
        if not created:
            self.store.update(
                ROLE_COLLECTION,
                row["_id"],
                {"role": new_role.value, "status": STATUS_ACTIVE},
            )
        logger.info("Role for %s set to %s", member_id, new_role.value)

    def change_role(self, admin_id: str, member_id: str, role: Union[str, Role]) -> None:
        """
        Change another member's role (admin only).

        Raises:
            Unauthorized: If admin_id is not an admin
        """
        new_role = parse_role(role)
        if not self.is_admin(admin_id):
            raise Unauthorized(
                "only administrators can change member roles",
                member_id=admin_id,
                action="change_role",
            )
        if new_role == Role.TRAINER:
            logger.warning("Admin %s is changing member %s to trainer role", admin_id, member_id)
        self.set_role(member_id, new_role)

    def deactivate_role(self, member_id: str) -> bool:
        """
        Deactivate the member's role assignment.

        Returns:
            True if an assignment was deactivated
        """
        rows = self.store.get_all(ROLE_COLLECTION, filters={"memberId": member_id})
        changed = False
        for row in rows:
            if row.get("status") == STATUS_ACTIVE:
                self.store.update(ROLE_COLLECTION, row["_id"], {"status": STATUS_INACTIVE})
                changed = True
        return changed

    def _has_role(self, member_id: str, role: Role) -> bool:
        lookup = self.lookup_role(member_id)
        return lookup.found and lookup.role == role

    def is_trainer(self, member_id: str) -> bool:
        """Check if member is a trainer."""
        return self._has_role(member_id, Role.TRAINER)

    def is_client(self, member_id: str) -> bool:
        """Check if member is a client."""
        return self._has_role(member_id, Role.CLIENT)

    def is_admin(self, member_id: str) -> bool:
        """Check if member is an admin."""
        return self._has_role(member_id, Role.ADMIN)
