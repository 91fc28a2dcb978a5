"""
Secure data access gateway.

The policy-enforcement point for protected collections. Every read and
write of a protected collection goes through this class, which:

1. Requires a valid auth context (member id + role)
2. Only accepts collections on the protected allowlist
3. Scopes results to what the caller may see:
   - client: records whose clientId is the caller
   - trainer: records whose trainerId is the caller, or, through
     get_for_client, records of an actively assigned client
   - admin: everything
4. Runs the integrity validator before any write

Ownership predicates are pushed down to the store AND re-applied in
process, so a store that returns unrelated rows still cannot leak them.

Single-item reads return None both for a missing id and for a record
the caller does not own, so the two cases cannot be told apart.
"""
import functools
import logging
from typing import Any, Dict, List, Optional, Union

from database.store import RecordNotFoundError, RecordStore
from .auth_context import AuthContext, is_valid_auth_context
from .collections import (
    CLIENT_FIELD,
    OWNERSHIP_FIELDS,
    TRAINER_FIELD,
    ProtectedCollection,
    get_protected_collections,
    is_protected_collection,
    resolve_collection,
)
from .exceptions import InvalidAuthContext, Unauthorized
from .integrity import validate_record
from .relationships import RelationshipDirectory
from .roles import Role

logger = logging.getLogger(__name__)

CollectionRef = Union[str, ProtectedCollection]


def _require_context(auth_context: Any) -> AuthContext:
    if not is_valid_auth_context(auth_context):
        raise InvalidAuthContext()
    return auth_context


def admin_only(func):
    """
    Mark a function as an admin-only code path.

    At runtime the first AuthContext argument must belong to an admin.
    The static secure-access rule also treats decorated functions as
    allowed to read protected collections directly.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        contexts = [a for a in list(args) + list(kwargs.values()) if isinstance(a, AuthContext)]
        if not contexts:
            raise InvalidAuthContext("Admin-only operation requires an auth context")
        context = _require_context(contexts[0])
        if context.role != Role.ADMIN:
            logger.warning("Denied admin-only %s to %s", func.__name__, context.member_id)
            raise Unauthorized(
                "admin role required",
                member_id=context.member_id,
                action=func.__name__,
            )
        return func(*args, **kwargs)

    wrapper.__admin_only__ = True
    return wrapper


def _check_admin_writes(policy, auth_context: AuthContext, action: str) -> None:
    if policy.admin_writes_only and auth_context.role != Role.ADMIN:
        raise Unauthorized(
            f"{policy.name} records are managed by administrators",
            member_id=auth_context.member_id,
            action=action,
        )


def owns_item(item: Dict[str, Any], auth_context: AuthContext) -> bool:
    """Check whether the caller owns a record (admins own everything)."""
    if auth_context.role == Role.ADMIN:
        return True
    if auth_context.role == Role.CLIENT:
        return item.get(CLIENT_FIELD) == auth_context.member_id
    if auth_context.role == Role.TRAINER:
        return item.get(TRAINER_FIELD) == auth_context.member_id
    return False


class SecureDataAccess:
    """
    Scoped access to protected collections.

    Args:
        store: The generic record store
        relationships: Trainer-client assignment lookups (defaults to one
            over the same store)
    """

    def __init__(self, store: RecordStore, relationships: Optional[RelationshipDirectory] = None):
        self.store = store
        self.relationships = relationships or RelationshipDirectory(store)

    # ============== Allowlist ==============

    @staticmethod
    def is_protected_collection(name: CollectionRef) -> bool:
        return is_protected_collection(name)

    @staticmethod
    def get_protected_collections() -> List[str]:
        return get_protected_collections()

    # ============== Reads ==============

    def get_scoped(
        self,
        collection: CollectionRef,
        auth_context: AuthContext,
        limit: Optional[int] = None,
        skip: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Get the caller's own records of a protected collection.

        Raises:
            InvalidAuthContext: If the context is malformed
            NotProtectedCollection: If the collection is not protected
        """
        context = _require_context(auth_context)
        name = resolve_collection(collection).value

        if context.role == Role.ADMIN:
            return self.store.get_all(name, limit=limit, skip=skip)

        field = CLIENT_FIELD if context.role == Role.CLIENT else TRAINER_FIELD
        items = self.store.get_all(
            name,
            filters={field: context.member_id},
            limit=limit,
            skip=skip,
        )
        scoped = [item for item in items if owns_item(item, context)]
        if len(scoped) != len(items):
            logger.warning(
                "Store returned %d out-of-scope %s records for %s",
                len(items) - len(scoped), name, context.member_id
            )
        return scoped

    def get_by_id_scoped(
        self,
        collection: CollectionRef,
        item_id: str,
        auth_context: AuthContext
    ) -> Optional[Dict[str, Any]]:
        """
        Get a single record if the caller owns it.

        Returns:
            The record, or None if it does not exist or is not the
            caller's (the two cases are indistinguishable)
        """
        context = _require_context(auth_context)
        name = resolve_collection(collection).value

        item = self.store.get_by_id(name, item_id)
        if item is None:
            return None

        if not owns_item(item, context):
            logger.warning(
                "Denied %s %s/%s to %s", context.role.value, name, item_id, context.member_id
            )
            return None
        return item

    def get_for_client(
        self,
        collection: CollectionRef,
        client_id: str,
        auth_context: AuthContext,
        limit: Optional[int] = None,
        skip: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Get one client's records.

        AUTHORIZATION:
        - Clients: only their own id
        - Trainers: only actively assigned clients
        - Admins: any client

        Results are always limited to the requested client.

        Raises:
            Unauthorized: If the caller may not see this client's data
        """
        context = _require_context(auth_context)
        name = resolve_collection(collection).value

        if context.role == Role.CLIENT and client_id != context.member_id:
            logger.warning("Client %s tried to read %s of client %s", context.member_id, name, client_id)
            raise Unauthorized(
                "clients cannot query other clients",
                member_id=context.member_id,
                action="get_for_client",
            )

        if context.role == Role.TRAINER and not self.relationships.is_assigned(context.member_id, client_id):
            logger.warning("Trainer %s is not assigned to client %s", context.member_id, client_id)
            raise Unauthorized(
                "trainer does not have access to client",
                member_id=context.member_id,
                action="get_for_client",
            )

        items = self.store.get_all(name, filters={CLIENT_FIELD: client_id}, limit=limit, skip=skip)
        return [item for item in items if item.get(CLIENT_FIELD) == client_id]

    def get_for_trainer(
        self,
        collection: CollectionRef,
        trainer_id: str,
        auth_context: AuthContext,
        limit: Optional[int] = None,
        skip: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Get one trainer's records (admin only).

        Raises:
            Unauthorized: If the caller is not an admin
        """
        context = _require_context(auth_context)
        name = resolve_collection(collection).value

        if context.role != Role.ADMIN:
            logger.warning("Non-admin %s tried to read %s of trainer %s", context.member_id, name, trainer_id)
            raise Unauthorized(
                "only admins can query trainer-scoped data",
                member_id=context.member_id,
                action="get_for_trainer",
            )

        items = self.store.get_all(name, filters={TRAINER_FIELD: trainer_id}, limit=limit, skip=skip)
        return [item for item in items if item.get(TRAINER_FIELD) == trainer_id]

    # ============== Writes ==============

    def create_scoped(
        self,
        collection: CollectionRef,
        data: Dict[str, Any],
        auth_context: AuthContext
    ) -> Dict[str, Any]:
        """
        Create a record owned by the caller.

        - Clients create records about themselves (clientId is stamped
          when missing), naming only a trainer they are assigned to
          (their active trainer is stamped when trainerId is missing)
        - Trainers create records as themselves (trainerId is stamped
          when missing), and only for clients they are assigned to
        - Admins create any record

        Raises:
            Unauthorized: If the record would belong to someone else, or
                the collection is admin-managed
            DataIntegrityError: If required fields are missing
        """
        context = _require_context(auth_context)
        policy = resolve_collection(collection).policy
        record = dict(data)

        _check_admin_writes(policy, context, "create")

        if context.role == Role.CLIENT:
            if not policy.client_scoped:
                raise Unauthorized(
                    f"clients cannot create {policy.name} records",
                    member_id=context.member_id,
                    action="create",
                )
            if record.get(CLIENT_FIELD) in (None, ""):
                record[CLIENT_FIELD] = context.member_id
            if record[CLIENT_FIELD] != context.member_id:
                raise Unauthorized(
                    "clients can only create data for themselves",
                    member_id=context.member_id,
                    action="create",
                )
            trainer_id = record.get(TRAINER_FIELD)
            if policy.trainer_scoped and trainer_id in (None, ""):
                trainers = self.relationships.get_trainers_for_client(context.member_id)
                if trainers:
                    record[TRAINER_FIELD] = trainer_id = trainers[0].get(TRAINER_FIELD)
            if trainer_id and not self.relationships.is_assigned(trainer_id, context.member_id):
                raise Unauthorized(
                    "client is not assigned to trainer",
                    member_id=context.member_id,
                    action="create",
                )

        elif context.role == Role.TRAINER:
            if policy.trainer_scoped:
                if record.get(TRAINER_FIELD) in (None, ""):
                    record[TRAINER_FIELD] = context.member_id
                if record[TRAINER_FIELD] != context.member_id:
                    raise Unauthorized(
                        "trainers can only create data for themselves",
                        member_id=context.member_id,
                        action="create",
                    )
            client_id = record.get(CLIENT_FIELD)
            if client_id and not self.relationships.is_assigned(context.member_id, client_id):
                raise Unauthorized(
                    "trainer does not have access to client",
                    member_id=context.member_id,
                    action="create",
                )

        validate_record(policy.name, record)
        item = self.store.insert(policy.name, record)
        logger.debug("%s %s created %s/%s", context.role.value, context.member_id, policy.name, item["_id"])
        return item

    def update_scoped(
        self,
        collection: CollectionRef,
        item_id: str,
        changes: Dict[str, Any],
        auth_context: AuthContext
    ) -> Dict[str, Any]:
        """
        Update a record the caller owns.

        Ownership fields cannot change after creation. Admins may fill in
        an ownership field that is missing, to repair records reported by
        the integrity audit.

        Raises:
            RecordNotFoundError: If the record does not exist or is not
                the caller's
            Unauthorized: If the update would change ownership, or the
                collection is admin-managed
            DataIntegrityError: If the merged record misses required fields
        """
        context = _require_context(auth_context)
        policy = resolve_collection(collection).policy
        name = policy.name
        _check_admin_writes(policy, context, "update")

        existing = self.get_by_id_scoped(name, item_id, context)
        if existing is None:
            raise RecordNotFoundError(name, item_id)

        for field in OWNERSHIP_FIELDS:
            if field not in changes or changes[field] == existing.get(field):
                continue
            if context.role == Role.ADMIN and existing.get(field) in (None, ""):
                logger.info(
                    "Admin %s set missing %s on %s/%s", context.member_id, field, name, item_id
                )
                continue
            raise Unauthorized(
                f"{field} cannot be changed after creation",
                member_id=context.member_id,
                action="update",
            )

        merged = dict(existing)
        merged.update(changes)
        validate_record(name, merged)
        return self.store.update(name, item_id, changes)

    @admin_only
    def delete_scoped(
        self,
        collection: CollectionRef,
        item_id: str,
        auth_context: AuthContext
    ) -> None:
        """
        Delete a record (admin only).

        Collections kept as history (trainer-client assignments) cannot be
        deleted; deactivate them through the relationship directory.

        Raises:
            Unauthorized: If the caller is not an admin, or the collection
                is not deletable
            RecordNotFoundError: If the record does not exist
        """
        policy = resolve_collection(collection).policy
        name = policy.name
        if not policy.deletable:
            raise Unauthorized(
                f"{name} records are kept as history and cannot be deleted",
                member_id=auth_context.member_id,
                action="delete",
            )
        self.store.remove(name, item_id)
        logger.info("Admin %s deleted %s/%s", auth_context.member_id, name, item_id)
