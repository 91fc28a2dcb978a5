"""
Access control layer for the Fitness Coaching service.

Role and relationship directories, auth context resolution, the secure
data access gateway and the data integrity validator.
"""
from .exceptions import (
    AuthorizationError,
    Unauthorized,
    InvalidAuthContext,
    NotProtectedCollection,
    DataIntegrityError,
    InvalidRoleError,
    AssignmentError,
    StoreError,
    RecordNotFoundError,
)

from .collections import (
    ProtectedCollection,
    CollectionPolicy,
    COLLECTION_POLICIES,
    CLIENT_FIELD,
    TRAINER_FIELD,
    is_protected_collection,
    get_protected_collections,
    resolve_collection,
)

from .roles import (
    Role,
    RoleDirectory,
    RoleLookup,
    RoleLookupStatus,
    parse_role,
)

from .relationships import RelationshipDirectory

from .auth_context import (
    Identity,
    AuthContext,
    AuthContextResolver,
    AuthResolution,
    ResolutionState,
    is_valid_auth_context,
)

from .integrity import (
    ValidationRule,
    ValidationReport,
    AuditResult,
    validate_record,
    validate_records,
    get_validation_rule,
    get_all_validation_rules,
    has_validation_rule,
    get_validated_collections,
    audit_collection,
    run_full_audit,
)

from .gateway import (
    SecureDataAccess,
    admin_only,
    owns_item,
)

from .onboarding import (
    BackfillSummary,
    onboard_member,
    assign_new_client_to_trainer,
    backfill_default_trainer,
)

__all__ = [
    # Exceptions
    "AuthorizationError",
    "Unauthorized",
    "InvalidAuthContext",
    "NotProtectedCollection",
    "DataIntegrityError",
    "InvalidRoleError",
    "AssignmentError",
    "StoreError",
    "RecordNotFoundError",
    # Collections
    "ProtectedCollection",
    "CollectionPolicy",
    "COLLECTION_POLICIES",
    "CLIENT_FIELD",
    "TRAINER_FIELD",
    "is_protected_collection",
    "get_protected_collections",
    "resolve_collection",
    # Roles
    "Role",
    "RoleDirectory",
    "RoleLookup",
    "RoleLookupStatus",
    "parse_role",
    # Relationships
    "RelationshipDirectory",
    # Auth context
    "Identity",
    "AuthContext",
    "AuthContextResolver",
    "AuthResolution",
    "ResolutionState",
    "is_valid_auth_context",
    # Integrity
    "ValidationRule",
    "ValidationReport",
    "AuditResult",
    "validate_record",
    "validate_records",
    "get_validation_rule",
    "get_all_validation_rules",
    "has_validation_rule",
    "get_validated_collections",
    "audit_collection",
    "run_full_audit",
    # Gateway
    "SecureDataAccess",
    "admin_only",
    "owns_item",
    # Onboarding
    "BackfillSummary",
    "onboard_member",
    "assign_new_client_to_trainer",
    "backfill_default_trainer",
]
