"""
Auth context resolution.

Turns an authenticated identity into the minimal `{memberId, role}`
context every gateway call takes. The context is built once per request
and passed explicitly; nothing reads a "current user" from global state.

Only the member id is authoritative. The login email is display-only and
is never used in an ownership comparison.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .roles import Role, RoleDirectory, RoleLookupStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """What the identity provider hands over for an authenticated session."""
    member_id: Optional[str]
    login_email: Optional[str] = None


@dataclass(frozen=True)
class AuthContext:
    """Request-scoped authorization context. Never persisted."""
    member_id: str
    role: Role

    def __post_init__(self):
        # Accept plain strings for known roles; unknown values stay as-is
        # and fail is_valid_auth_context.
        if not isinstance(self.role, Role):
            try:
                object.__setattr__(self, "role", Role(self.role))
            except ValueError:
                pass

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_trainer(self) -> bool:
        return self.role == Role.TRAINER

    @property
    def is_client(self) -> bool:
        return self.role == Role.CLIENT


def is_valid_auth_context(context: Any) -> bool:
    """
    Check that a context has a non-empty member id and a known role.

    Pure and synchronous; safe to call at every gateway entry point.
    """
    return (
        isinstance(context, AuthContext)
        and isinstance(context.member_id, str)
        and bool(context.member_id)
        and isinstance(context.role, Role)
    )


class ResolutionState(str, Enum):
    """Why a resolution did or did not yield a context."""
    RESOLVED = "resolved"
    ANONYMOUS = "anonymous"
    NO_ROLE = "no_role"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class AuthResolution:
    """
    Result of resolving an identity.

    DEGRADED means the role lookup failed. Callers may show a soft
    failure (retry, spinner) but must deny the protected operation.
    """
    state: ResolutionState
    context: Optional[AuthContext] = None

    @property
    def resolved(self) -> bool:
        return self.state == ResolutionState.RESOLVED


class AuthContextResolver:
    """Combines an identity with the role directory."""

    def __init__(self, roles: RoleDirectory):
        self.roles = roles

    def resolve_with_status(self, identity: Optional[Identity]) -> AuthResolution:
        member_id = identity.member_id if identity else None
        if not member_id:
            return AuthResolution(ResolutionState.ANONYMOUS)

        lookup = self.roles.lookup_role(member_id)
        if lookup.status == RoleLookupStatus.FAILED:
            logger.warning("Auth context degraded for %s: role lookup failed", member_id)
            return AuthResolution(ResolutionState.DEGRADED)
        if lookup.status == RoleLookupStatus.NOT_FOUND:
            return AuthResolution(ResolutionState.NO_ROLE)

        context = AuthContext(member_id=member_id, role=lookup.role)
        return AuthResolution(ResolutionState.RESOLVED, context)

    def resolve(self, identity: Optional[Identity]) -> Optional[AuthContext]:
        """
        Resolve an identity to an auth context.

        Returns:
            The context, or None if the identity is absent, has no role,
            or the role could not be looked up
        """
        return self.resolve_with_status(identity).context
