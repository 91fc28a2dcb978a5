"""
Tests for auth context resolution.
"""
import pytest

from access import (
    AuthContext,
    AuthContextResolver,
    Identity,
    ResolutionState,
    Role,
    RoleDirectory,
    is_valid_auth_context,
)
from conftest import FailingStore


class TestResolver:
    """Identity -> auth context."""

    def test_resolves_member_role(self, roles):
        """A member with a role gets a context with that role."""
        roles.set_role("t1", Role.TRAINER)
        context = AuthContextResolver(roles).resolve(Identity("t1", "coach@example.com"))

        assert context == AuthContext(member_id="t1", role=Role.TRAINER)

    def test_anonymous(self, roles):
        """No identity, or no member id, is anonymous."""
        resolver = AuthContextResolver(roles)
        assert resolver.resolve_with_status(None).state == ResolutionState.ANONYMOUS
        assert resolver.resolve_with_status(Identity(None, "x@example.com")).state == ResolutionState.ANONYMOUS
        assert resolver.resolve(Identity("")) is None

    def test_no_role(self, roles):
        """A member without a role resolves to NO_ROLE."""
        resolution = AuthContextResolver(roles).resolve_with_status(Identity("c9"))
        assert resolution.state == ResolutionState.NO_ROLE
        assert resolution.context is None

    def test_degraded_when_store_fails(self, db):
        """A failed role lookup is DEGRADED, never a role."""
        resolver = AuthContextResolver(RoleDirectory(FailingStore(db)))
        resolution = resolver.resolve_with_status(Identity("c1"))

        assert resolution.state == ResolutionState.DEGRADED
        assert not resolution.resolved
        assert resolver.resolve(Identity("c1")) is None

    def test_email_is_not_an_identity(self, roles):
        """A role stored under the email does not apply to the member id."""
        roles.set_role("coach@example.com", Role.ADMIN)
        resolution = AuthContextResolver(roles).resolve_with_status(Identity("t1", "coach@example.com"))
        assert resolution.state == ResolutionState.NO_ROLE


class TestIsValidAuthContext:
    """Context validation."""

    def test_valid(self):
        assert is_valid_auth_context(AuthContext("c1", Role.CLIENT))
        assert is_valid_auth_context(AuthContext("admin-1", "admin"))

    @pytest.mark.parametrize("context", [
        None,
        {"memberId": "c1", "role": "client"},
        AuthContext("", Role.CLIENT),
        AuthContext(None, Role.CLIENT),
        AuthContext("c1", "owner"),
        AuthContext("c1", None),
    ])
    def test_invalid(self, context):
        assert not is_valid_auth_context(context)

    def test_role_properties(self):
        context = AuthContext("t1", Role.TRAINER)
        assert context.is_trainer
        assert not context.is_admin
        assert not context.is_client


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
