"""
Tests for the static secure-access rule.
"""
import os
import textwrap

import pytest

from guardrails import SecureAccessRule, Violation, check_secure_access

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def check(source):
    return check_secure_access(textwrap.dedent(source), "example.py")


class TestSecureAccessRule:
    """Flagging direct store reads of protected collections."""

    def test_flags_string_literal(self):
        """A literal protected collection name is flagged."""
        violations = check("""
            def list_workouts(store):
                return store.get_all("clientassignedworkouts")
        """)

        assert len(violations) == 1
        violation = violations[0]
        assert violation.collection == "clientassignedworkouts"
        assert violation.method == "get_all"
        assert violation.line == 3
        assert "get_scoped" in violation.message

    def test_flags_get_by_id(self):
        """get_by_id is flagged and points at get_by_id_scoped."""
        violations = check("""
            item = store.get_by_id("weeklycheckins", item_id)
        """)
        assert [v.method for v in violations] == ["get_by_id"]
        assert "get_by_id_scoped" in str(violations[0])

    @pytest.mark.parametrize("expr", [
        "ProtectedCollection.WEEKLY_SUMMARIES",
        "ProtectedCollection.WEEKLY_SUMMARIES.value",
    ])
    def test_flags_enum_reference(self, expr):
        """ProtectedCollection members are recognised."""
        violations = check(f"rows = store.get_all({expr})")
        assert [v.collection for v in violations] == ["weeklysummaries"]

    def test_flags_keyword_argument(self):
        """collection= keyword arguments are recognised."""
        violations = check('rows = store.get_all(collection="trainerclientnotes", limit=5)')
        assert len(violations) == 1

    def test_ignores_unprotected_collections(self):
        """Reads of other collections are fine."""
        assert check("""
            rows = store.get_all("memberroles")
            item = store.get_by_id("programs", "abc")
        """) == []

    def test_ignores_non_literal_names(self):
        """Collection names held in variables cannot be judged."""
        assert check("rows = store.get_all(self.COLLECTION)") == []

    def test_ignores_other_methods(self):
        """Only raw store reads are checked."""
        assert check('gateway.get_scoped("clientassignedworkouts", ctx)') == []

    def test_admin_only_function_is_exempt(self):
        """Reads inside @admin_only functions are allowed."""
        assert check("""
            @admin_only
            def export_all(store, auth_context):
                return store.get_all("clientassignedworkouts")

            @access.admin_only
            def export_profiles(store, auth_context):
                def inner():
                    return store.get_all("clientprofiles")
                return inner()
        """) == []

    def test_admin_scope_ends_with_function(self):
        """Code after an admin-only function is still checked."""
        violations = check("""
            @admin_only
            def export_all(store, auth_context):
                return store.get_all("clientassignedworkouts")

            def list_all(store):
                return store.get_all("clientassignedworkouts")
        """)
        assert [v.line for v in violations] == [7]

    def test_security_comment_exempts(self):
        """A security comment on or above the call line exempts it."""
        assert check("""
            # security: nightly export runs as the service account
            rows = store.get_all("weeklycheckins")
            other = store.get_all("weeklysummaries")  # admin-only export
        """) == []

    def test_unrelated_comment_does_not_exempt(self):
        """Other comments do not exempt a call."""
        violations = check("""
            # load everything
            rows = store.get_all("weeklycheckins")
        """)
        assert len(violations) == 1

    def test_custom_protected_set(self):
        """The guarded collection set can be narrowed."""
        rule = SecureAccessRule(protected=["weeklycheckins"])
        assert rule.check_source('store.get_all("clientprofiles")') == []
        assert len(rule.check_source('store.get_all("weeklycheckins")')) == 1

    def test_syntax_error_propagates(self):
        """Unparseable source is an error, not a clean result."""
        with pytest.raises(SyntaxError):
            check("def broken(:\n")

    def test_check_paths(self, tmp_path):
        """Directories are scanned recursively."""
        package = tmp_path / "pkg"
        package.mkdir()
        (package / "clean.py").write_text('store.get_all("memberroles")\n')
        (package / "leaky.py").write_text('store.get_all("clientprofiles")\n')
        (package / "notes.txt").write_text('store.get_all("clientprofiles")\n')

        violations = SecureAccessRule().check_paths([str(tmp_path)])

        assert len(violations) == 1
        assert isinstance(violations[0], Violation)
        assert violations[0].path.endswith("leaky.py")

    def test_project_has_no_violations(self):
        """The service's own code never bypasses the gateway."""
        paths = [os.path.join(ROOT, name) for name in ("access", "api", "database", "guardrails", "main.py")]
        assert SecureAccessRule().check_paths(paths) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
