"""
Static secure-access rule.

Scans Python source for code that reads a protected collection straight
from the record store instead of going through the SecureDataAccess
gateway:

    store.get_all("clientassignedworkouts")          # flagged
    store.get_by_id(ProtectedCollection.WEEKLY_CHECKINS, item_id)  # flagged

A direct read is allowed only inside an explicitly marked admin-only code
path: a function decorated with @admin_only, or a call carrying a
`# security:` / `# admin-only` comment on its line or the line above.

DEFENSE IN DEPTH:
- Gateway: enforces scoping at runtime
- This rule: catches call sites that would bypass the gateway, before
  they ship
"""
import ast
import io
import logging
import os
import tokenize
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from access.collections import ProtectedCollection, get_protected_collections

logger = logging.getLogger(__name__)

# Raw store method -> gateway method to use instead
RAW_STORE_METHODS = {
    "get_all": "get_scoped",
    "get_by_id": "get_by_id_scoped",
}

ADMIN_DECORATOR = "admin_only"

EXEMPT_COMMENT_MARKERS = ("security:", "admin-only", "admin only")

SKIP_DIRS = {"__pycache__", ".git", ".venv", "venv", "build", "dist", ".pytest_cache"}


@dataclass(frozen=True)
class Violation:
    """A direct store read of a protected collection."""
    path: str
    line: int
    column: int
    collection: str
    method: str

    @property
    def message(self) -> str:
        return (
            f"Use SecureDataAccess.{RAW_STORE_METHODS[self.method]}() instead of "
            f"{self.method}() for protected collection \"{self.collection}\". "
            f"Direct reads are only allowed in admin-only code paths."
        )

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}: {self.message}"


def _comment_lines(source: str) -> Dict[int, str]:
    """Map line number -> lower-cased comment text."""
    comments = {}
    for token in tokenize.generate_tokens(io.StringIO(source).readline):
        if token.type == tokenize.COMMENT:
            comments[token.start[0]] = token.string.lower()
    return comments


def _decorator_name(node: ast.expr) -> Optional[str]:
    if isinstance(node, ast.Call):
        node = node.func
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


class _CallVisitor(ast.NodeVisitor):
    """Walks a module collecting protected raw-store reads."""

    def __init__(self, rule: "SecureAccessRule", path: str, comments: Dict[int, str]):
        self.rule = rule
        self.path = path
        self.comments = comments
        self.admin_depth = 0
        self.violations: List[Violation] = []

    def _visit_function(self, node):
        is_admin = any(_decorator_name(d) == ADMIN_DECORATOR for d in node.decorator_list)
        if is_admin:
            self.admin_depth += 1
        self.generic_visit(node)
        if is_admin:
            self.admin_depth -= 1

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def visit_Call(self, node: ast.Call):
        func = node.func
        if isinstance(func, ast.Attribute) and func.attr in RAW_STORE_METHODS:
            collection = self.rule.collection_name(self._collection_arg(node))
            if collection and not self._is_exempt(node):
                self.violations.append(
                    Violation(self.path, node.lineno, node.col_offset, collection, func.attr)
                )
        self.generic_visit(node)

    @staticmethod
    def _collection_arg(node: ast.Call) -> Optional[ast.expr]:
        if node.args:
            return node.args[0]
        for keyword in node.keywords:
            if keyword.arg == "collection":
                return keyword.value
        return None

    def _is_exempt(self, node: ast.Call) -> bool:
        if self.admin_depth:
            return True
        for line in (node.lineno, node.lineno - 1):
            comment = self.comments.get(line, "")
            if any(marker in comment for marker in EXEMPT_COMMENT_MARKERS):
                return True
        return False


class SecureAccessRule:
    """
    Source rule flagging direct reads of protected collections.

    Args:
        protected: Collection names to guard (defaults to the protected
            allowlist)
    """

    def __init__(self, protected: Optional[Iterable[str]] = None):
        self.protected = set(protected) if protected is not None else set(get_protected_collections())

    def collection_name(self, node: Optional[ast.expr]) -> Optional[str]:
        """
        Return the protected collection a call argument names, if any.

        Recognises string literals and ProtectedCollection.MEMBER
        (optionally with `.value`).
        """
        if node is None:
            return None

        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            return node.value if node.value in self.protected else None

        if isinstance(node, ast.Attribute) and node.attr == "value":
            node = node.value

        if (
            isinstance(node, ast.Attribute)
            and isinstance(node.value, ast.Name)
            and node.value.id == ProtectedCollection.__name__
        ):
            member = ProtectedCollection.__members__.get(node.attr)
            if member is not None and member.value in self.protected:
                return member.value

        return None

    def check_source(self, source: str, path: str = "<string>") -> List[Violation]:
        """
        Check a module's source.

        Raises:
            SyntaxError: If the source does not parse
        """
        tree = ast.parse(source, filename=path)
        visitor = _CallVisitor(self, path, _comment_lines(source))
        visitor.visit(tree)
        return visitor.violations

    def check_file(self, path: str) -> List[Violation]:
        with open(path, encoding="utf-8") as handle:
            return self.check_source(handle.read(), path)

    def check_paths(self, paths: Iterable[str]) -> List[Violation]:
        """Check files and directories (recursively, *.py only)."""
        violations = []
        for path in paths:
            if os.path.isdir(path):
                for root, dirs, files in os.walk(path):
                    dirs[:] = sorted(d for d in dirs if d not in SKIP_DIRS)
                    for name in sorted(files):
                        if name.endswith(".py"):
                            violations.extend(self.check_file(os.path.join(root, name)))
            else:
                violations.extend(self.check_file(path))

        for violation in violations:
            logger.warning("%s", violation)
        return violations


def check_secure_access(source: str, path: str = "<string>") -> List[Violation]:
    """
    Convenience function to run the rule over a source string.

    Args:
        source: Python source code
        path: Name reported in violations

    Returns:
        List of violations (empty if the source is clean)
    """
    return SecureAccessRule().check_source(source, path)
