"""
Custom exceptions for the access control layer.
"""
from typing import List, Optional

from database.store import StoreError, RecordNotFoundError


class AuthorizationError(Exception):
    """Raised when a well-formed request is denied by policy."""
    
    def __init__(self, message: str, member_id: str = None, action: str = None):
        self.message = message
        self.member_id = member_id
        self.action = action
        super().__init__(self.message)


class Unauthorized(AuthorizationError):
    """
    Raised when the caller is not allowed to perform an operation:
    wrong subject, unassigned trainer, or insufficient role.
    """
    
    def __init__(self, reason: str, member_id: str = None, action: str = None):
        super().__init__(f"Unauthorized: {reason}", member_id=member_id, action=action)
        self.reason = reason


class InvalidAuthContext(Exception):
    """Raised when an auth context is missing or malformed (caller bug)."""
    
    def __init__(self, message: str = "Invalid authentication context: memberId and role are required"):
        self.message = message
        super().__init__(self.message)


class NotProtectedCollection(Exception):
    """Raised when the gateway is asked to scope a collection outside the allowlist."""
    
    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Collection {collection} is not a protected collection")


class DataIntegrityError(Exception):
    """Raised when a write would create a record without its scoping fields."""
    
    def __init__(self, collection: str, missing_fields: List[str], rule):
        self.collection = collection
        self.missing_fields = list(missing_fields)
        self.rule = rule
        message = (
            f"Data Integrity Violation in {collection}: "
            f"Missing required fields: {', '.join(self.missing_fields)}. "
            f"{rule.description}"
        )
        self.message = message
        super().__init__(message)


class InvalidRoleError(Exception):
    """Raised when a role value is not one of client/trainer/admin."""
    
    def __init__(self, role: Optional[str]):
        self.role = role
        super().__init__(f"Invalid role: {role}")


class AssignmentError(Exception):
    """Raised when a trainer-client assignment change cannot be applied."""
    
    def __init__(self, message: str, client_id: str = None, trainer_id: str = None):
        self.message = message
        self.client_id = client_id
        self.trainer_id = trainer_id
        super().__init__(self.message)


__all__ = [
    "AuthorizationError",
    "Unauthorized",
    "InvalidAuthContext",
    "NotProtectedCollection",
    "DataIntegrityError",
    "InvalidRoleError",
    "AssignmentError",
    "StoreError",
    "RecordNotFoundError",
]
