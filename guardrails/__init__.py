"""Guardrails module."""
from .secure_access import (
    Violation,
    SecureAccessRule,
    check_secure_access,
)

__all__ = [
    "Violation",
    "SecureAccessRule",
    "check_secure_access",
]
