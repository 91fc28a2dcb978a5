"""API module for the Fitness Coaching access service."""
from .routes import (
    data_router,
    roles_router,
    assignments_router,
    audit_router,
    get_store,
    get_identity,
    get_auth_context,
)
from .schemas import (
    SetRoleRequest,
    AssignClientRequest,
    ReassignRequest,
    BackfillRequest,
    AuthContextResponse,
    RoleResponse,
    ScopedListResponse,
    AssignedClientsResponse,
    BackfillResponse,
    AuditResultResponse,
    AuditReportResponse,
    SuccessResponse,
    ErrorResponse,
)

__all__ = [
    "data_router",
    "roles_router",
    "assignments_router",
    "audit_router",
    "get_store",
    "get_identity",
    "get_auth_context",
    "SetRoleRequest",
    "AssignClientRequest",
    "ReassignRequest",
    "BackfillRequest",
    "AuthContextResponse",
    "RoleResponse",
    "ScopedListResponse",
    "AssignedClientsResponse",
    "BackfillResponse",
    "AuditResultResponse",
    "AuditReportResponse",
    "SuccessResponse",
    "ErrorResponse",
]
