"""
Pydantic schemas for API requests and responses.
"""
from typing import Optional, List, Any, Dict
from pydantic import BaseModel, Field

from access import Role


# Request schemas
class SetRoleRequest(BaseModel):
    """Request to change a member's role (admin only)."""
    role: Role = Field(..., description="New role: client, trainer or admin")


class AssignClientRequest(BaseModel):
    """Request to assign a client to a trainer."""
    client_id: str = Field(..., min_length=1, description="Client member id")
    trainer_id: str = Field(..., min_length=1, description="Trainer member id")
    notes: str = Field(default="", description="Free-text assignment notes")


class ReassignRequest(BaseModel):
    """Request to move a client between trainers (admin only)."""
    client_id: str = Field(..., min_length=1, description="Client member id")
    from_trainer_id: str = Field(..., min_length=1, description="Current trainer")
    to_trainer_id: str = Field(..., min_length=1, description="New trainer")


class BackfillRequest(BaseModel):
    """Request to assign every unassigned client to a trainer."""
    trainer_id: Optional[str] = Field(
        None, description="Trainer to assign to (defaults to the configured default trainer)"
    )


# Response schemas
class AuthContextResponse(BaseModel):
    """The caller's resolved auth context."""
    member_id: str
    role: str
    login_email: Optional[str] = None


class RoleResponse(BaseModel):
    """A member's role after a change."""
    member_id: str
    role: str


class ScopedListResponse(BaseModel):
    """
    Records of a protected collection visible to the caller.

    count is the number of items on this page, not a collection total.
    """
    collection: str
    count: int
    limit: int
    skip: int
    items: List[Dict[str, Any]]


class AssignedClientsResponse(BaseModel):
    """A trainer's active client assignments."""
    trainer_id: str
    client_ids: List[str]
    assignments: List[Dict[str, Any]]


class BackfillResponse(BaseModel):
    """Outcome of a trainer backfill."""
    trainer_id: str
    total: int
    assigned: int
    skipped: int
    failed: int
    failed_client_ids: List[str]


class AuditResultResponse(BaseModel):
    """Integrity audit of a single collection."""
    collection: str
    total_records: int
    missing_client_id: int
    missing_trainer_id: int
    missing_both: int
    invalid_records: int
    percentage_affected: int
    sample_ids: List[str]
    timestamp: str


class AuditReportResponse(BaseModel):
    """Integrity audit of every validated collection."""
    total_records: int
    invalid_records: int
    results: List[AuditResultResponse]


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str
    error_type: Optional[str]


class SuccessResponse(BaseModel):
    """Generic success response."""
    success: bool
    message: str
    data: Optional[Any]
