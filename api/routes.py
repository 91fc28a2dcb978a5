"""
API routes for the Fitness Coaching access service.

Identity is taken from the `X-Member-Id` header (set by the identity
provider in front of this service); `X-Member-Email` is display-only.
Access-layer exceptions are mapped to HTTP responses by the handlers
registered in main.py.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from config import settings
from database import get_db, RecordStore
from access import (
    AuthContext,
    AuthContextResolver,
    Identity,
    RelationshipDirectory,
    ResolutionState,
    Role,
    RoleDirectory,
    SecureDataAccess,
    Unauthorized,
    admin_only,
    backfill_default_trainer,
    onboard_member,
    run_full_audit,
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
    AuditReportResponse,
    SuccessResponse,
)

logger = logging.getLogger(__name__)


# Router for protected collection access
data_router = APIRouter(prefix="/data", tags=["Data"])

# Router for role endpoints
roles_router = APIRouter(prefix="/roles", tags=["Roles"])

# Router for trainer-client assignments
assignments_router = APIRouter(prefix="/assignments", tags=["Assignments"])

# Router for integrity audits
audit_router = APIRouter(prefix="/audit", tags=["Audit"])


# ============== Dependencies ==============

def get_store(db: Session = Depends(get_db)) -> RecordStore:
    """Record store bound to the request's session."""
    return RecordStore(db)


def get_identity(
    x_member_id: Optional[str] = Header(None),
    x_member_email: Optional[str] = Header(None),
) -> Identity:
    """Identity supplied by the upstream identity provider."""
    return Identity(member_id=x_member_id or None, login_email=x_member_email)


def get_auth_context(
    identity: Identity = Depends(get_identity),
    store: RecordStore = Depends(get_store),
) -> AuthContext:
    """
    Resolve the caller's auth context.

    - No identity -> 401
    - Role lookup failed -> 503 (never treated as "no role")
    - No active role -> 403
    """
    resolution = AuthContextResolver(RoleDirectory(store)).resolve_with_status(identity)

    if resolution.state == ResolutionState.ANONYMOUS:
        raise HTTPException(status_code=401, detail="Authentication required")
    if resolution.state == ResolutionState.DEGRADED:
        raise HTTPException(status_code=503, detail="Authorization temporarily unavailable")
    if resolution.state == ResolutionState.NO_ROLE:
        logger.warning("Member %s has no active role", identity.member_id)
        raise HTTPException(status_code=403, detail="Access denied")
    return resolution.context


def get_gateway(store: RecordStore = Depends(get_store)) -> SecureDataAccess:
    return SecureDataAccess(store)


# ============== Admin operations ==============

@admin_only
def _reassign(relationships: RelationshipDirectory, auth_context: AuthContext, request: ReassignRequest):
    return relationships.reassign(request.client_id, request.from_trainer_id, request.to_trainer_id)


@admin_only
def _assign(relationships: RelationshipDirectory, auth_context: AuthContext, request: AssignClientRequest):
    return relationships.assign_client_to_trainer(request.client_id, request.trainer_id, notes=request.notes)


@admin_only
def _backfill(store: RecordStore, auth_context: AuthContext, trainer_id: str):
    return backfill_default_trainer(store, trainer_id)


@admin_only
def _audit(store: RecordStore, auth_context: AuthContext):
    return run_full_audit(store)


# ============== Data Endpoints ==============

@data_router.get("/{collection}", response_model=ScopedListResponse)
async def list_records(
    collection: str,
    limit: int = Query(settings.default_page_size, ge=1),
    skip: int = Query(0, ge=0),
    context: AuthContext = Depends(get_auth_context),
    gateway: SecureDataAccess = Depends(get_gateway),
):
    """
    List the caller's records of a protected collection.

    Clients see their own records, trainers the records they own, admins
    everything.
    """
    items = gateway.get_scoped(collection, context, limit=limit, skip=skip)
    return ScopedListResponse(
        collection=collection, count=len(items), limit=limit, skip=skip, items=items
    )


@data_router.get("/{collection}/client/{client_id}", response_model=ScopedListResponse)
async def list_client_records(
    collection: str,
    client_id: str,
    limit: int = Query(settings.default_page_size, ge=1),
    skip: int = Query(0, ge=0),
    context: AuthContext = Depends(get_auth_context),
    gateway: SecureDataAccess = Depends(get_gateway),
):
    """
    List one client's records.

    Trainers must be actively assigned to the client.
    """
    items = gateway.get_for_client(collection, client_id, context, limit=limit, skip=skip)
    return ScopedListResponse(
        collection=collection, count=len(items), limit=limit, skip=skip, items=items
    )


@data_router.get("/{collection}/trainer/{trainer_id}", response_model=ScopedListResponse)
async def list_trainer_records(
    collection: str,
    trainer_id: str,
    limit: int = Query(settings.default_page_size, ge=1),
    skip: int = Query(0, ge=0),
    context: AuthContext = Depends(get_auth_context),
    gateway: SecureDataAccess = Depends(get_gateway),
):
    """List one trainer's records (Admin only)."""
    items = gateway.get_for_trainer(collection, trainer_id, context, limit=limit, skip=skip)
    return ScopedListResponse(
        collection=collection, count=len(items), limit=limit, skip=skip, items=items
    )


@data_router.get("/{collection}/{item_id}")
async def get_record(
    collection: str,
    item_id: str,
    context: AuthContext = Depends(get_auth_context),
    gateway: SecureDataAccess = Depends(get_gateway),
) -> Dict[str, Any]:
    """Get a single record. Missing and not-owned records both return 404."""
    item = gateway.get_by_id_scoped(collection, item_id, context)
    if item is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return item


@data_router.post("/{collection}", status_code=201)
async def create_record(
    collection: str,
    data: Dict[str, Any] = Body(...),
    context: AuthContext = Depends(get_auth_context),
    gateway: SecureDataAccess = Depends(get_gateway),
) -> Dict[str, Any]:
    """Create a record owned by the caller."""
    return gateway.create_scoped(collection, data, context)


@data_router.patch("/{collection}/{item_id}")
async def update_record(
    collection: str,
    item_id: str,
    changes: Dict[str, Any] = Body(...),
    context: AuthContext = Depends(get_auth_context),
    gateway: SecureDataAccess = Depends(get_gateway),
) -> Dict[str, Any]:
    """Update a record the caller owns. Ownership fields cannot change."""
    return gateway.update_scoped(collection, item_id, changes, context)


@data_router.delete("/{collection}/{item_id}", response_model=SuccessResponse)
async def delete_record(
    collection: str,
    item_id: str,
    context: AuthContext = Depends(get_auth_context),
    gateway: SecureDataAccess = Depends(get_gateway),
):
    """Delete a record (Admin only)."""
    gateway.delete_scoped(collection, item_id, context)
    return SuccessResponse(success=True, message="Record deleted", data={"_id": item_id})


# ============== Role Endpoints ==============

@roles_router.get("/me", response_model=AuthContextResponse)
async def get_my_role(
    identity: Identity = Depends(get_identity),
    context: AuthContext = Depends(get_auth_context),
):
    """Get the caller's member id and role."""
    return AuthContextResponse(
        member_id=context.member_id,
        role=context.role.value,
        login_email=identity.login_email,
    )


@roles_router.post("/me/onboard", response_model=AuthContextResponse)
async def onboard_me(
    identity: Identity = Depends(get_identity),
    store: RecordStore = Depends(get_store),
):
    """
    First-use onboarding.

    Gives a new member the 'client' role and assigns them to the default
    trainer when one is configured. Safe to call repeatedly.
    """
    if not identity.member_id:
        raise HTTPException(status_code=401, detail="Authentication required")

    context = onboard_member(store, identity, default_trainer_id=settings.default_trainer_id)
    if context is None:
        raise HTTPException(status_code=403, detail="Access denied")
    return AuthContextResponse(
        member_id=context.member_id,
        role=context.role.value,
        login_email=identity.login_email,
    )


@roles_router.put("/{member_id}", response_model=RoleResponse)
async def set_member_role(
    member_id: str,
    request: SetRoleRequest,
    context: AuthContext = Depends(get_auth_context),
    store: RecordStore = Depends(get_store),
):
    """Change a member's role (Admin only)."""
    RoleDirectory(store).change_role(context.member_id, member_id, request.role)
    return RoleResponse(member_id=member_id, role=request.role.value)


# ============== Assignment Endpoints ==============

@assignments_router.get("/clients", response_model=AssignedClientsResponse)
async def get_assigned_clients(
    trainer_id: Optional[str] = None,
    context: AuthContext = Depends(get_auth_context),
    store: RecordStore = Depends(get_store),
):
    """
    List a trainer's active clients.

    Trainers get their own clients; admins pass `trainer_id`.
    """
    if context.role == Role.TRAINER:
        if trainer_id and trainer_id != context.member_id:
            raise Unauthorized(
                "trainers can only list their own clients",
                member_id=context.member_id,
                action="get_assigned_clients",
            )
        trainer_id = context.member_id
    elif context.role != Role.ADMIN:
        raise Unauthorized(
            "only trainers and admins can list assignments",
            member_id=context.member_id,
            action="get_assigned_clients",
        )
    elif not trainer_id:
        raise HTTPException(status_code=400, detail="trainer_id is required")

    relationships = RelationshipDirectory(store)
    assignments = relationships.get_clients_for_trainer(trainer_id)
    client_ids: List[str] = []
    for row in assignments:
        if row.get("clientId") and row["clientId"] not in client_ids:
            client_ids.append(row["clientId"])
    return AssignedClientsResponse(trainer_id=trainer_id, client_ids=client_ids, assignments=assignments)


@assignments_router.post("", status_code=201)
async def assign_client(
    request: AssignClientRequest,
    context: AuthContext = Depends(get_auth_context),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    """Assign a client to a trainer (Admin only). Idempotent."""
    return _assign(RelationshipDirectory(store), context, request)


@assignments_router.post("/reassign")
async def reassign_client(
    request: ReassignRequest,
    context: AuthContext = Depends(get_auth_context),
    store: RecordStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Move a client to another trainer (Admin only).

    Historical records keep their original trainerId.
    """
    return _reassign(RelationshipDirectory(store), context, request)


@assignments_router.post("/backfill", response_model=BackfillResponse)
async def backfill_assignments(
    request: BackfillRequest,
    context: AuthContext = Depends(get_auth_context),
    store: RecordStore = Depends(get_store),
):
    """Assign every client without a trainer to a trainer (Admin only)."""
    trainer_id = request.trainer_id or settings.default_trainer_id
    if not trainer_id:
        raise HTTPException(status_code=400, detail="No trainer_id given and no default trainer configured")

    summary = _backfill(store, context, trainer_id)
    return BackfillResponse(
        trainer_id=trainer_id,
        total=summary.total,
        assigned=summary.assigned,
        skipped=summary.skipped,
        failed=summary.failed,
        failed_client_ids=summary.failed_client_ids,
    )


# ============== Audit Endpoints ==============

@audit_router.get("/integrity", response_model=AuditReportResponse)
async def audit_integrity(
    context: AuthContext = Depends(get_auth_context),
    store: RecordStore = Depends(get_store),
):
    """Report records missing their ownership fields (Admin only)."""
    results = _audit(store, context)
    return AuditReportResponse(
        total_records=sum(r.total_records for r in results),
        invalid_records=sum(r.invalid_records for r in results),
        results=[r.to_dict() for r in results],
    )
