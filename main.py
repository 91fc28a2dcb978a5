"""
Fitness Coaching Access API

Main FastAPI application for the fitness coaching portal's protected
data. Every read and write of a protected collection is scoped to the
caller's role and trainer-client relationships.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings, setup_logging
from database import init_db
from access import (
    AssignmentError,
    DataIntegrityError,
    InvalidAuthContext,
    InvalidRoleError,
    NotProtectedCollection,
    RecordNotFoundError,
    StoreError,
    Unauthorized,
)
from api import data_router, roles_router, assignments_router, audit_router

logger = logging.getLogger(__name__)


# --------------- Lifespan ---------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler – configure logging and initialise DB on startup."""
    setup_logging()
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized.")
    yield


# --------------- FastAPI app ---------------

app = FastAPI(
    title="Fitness Coaching Access API",
    description="""
API for role- and relationship-scoped access to fitness coaching data.

## Features

### Roles
- **Clients**: See and create only their own records
- **Trainers**: See records they own, and the records of actively assigned clients
- **Admins**: Unrestricted access, role changes, reassignment, audits

### Secure Data Access
- Protected collections are only reachable through the scoped gateway
- Single-record reads return 404 for both missing and not-owned records
- Writes are checked by the data integrity validator

### Onboarding
- First-use members get the 'client' role
- New clients are assigned to the default trainer when one is configured
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------------- Exception handlers ---------------

@app.exception_handler(Unauthorized)
async def unauthorized_handler(request: Request, exc: Unauthorized):
    # The reason is logged, never returned
    logger.warning("Denied %s %s for %s: %s", request.method, request.url.path, exc.member_id, exc.reason)
    return JSONResponse(status_code=403, content={"detail": "Access denied", "type": "Unauthorized"})


@app.exception_handler(InvalidAuthContext)
async def invalid_auth_context_handler(request: Request, exc: InvalidAuthContext):
    return JSONResponse(status_code=400, content={"detail": exc.message, "type": "InvalidAuthContext"})


@app.exception_handler(NotProtectedCollection)
async def not_protected_handler(request: Request, exc: NotProtectedCollection):
    return JSONResponse(status_code=400, content={"detail": str(exc), "type": "NotProtectedCollection"})


@app.exception_handler(DataIntegrityError)
async def data_integrity_handler(request: Request, exc: DataIntegrityError):
    return JSONResponse(
        status_code=422,
        content={
            "detail": exc.message,
            "type": "DataIntegrityError",
            "missing_fields": exc.missing_fields,
        },
    )


@app.exception_handler(RecordNotFoundError)
async def not_found_handler(request: Request, exc: RecordNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Record not found", "type": "RecordNotFoundError"})


@app.exception_handler(AssignmentError)
async def assignment_error_handler(request: Request, exc: AssignmentError):
    return JSONResponse(status_code=400, content={"detail": exc.message, "type": "AssignmentError"})


@app.exception_handler(InvalidRoleError)
async def invalid_role_handler(request: Request, exc: InvalidRoleError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "type": "InvalidRoleError"})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=503,
        content={"detail": "Service temporarily unavailable", "type": "StoreError"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__}
    )


# Include routers
app.include_router(data_router)
app.include_router(roles_router)
app.include_router(assignments_router)
app.include_router(audit_router)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - API health check."""
    return {
        "status": "online",
        "service": "Fitness Coaching Access API",
        "version": "1.0.0"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
