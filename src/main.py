# pyright: reportMissingTypeStubs=false
"""
Clinic Scheduler Backend API

A FastAPI application for a therapy clinic's appointments and billing.

Features:
- Single and recurring appointments with series-wide conflict detection
- Invoices generated from appointments, grouped per recurring series
- Therapist payments, which lock what has already been paid
- Patient and therapist directory
- PostgreSQL database with SQLAlchemy ORM
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Union

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import appointments, invoices, patients, therapist_payments, therapists
from core.config import ENABLE_SLOT_LOCKING
from core.constants import CORS_ORIGINS
from core.exceptions import (
    AlreadySettledError,
    InvariantViolationError,
    NotFoundError,
    ScopeRequiredError,
    SlotConflictError,
)
from utils.datetime_utils import format_time

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)
logger.info("🏥 Clinic Scheduler API starting...")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("🚀 Starting Clinic Scheduler Backend API")
    if ENABLE_SLOT_LOCKING:
        logger.info("🔒 In-process slot locking enabled")
    else:
        logger.info("Slot locking disabled; concurrent bookings of one slot are not serialized")

    yield

    logger.info("🛑 Shutting down Clinic Scheduler Backend API")


# Create FastAPI application
app = FastAPI(
    title="Clinic Scheduler Backend",
    description="Appointments, recurring series, invoices and therapist payments",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

_ROUTER_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    404: {"description": "Unknown patient, therapist, appointment or invoice"},
    409: {"description": "Slot taken, invoice already settled or scope required"},
    500: {"description": "Internal server error"},
}

for router_module, prefix, tag in (
    (appointments, "/api", "appointments"),
    (invoices, "/api/invoices", "invoices"),
    (therapist_payments, "/api/therapist-payments", "therapist-payments"),
    (patients, "/api/patients", "patients"),
    (therapists, "/api/therapists", "therapists"),
):
    app.include_router(router_module.router, prefix=prefix, tags=[tag], responses=_ROUTER_RESPONSES)


@app.get(
    "/",
    summary="Service information",
)
async def root() -> Dict[str, Any]:
    return {
        "message": "Clinic Scheduler Backend API",
        "version": app.version,
        "status": "running",
        "slot_locking": ENABLE_SLOT_LOCKING,
    }


@app.get(
    "/health",
    summary="Liveness check",
)
async def health_check() -> Dict[str, str]:
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Erreur interne du serveur", "type": "internal_error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"},
    )


@app.exception_handler(SlotConflictError)
async def slot_conflict_handler(request: Request, exc: SlotConflictError):
    """A requested slot (or one of a series' slots) is taken."""
    logger.warning(f"Slot conflict: {exc}")
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "type": "slot_conflict",
            "conflict": {
                "date": exc.conflict_date.isoformat(),
                "time": format_time(exc.conflict_time),
                "patient_id": exc.patient_id,
                "patient_name": exc.patient_name,
                "appointment_id": exc.appointment_id,
            },
        },
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(
        status_code=404,
        content={"detail": str(exc), "type": "not_found"},
    )


@app.exception_handler(AlreadySettledError)
async def already_settled_handler(request: Request, exc: AlreadySettledError):
    """The therapist has already been paid; the change is refused."""
    logger.warning(f"Already settled: {exc}")
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "type": "already_settled", "invoice_id": exc.invoice_id},
    )


@app.exception_handler(ScopeRequiredError)
async def scope_required_handler(request: Request, exc: ScopeRequiredError):
    """Cancelling a series member needs the client to choose a scope."""
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "type": "scope_required",
            "allowed_scopes": exc.allowed_scopes,
        },
    )


@app.exception_handler(InvariantViolationError)
async def invariant_violation_handler(request: Request, exc: InvariantViolationError):
    logger.exception(f"Invariant violation: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Erreur interne du serveur", "type": "invariant_violation"},
    )
