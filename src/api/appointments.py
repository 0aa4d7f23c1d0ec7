"""
Appointment API endpoints.

Availability lookups, single, multi-slot and recurring appointment creation,
edits, status changes and guarded (single or bulk) deletion.
"""

import logging
from datetime import date as date_type, time as time_type
from typing import Any, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from api.responses import (
    AppointmentCreateResponse,
    AppointmentListResponse,
    AppointmentResponse,
    AvailabilityResponse,
    BulkDeletionResponse,
    ConflictResponse,
    DeletionResponse,
    StatusChangeResponse,
)
from core.constants import (
    MAX_NOTES_LENGTH,
    MAX_RECURRING_COUNT,
    MAX_STRING_LENGTH,
    MIN_RECURRING_COUNT,
    PARTIAL_DELETION_MESSAGE,
    REASON_NOT_FOUND,
)
from core.database import get_db
from core.exceptions import SchedulingError
from services import (
    AppointmentService,
    AvailabilityService,
    DeletionService,
    InvoiceService,
    RecurringAppointmentService,
)
from shared_types.availability import Occurrence
from shared_types.scheduling import AppointmentCreate, AppointmentPatch, DeletionResult
from shared_types.statuses import AppointmentStatus, CancellationScope, RecurringFrequency
from utils.datetime_utils import parse_date_string, parse_time_string
from utils.status_labels import parse_appointment_status, parse_frequency, parse_scope

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_date(v: Union[str, date_type, None]) -> Optional[date_type]:
    if v is None or isinstance(v, date_type):
        return v
    return parse_date_string(v)


def _parse_time(v: Union[str, time_type, None]) -> Optional[time_type]:
    if v is None or isinstance(v, time_type):
        return v
    return parse_time_string(v)


# Request Models
class AppointmentCreateRequest(BaseModel):
    """Request model for creating an appointment or a recurring series."""
    patient_id: int
    therapist_id: int
    date: date_type
    time: time_type
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    duration: Optional[int] = Field(None, gt=0)
    type: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_count: Optional[int] = None
    group_invoices: bool = True

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, v: Union[str, date_type]) -> Optional[date_type]:
        """Accept YYYY-MM-DD and the legacy dd/MM/yyyy format."""
        return _parse_date(v)

    @field_validator('time', mode='before')
    @classmethod
    def validate_time(cls, v: Union[str, time_type]) -> Optional[time_type]:
        return _parse_time(v)

    @field_validator('status', mode='before')
    @classmethod
    def validate_status(cls, v: Union[str, AppointmentStatus]) -> AppointmentStatus:
        """Accept canonical values and French labels ("Confirmé", "En attente", ...)."""
        return parse_appointment_status(v)

    @field_validator('recurring_frequency', mode='before')
    @classmethod
    def validate_frequency(
        cls, v: Union[str, RecurringFrequency, None]
    ) -> Optional[RecurringFrequency]:
        if v is None or v == "":
            return None
        return parse_frequency(v)

    @model_validator(mode='after')
    def validate_recurrence(self) -> "AppointmentCreateRequest":
        if not self.is_recurring:
            return self
        if self.recurring_frequency is None:
            raise ValueError("recurring_frequency is required for a recurring appointment")
        if self.recurring_count is None:
            raise ValueError("recurring_count is required for a recurring appointment")
        if not MIN_RECURRING_COUNT <= self.recurring_count <= MAX_RECURRING_COUNT:
            raise ValueError(
                f"recurring_count must be between {MIN_RECURRING_COUNT} and {MAX_RECURRING_COUNT}"
            )
        return self


class AppointmentUpdateRequest(BaseModel):
    """
    Request model for editing an appointment.

    Only the fields present in the request body are applied.
    """
    therapist_id: Optional[int] = None
    date: Optional[date_type] = None
    time: Optional[time_type] = None
    duration: Optional[int] = Field(None, gt=0)
    type: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)
    status: Optional[AppointmentStatus] = None
    scope: Optional[CancellationScope] = None

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, v: Union[str, date_type, None]) -> Optional[date_type]:
        return _parse_date(v)

    @field_validator('time', mode='before')
    @classmethod
    def validate_time(cls, v: Union[str, time_type, None]) -> Optional[time_type]:
        return _parse_time(v)

    @field_validator('status', mode='before')
    @classmethod
    def validate_status(
        cls, v: Union[str, AppointmentStatus, None]
    ) -> Optional[AppointmentStatus]:
        return None if v is None else parse_appointment_status(v)

    @field_validator('scope', mode='before')
    @classmethod
    def validate_scope(
        cls, v: Union[str, CancellationScope, None]
    ) -> Optional[CancellationScope]:
        return None if v is None else parse_scope(v)

    def to_patch(self) -> AppointmentPatch:
        """Build a patch holding only the fields sent by the client."""
        patch = AppointmentPatch()
        for name in ("therapist_id", "date", "time", "duration", "type", "notes", "status"):
            if name in self.model_fields_set:
                value = getattr(self, name)
                if value is None and name in ("therapist_id", "date", "time", "status"):
                    raise ValueError(f"{name} cannot be null")
                setattr(patch, name, value)
        return patch


class StatusUpdateRequest(BaseModel):
    """Request model for a status change."""
    status: AppointmentStatus
    scope: Optional[CancellationScope] = Field(
        None, description="Required when cancelling a member of a recurring series"
    )

    @field_validator('status', mode='before')
    @classmethod
    def validate_status(cls, v: Union[str, AppointmentStatus]) -> AppointmentStatus:
        return parse_appointment_status(v)

    @field_validator('scope', mode='before')
    @classmethod
    def validate_scope(
        cls, v: Union[str, CancellationScope, None]
    ) -> Optional[CancellationScope]:
        return None if v is None else parse_scope(v)


class SlotRequest(BaseModel):
    date: date_type
    time: time_type

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, v: Union[str, date_type]) -> Optional[date_type]:
        return _parse_date(v)

    @field_validator('time', mode='before')
    @classmethod
    def validate_time(cls, v: Union[str, time_type]) -> Optional[time_type]:
        return _parse_time(v)


class MultipleAppointmentsRequest(BaseModel):
    """Request model for booking one patient on several explicit slots."""
    patient_id: int
    therapist_id: int
    slots: List[SlotRequest] = Field(..., min_length=1, max_length=MAX_RECURRING_COUNT)
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    duration: Optional[int] = Field(None, gt=0)
    type: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)
    group_invoices: bool = True

    @field_validator('status', mode='before')
    @classmethod
    def validate_status(cls, v: Union[str, AppointmentStatus]) -> AppointmentStatus:
        return parse_appointment_status(v)


class BulkDeleteRequest(BaseModel):
    ids: List[int]


def _deletion_failure(result: DeletionResult) -> JSONResponse:
    """Map a failed guarded deletion to 404 (unknown id) or 409 (already settled)."""
    status_code = (
        status.HTTP_404_NOT_FOUND if result.reason == REASON_NOT_FOUND
        else status.HTTP_409_CONFLICT
    )
    content: dict[str, Any] = {"detail": result.message, "type": result.reason}
    content.update(result.to_dict())
    return JSONResponse(status_code=status_code, content=content)


# Endpoints
@router.get("/availability", response_model=AvailabilityResponse)
async def check_availability(
    therapist_id: int = Query(...),
    date: str = Query(..., description="YYYY-MM-DD"),
    time: str = Query(..., description="HH:MM"),
    exclude_appointment_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    """Check whether a therapist's slot is free."""
    result = AvailabilityService.check_availability(
        db,
        therapist_id,
        parse_date_string(date),
        parse_time_string(time),
        exclude_appointment_id=exclude_appointment_id,
    )
    conflict = None
    if result.conflict is not None:
        conflict = ConflictResponse(**result.conflict.to_dict())
    return AvailabilityResponse(available=result.available, conflict=conflict)


@router.get("/appointments", response_model=AppointmentListResponse)
async def list_appointments(
    therapist_id: Optional[int] = Query(None),
    patient_id: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    """List appointments, optionally filtered by therapist, patient and date range."""
    appointments = AppointmentService.list_appointments(
        db,
        therapist_id=therapist_id,
        patient_id=patient_id,
        start_date=parse_date_string(start_date) if start_date else None,
        end_date=parse_date_string(end_date) if end_date else None,
    )
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_model(a) for a in appointments]
    )


@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(appointment_id: int, db: Session = Depends(get_db)):
    appointment = AppointmentService.get_appointment(db, appointment_id)
    return AppointmentResponse.from_model(appointment)


@router.post(
    "/appointments",
    response_model=AppointmentCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_appointment(request: AppointmentCreateRequest, db: Session = Depends(get_db)):
    """
    Create an appointment.

    With ``is_recurring`` the whole series is created, or nothing if any of
    its slots is taken (409).
    """
    data = AppointmentCreate(
        patient_id=request.patient_id,
        therapist_id=request.therapist_id,
        date=request.date,
        time=request.time,
        status=request.status,
        duration=request.duration,
        type=request.type,
        notes=request.notes,
    )
    try:
        if request.is_recurring:
            created = RecurringAppointmentService.create_series(
                db,
                data,
                request.recurring_frequency,
                request.recurring_count,
                group_invoices=request.group_invoices,
                check_first_slot=True,
            )
        else:
            created = [AppointmentService.create_single_appointment(db, data)]

        invoice = InvoiceService.resolve_invoice(db, created[0])
        return AppointmentCreateResponse(
            appointments=[AppointmentResponse.from_model(a) for a in created],
            invoice_id=invoice.id if invoice is not None else None,
        )
    except (SchedulingError, ValueError):
        raise
    except Exception as e:
        logger.exception(f"Failed to create appointment: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Impossible de créer le rendez-vous",
        )


@router.post(
    "/appointments/multiple",
    response_model=AppointmentCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_multiple_appointments(
    request: MultipleAppointmentsRequest,
    db: Session = Depends(get_db),
):
    """
    Book several slots at once, billed through one grouped invoice.

    Nothing is created if any slot is taken (409).
    """
    first = request.slots[0]
    data = AppointmentCreate(
        patient_id=request.patient_id,
        therapist_id=request.therapist_id,
        date=first.date,
        time=first.time,
        status=request.status,
        duration=request.duration,
        type=request.type,
        notes=request.notes,
    )
    slots = [Occurrence(date=s.date, time=s.time) for s in request.slots]
    try:
        created = AppointmentService.create_multiple(
            db, data, slots, group_invoices=request.group_invoices
        )
        invoice = InvoiceService.resolve_invoice(db, created[0])
        return AppointmentCreateResponse(
            appointments=[AppointmentResponse.from_model(a) for a in created],
            invoice_id=invoice.id if invoice is not None else None,
        )
    except (SchedulingError, ValueError):
        raise
    except Exception as e:
        logger.exception(f"Failed to book multiple appointments: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Impossible de créer les rendez-vous",
        )


@router.put("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    request: AppointmentUpdateRequest,
    db: Session = Depends(get_db),
):
    """Edit an appointment. Moving it re-checks the target slot."""
    try:
        appointment = AppointmentService.update_appointment(
            db, appointment_id, request.to_patch(), scope=request.scope
        )
        return AppointmentResponse.from_model(appointment)
    except (SchedulingError, ValueError):
        raise
    except Exception as e:
        logger.exception(f"Failed to update appointment {appointment_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Impossible de modifier le rendez-vous",
        )


@router.patch("/appointments/{appointment_id}/status", response_model=StatusChangeResponse)
async def change_appointment_status(
    appointment_id: int,
    request: StatusUpdateRequest,
    db: Session = Depends(get_db),
):
    """
    Change an appointment's status.

    Cancelling a series member needs a scope: "occurrence" or "series" for the
    first appointment, "occurrence" or "following" for the others.
    """
    result = AppointmentService.change_status(
        db, appointment_id, request.status, scope=request.scope
    )
    if result.deletion is not None and not result.deletion.success:
        return _deletion_failure(result.deletion)
    return StatusChangeResponse.from_result(result)


@router.delete(
    "/appointments",
    response_model=BulkDeletionResponse,
    responses={207: {"model": BulkDeletionResponse, "description": "Some deletions were refused"}},
)
async def delete_appointments(request: BulkDeleteRequest, db: Session = Depends(get_db)):
    """
    Delete several appointments. Each id is guarded on its own; refusals are
    reported per id with a 207 status.
    """
    if not request.ids:
        raise ValueError("ids must list at least one appointment")

    outcomes = DeletionService.delete_many(db, request.ids)
    if all(result.success for result in outcomes.values()):
        return BulkDeletionResponse.from_outcomes(outcomes, "Rendez-vous supprimés")

    report = BulkDeletionResponse.from_outcomes(outcomes, PARTIAL_DELETION_MESSAGE)
    return JSONResponse(status_code=status.HTTP_207_MULTI_STATUS, content=report.model_dump())


@router.delete("/appointments/{appointment_id}", response_model=DeletionResponse)
async def delete_appointment(appointment_id: int, db: Session = Depends(get_db)):
    """Delete an appointment, refused once the therapist has been paid for it."""
    result = DeletionService.delete_appointment(db, appointment_id)
    if not result.success:
        return _deletion_failure(result)
    return DeletionResponse.from_result(result)


@router.delete("/appointments/{appointment_id}/series", response_model=DeletionResponse)
async def delete_series(appointment_id: int, db: Session = Depends(get_db)):
    """Delete a whole recurring series through its first appointment."""
    result = DeletionService.delete_series(db, appointment_id)
    if not result.success:
        return _deletion_failure(result)
    return DeletionResponse.from_result(result)
