"""
Invoice API endpoints.
"""

import logging
from datetime import date as date_type
from typing import Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from api.responses import InvoiceListResponse, InvoiceResponse
from core.constants import MAX_NOTES_LENGTH
from core.database import get_db
from services import InvoiceService
from shared_types.scheduling import InvoicePatch
from shared_types.statuses import InvoiceStatus
from utils.datetime_utils import parse_date_string
from utils.status_labels import parse_invoice_status

logger = logging.getLogger(__name__)

router = APIRouter()


class InvoiceUpdateRequest(BaseModel):
    """
    Request model for editing an invoice.

    Setting the status to paid records the therapist payment. Amounts are not
    editable; they follow the appointments.
    """
    status: Optional[InvoiceStatus] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    due_date: Optional[date_type] = None
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)

    @field_validator('status', mode='before')
    @classmethod
    def validate_status(cls, v: Union[str, InvoiceStatus, None]) -> Optional[InvoiceStatus]:
        """Accept canonical values and French labels ("À payer", "Payée", ...)."""
        return None if v is None else parse_invoice_status(v)

    @field_validator('due_date', mode='before')
    @classmethod
    def validate_due_date(cls, v: Union[str, date_type, None]) -> Optional[date_type]:
        if v is None or isinstance(v, date_type):
            return v
        return parse_date_string(v)

    def to_patch(self) -> InvoicePatch:
        patch = InvoicePatch()
        for name in ("status", "payment_method", "due_date", "notes"):
            if name in self.model_fields_set:
                value = getattr(self, name)
                if value is None and name in ("status", "due_date"):
                    raise ValueError(f"{name} cannot be null")
                setattr(patch, name, value)
        return patch


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(db: Session = Depends(get_db)):
    """All invoices, most recently issued first."""
    invoices = InvoiceService.list_invoices(db)
    return InvoiceListResponse(invoices=[InvoiceResponse.from_model(i) for i in invoices])


@router.get("/patient/{patient_id}", response_model=InvoiceListResponse)
async def list_patient_invoices(patient_id: int, db: Session = Depends(get_db)):
    invoices = InvoiceService.list_invoices(db, patient_id=patient_id)
    return InvoiceListResponse(invoices=[InvoiceResponse.from_model(i) for i in invoices])


@router.get("/therapist/{therapist_id}", response_model=InvoiceListResponse)
async def list_therapist_invoices(therapist_id: int, db: Session = Depends(get_db)):
    invoices = InvoiceService.list_invoices(db, therapist_id=therapist_id)
    return InvoiceListResponse(invoices=[InvoiceResponse.from_model(i) for i in invoices])


@router.get("/appointment/{appointment_id}", response_model=InvoiceResponse)
async def get_appointment_invoice(appointment_id: int, db: Session = Depends(get_db)):
    """The invoice billing an appointment; a series session resolves to the series invoice."""
    invoice = InvoiceService.get_invoice_for_appointment(db, appointment_id)
    return InvoiceResponse.from_model(invoice)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    invoice = InvoiceService.get_invoice(db, invoice_id)
    return InvoiceResponse.from_model(invoice)


@router.put("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: int,
    request: InvoiceUpdateRequest,
    db: Session = Depends(get_db),
):
    """Edit an invoice. Status changes on a paid invoice are ignored."""
    invoice = InvoiceService.update_invoice(db, invoice_id, request.to_patch())
    return InvoiceResponse.from_model(invoice)


@router.delete("/{invoice_id}")
async def delete_invoice(invoice_id: int, db: Session = Depends(get_db)) -> dict[str, bool]:
    """Delete an invoice; refused (409) once the therapist has been paid."""
    InvoiceService.delete_invoice(db, invoice_id)
    return {"success": True}
