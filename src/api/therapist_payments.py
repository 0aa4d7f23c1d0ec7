"""
Therapist payment API endpoints.
"""

import logging
from datetime import date as date_type
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.responses import TherapistPaymentListResponse, TherapistPaymentResponse
from core.constants import MAX_NOTES_LENGTH, MAX_STRING_LENGTH
from core.database import get_db
from services import TherapistPaymentService
from shared_types.scheduling import PaymentCreate, PaymentPatch
from utils.datetime_utils import parse_date_string

logger = logging.getLogger(__name__)

router = APIRouter()


class PaymentCreateRequest(BaseModel):
    """Request model for a manual therapist payment."""
    therapist_id: int
    invoice_id: int
    amount: Decimal = Field(..., gt=0)
    payment_date: date_type
    payment_method: str = Field(..., min_length=1, max_length=50)
    payment_reference: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class PaymentUpdateRequest(BaseModel):
    """Request model for editing a therapist payment. Only fields sent are applied."""
    amount: Optional[Decimal] = Field(None, gt=0)
    payment_date: Optional[date_type] = None
    payment_method: Optional[str] = Field(None, min_length=1, max_length=50)
    payment_reference: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)

    def to_patch(self) -> PaymentPatch:
        patch = PaymentPatch()
        for name in ("amount", "payment_date", "payment_method", "payment_reference", "notes"):
            if name in self.model_fields_set:
                value = getattr(self, name)
                if value is None and name in ("amount", "payment_date", "payment_method"):
                    raise ValueError(f"{name} cannot be null")
                setattr(patch, name, value)
        return patch


@router.get("", response_model=TherapistPaymentListResponse)
async def list_payments(
    therapist_id: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    """
    List therapist payments.

    Either a date range (optionally narrowed to one therapist) or a therapist
    is required.
    """
    if start_date and end_date:
        payments = TherapistPaymentService.list_by_date_range(
            db,
            parse_date_string(start_date),
            parse_date_string(end_date),
            therapist_id=therapist_id,
        )
    elif therapist_id is not None:
        payments = TherapistPaymentService.list_for_therapist(db, therapist_id)
    else:
        raise ValueError("Provide therapist_id or both start_date and end_date")

    return TherapistPaymentListResponse(
        payments=[TherapistPaymentResponse.from_model(p) for p in payments],
        total_amount=sum((p.amount for p in payments), Decimal("0.00")),
    )


@router.post("", response_model=TherapistPaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(request: PaymentCreateRequest, db: Session = Depends(get_db)):
    """Record a manual payment; 409 if the invoice is already settled."""
    payment = TherapistPaymentService.create_payment(db, PaymentCreate(
        therapist_id=request.therapist_id,
        invoice_id=request.invoice_id,
        amount=request.amount,
        payment_date=request.payment_date,
        payment_method=request.payment_method,
        payment_reference=request.payment_reference,
        notes=request.notes,
    ))
    return TherapistPaymentResponse.from_model(payment)


@router.put("/{payment_id}", response_model=TherapistPaymentResponse)
async def update_payment(
    payment_id: int,
    request: PaymentUpdateRequest,
    db: Session = Depends(get_db),
):
    payment = TherapistPaymentService.update_payment(db, payment_id, request.to_patch())
    return TherapistPaymentResponse.from_model(payment)


@router.delete("/{payment_id}")
async def delete_payment(payment_id: int, db: Session = Depends(get_db)) -> dict[str, bool]:
    TherapistPaymentService.delete_payment(db, payment_id)
    return {"success": True}
