"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
"""

from datetime import date as date_type, datetime, time as time_type
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel

from models import Appointment, Invoice, Patient, Therapist, TherapistPayment
from shared_types.scheduling import DeletionResult, StatusChangeResult
from utils.status_labels import appointment_status_label, frequency_label, invoice_status_label


class AppointmentResponse(BaseModel):
    """Response model for an appointment."""
    id: int
    patient_id: int
    therapist_id: int
    date: date_type
    time: time_type
    status: str
    status_label: str  # French label shown in the UI
    duration: Optional[int] = None
    type: Optional[str] = None
    notes: Optional[str] = None
    is_recurring: bool
    recurring_frequency: Optional[str] = None
    recurring_frequency_label: Optional[str] = None
    recurring_count: Optional[int] = None  # Parent only
    parent_appointment_id: Optional[int] = None
    groups_invoice: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentResponse":
        frequency = appointment.recurring_frequency
        return cls(
            id=appointment.id,
            patient_id=appointment.patient_id,
            therapist_id=appointment.therapist_id,
            date=appointment.date,
            time=appointment.time,
            status=appointment.status.value,
            status_label=appointment_status_label(appointment.status),
            duration=appointment.duration,
            type=appointment.type,
            notes=appointment.notes,
            is_recurring=appointment.is_recurring,
            recurring_frequency=frequency.value if frequency else None,
            recurring_frequency_label=frequency_label(frequency) if frequency else None,
            recurring_count=appointment.recurring_count,
            parent_appointment_id=appointment.parent_appointment_id,
            groups_invoice=appointment.groups_invoice,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )


class AppointmentListResponse(BaseModel):
    """Response model for listing appointments."""
    appointments: List[AppointmentResponse]


class AppointmentCreateResponse(BaseModel):
    """Response model for appointment creation (single or recurring)."""
    appointments: List[AppointmentResponse]
    invoice_id: Optional[int] = None  # Invoice generated for a confirmed appointment/series


class InvoiceResponse(BaseModel):
    """Response model for an invoice."""
    id: int
    invoice_number: str
    patient_id: int
    therapist_id: int
    appointment_id: int
    amount: Decimal
    tax_rate: Decimal
    total_amount: Decimal
    unit_price: Decimal
    is_grouped: bool
    status: str
    status_label: str
    issue_date: date_type
    due_date: date_type
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    therapist_payment_id: Optional[int] = None  # Set once the therapist has been paid

    @classmethod
    def from_model(cls, invoice: Invoice) -> "InvoiceResponse":
        return cls(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            patient_id=invoice.patient_id,
            therapist_id=invoice.therapist_id,
            appointment_id=invoice.appointment_id,
            amount=invoice.amount,
            tax_rate=invoice.tax_rate,
            total_amount=invoice.total_amount,
            unit_price=invoice.unit_price,
            is_grouped=invoice.is_grouped,
            status=invoice.status.value,
            status_label=invoice_status_label(invoice.status),
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            payment_method=invoice.payment_method,
            notes=invoice.notes,
            therapist_payment_id=invoice.payment.id if invoice.payment is not None else None,
        )


class TherapistPaymentResponse(BaseModel):
    """Response model for a therapist payment."""
    id: int
    therapist_id: int
    invoice_id: int
    amount: Decimal
    payment_date: date_type
    payment_method: str
    payment_reference: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_model(cls, payment: TherapistPayment) -> "TherapistPaymentResponse":
        return cls(
            id=payment.id,
            therapist_id=payment.therapist_id,
            invoice_id=payment.invoice_id,
            amount=payment.amount,
            payment_date=payment.payment_date,
            payment_method=payment.payment_method,
            payment_reference=payment.payment_reference,
            notes=payment.notes,
        )


class TherapistPaymentListResponse(BaseModel):
    """Response model for listing therapist payments."""
    payments: List[TherapistPaymentResponse]
    total_amount: Decimal


class ConflictResponse(BaseModel):
    """The appointment occupying a slot."""
    patient_id: int
    patient_name: str
    appointment_id: Optional[int] = None


class AvailabilityResponse(BaseModel):
    """Response model for an availability query."""
    available: bool
    conflict: Optional[ConflictResponse] = None


class DeletionResponse(BaseModel):
    """Response model for a guarded deletion."""
    success: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    deleted_appointment_ids: List[int] = []
    skipped_appointment_ids: List[int] = []  # Kept because the therapist was already paid

    @classmethod
    def from_result(cls, result: DeletionResult) -> "DeletionResponse":
        return cls(**result.to_dict())


class StatusChangeResponse(BaseModel):
    """Response model for a status change."""
    appointment_id: int
    status: str
    status_label: str
    updated_appointment_ids: List[int] = []
    invoice_id: Optional[int] = None
    deletion: Optional[DeletionResponse] = None  # Set when the cancellation deleted appointments

    @classmethod
    def from_result(cls, result: StatusChangeResult) -> "StatusChangeResponse":
        return cls(
            appointment_id=result.appointment_id,
            status=result.status.value,
            status_label=appointment_status_label(result.status),
            updated_appointment_ids=result.updated_appointment_ids,
            invoice_id=result.invoice_id,
            deletion=DeletionResponse.from_result(result.deletion) if result.deletion else None,
        )


class BulkDeletionItem(BaseModel):
    id: int
    success: bool


class BulkDeletionFailure(BaseModel):
    id: int
    reason: Optional[str] = None  # "not_found" or "already_settled"
    message: Optional[str] = None


class BulkDeletionResponse(BaseModel):
    """Per-id report of a bulk appointment deletion."""
    message: str
    results: List[BulkDeletionItem]
    failures: List[BulkDeletionFailure] = []

    @classmethod
    def from_outcomes(
        cls, outcomes: Dict[int, DeletionResult], message: str
    ) -> "BulkDeletionResponse":
        return cls(
            message=message,
            results=[BulkDeletionItem(id=i, success=r.success) for i, r in outcomes.items()],
            failures=[
                BulkDeletionFailure(id=i, reason=r.reason, message=r.message)
                for i, r in outcomes.items()
                if not r.success
            ],
        )


class InvoiceListResponse(BaseModel):
    """Response model for listing invoices."""
    invoices: List[InvoiceResponse]


class PatientResponse(BaseModel):
    """Response model for a patient."""
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, patient: Patient) -> "PatientResponse":
        return cls(
            id=patient.id,
            first_name=patient.first_name,
            last_name=patient.last_name,
            full_name=patient.full_name,
            email=patient.email,
            phone=patient.phone,
            notes=patient.notes,
            created_at=patient.created_at,
        )


class PatientListResponse(BaseModel):
    patients: List[PatientResponse]


class TherapistResponse(BaseModel):
    """Response model for a therapist."""
    id: int
    name: str
    specialty: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, therapist: Therapist) -> "TherapistResponse":
        return cls(
            id=therapist.id,
            name=therapist.name,
            specialty=therapist.specialty,
            email=therapist.email,
            phone=therapist.phone,
            created_at=therapist.created_at,
        )


class TherapistListResponse(BaseModel):
    therapists: List[TherapistResponse]
