"""
Input and result structures for the scheduling core.

Patch classes list exactly the fields an operation may change. A field left at
MISSING is untouched; None clears it where the column is nullable.
"""

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import Any, List, Optional, Union

from core.sentinels import MISSING, MissingType, is_set
from shared_types.statuses import AppointmentStatus, InvoiceStatus


@dataclass
class AppointmentCreate:
    """Data for a new appointment (or the base appointment of a series)."""
    patient_id: int
    therapist_id: int
    date: date
    time: time
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    duration: Optional[int] = None
    type: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class AppointmentPatch:
    """Fields an appointment edit may change. Recurrence linkage is never patchable."""
    therapist_id: Union[int, MissingType] = MISSING
    date: Union[date, MissingType] = MISSING
    time: Union[time, MissingType] = MISSING
    duration: Union[Optional[int], MissingType] = MISSING
    type: Union[Optional[str], MissingType] = MISSING
    notes: Union[Optional[str], MissingType] = MISSING
    status: Union[AppointmentStatus, MissingType] = MISSING

    def moves_slot(self) -> bool:
        """True if the patch touches therapist, date or time."""
        return any(
            is_set(value)
            for value in (self.therapist_id, self.date, self.time)
        )


@dataclass
class InvoicePatch:
    """Fields an invoice edit may change. Amounts only move through reconciliation."""
    status: Union[InvoiceStatus, MissingType] = MISSING
    payment_method: Union[Optional[str], MissingType] = MISSING
    due_date: Union[date, MissingType] = MISSING
    notes: Union[Optional[str], MissingType] = MISSING


@dataclass
class PaymentCreate:
    """Manual therapist payment."""
    therapist_id: int
    invoice_id: int
    amount: Decimal
    payment_date: date
    payment_method: str
    payment_reference: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class PaymentPatch:
    """Fields a therapist payment edit may change. The invoice link is fixed."""
    amount: Union[Decimal, MissingType] = MISSING
    payment_date: Union[date, MissingType] = MISSING
    payment_method: Union[str, MissingType] = MISSING
    payment_reference: Union[Optional[str], MissingType] = MISSING
    notes: Union[Optional[str], MissingType] = MISSING


@dataclass
class DeletionResult:
    """
    Outcome of a deletion-guard operation.

    Deleting a series parent can partially succeed: children protected by a
    therapist payment are listed in ``skipped_appointment_ids``.
    """
    success: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    deleted_appointment_ids: List[int] = field(default_factory=list)
    skipped_appointment_ids: List[int] = field(default_factory=list)

    def merge(self, other: "DeletionResult") -> "DeletionResult":
        """Combine two results; success only if both succeeded."""
        return DeletionResult(
            success=self.success and other.success,
            reason=self.reason or other.reason,
            message=self.message or other.message,
            deleted_appointment_ids=self.deleted_appointment_ids + other.deleted_appointment_ids,
            skipped_appointment_ids=self.skipped_appointment_ids + other.skipped_appointment_ids,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "success": self.success,
            "reason": self.reason,
            "message": self.message,
            "deleted_appointment_ids": self.deleted_appointment_ids,
            "skipped_appointment_ids": self.skipped_appointment_ids,
        }


@dataclass
class StatusChangeResult:
    """Outcome of AppointmentService.change_status."""
    appointment_id: int
    status: AppointmentStatus
    updated_appointment_ids: List[int] = field(default_factory=list)
    invoice_id: Optional[int] = None
    deletion: Optional[DeletionResult] = None
