"""
Shared type definitions for the clinic scheduler backend.

This module contains dataclasses, enums and patch structures used across
multiple services.
"""

from shared_types.availability import AvailabilityResult, ConflictInfo, Occurrence
from shared_types.scheduling import (
    AppointmentCreate,
    AppointmentPatch,
    DeletionResult,
    InvoicePatch,
    PaymentCreate,
    PaymentPatch,
    StatusChangeResult,
)
from shared_types.statuses import (
    AppointmentStatus,
    CancellationScope,
    InvoiceStatus,
    RecurringFrequency,
)

__all__ = [
    "AvailabilityResult",
    "ConflictInfo",
    "Occurrence",
    "AppointmentCreate",
    "AppointmentPatch",
    "DeletionResult",
    "InvoicePatch",
    "PaymentCreate",
    "PaymentPatch",
    "StatusChangeResult",
    "AppointmentStatus",
    "CancellationScope",
    "InvoiceStatus",
    "RecurringFrequency",
]
