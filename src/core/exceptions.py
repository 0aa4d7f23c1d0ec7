"""
Domain exceptions raised by the scheduling core.

Route handlers translate these into HTTP responses (see main.py); services
never raise HTTPException themselves.
"""

from datetime import date, time
from typing import Optional, Sequence

from utils.datetime_utils import format_date_fr, format_time


class SchedulingError(Exception):
    """Base class for scheduling/billing errors."""
    pass


class SlotConflictError(SchedulingError):
    """A requested (or implied, for recurring series) slot is already occupied."""

    def __init__(
        self,
        conflict_date: date,
        conflict_time: time,
        patient_name: Optional[str] = None,
        patient_id: Optional[int] = None,
        appointment_id: Optional[int] = None,
    ):
        self.conflict_date = conflict_date
        self.conflict_time = conflict_time
        self.patient_name = patient_name
        self.patient_id = patient_id
        self.appointment_id = appointment_id

        message = (
            f"Le créneau du {format_date_fr(conflict_date)} à {format_time(conflict_time)} "
            f"est déjà réservé"
        )
        if patient_name:
            message += f" pour le patient {patient_name}"
        super().__init__(message)


class NotFoundError(SchedulingError):
    """Referenced appointment, invoice or payment does not exist."""

    def __init__(self, entity: str, entity_id: int, message: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message or f"{entity} {entity_id} not found")


class AlreadySettledError(SchedulingError):
    """A therapist payment exists against the invoice; destructive change refused."""

    def __init__(self, message: str, invoice_id: Optional[int] = None):
        self.invoice_id = invoice_id
        super().__init__(message)


class ScopeRequiredError(SchedulingError):
    """Cancelling a series member needs an explicit cancellation scope."""

    def __init__(self, appointment_id: int, allowed_scopes: Sequence[str]):
        self.appointment_id = appointment_id
        self.allowed_scopes = list(allowed_scopes)
        super().__init__(
            f"Appointment {appointment_id} belongs to a recurring series; "
            f"choose one of: {', '.join(self.allowed_scopes)}"
        )


class InvariantViolationError(SchedulingError):
    """An internal consistency rule would be broken. Not reachable through correct use."""
    pass
