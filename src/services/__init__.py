# Services package
# Business logic for scheduling, invoicing and therapist payments.
from .availability_service import AvailabilityService
from .recurrence_service import RecurrenceExpander
from .patient_service import PatientService, TherapistService
from .therapist_payment_service import TherapistPaymentService
from .invoice_service import InvoiceService
from .deletion_service import DeletionService
from .recurring_appointment_service import RecurringAppointmentService
from .appointment_service import AppointmentService

__all__ = [
    "AvailabilityService",
    "RecurrenceExpander",
    "PatientService",
    "TherapistService",
    "TherapistPaymentService",
    "InvoiceService",
    "DeletionService",
    "RecurringAppointmentService",
    "AppointmentService",
]
