# Repositories wrap the SQLAlchemy queries used by the services.
# They flush but never commit; the calling service owns the transaction.
from .appointment_repository import AppointmentRepository
from .invoice_repository import InvoiceRepository
from .patient_repository import PatientRepository, TherapistRepository
from .payment_repository import PaymentRepository

__all__ = [
    "AppointmentRepository",
    "InvoiceRepository",
    "PatientRepository",
    "PaymentRepository",
    "TherapistRepository",
]
