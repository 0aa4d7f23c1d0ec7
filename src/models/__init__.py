# Package initialization
# Import all models to ensure relationships are properly established

from .base import Base
from .patient import Patient
from .therapist import Therapist
from .appointment import Appointment
from .invoice import Invoice
from .therapist_payment import TherapistPayment
from .appointment_status_change import AppointmentStatusChange

__all__ = [
    "Base",
    "Patient",
    "Therapist",
    "Appointment",
    "Invoice",
    "TherapistPayment",
    "AppointmentStatusChange",
]
