"""
Closed enumerations for appointment, invoice and recurrence values.

The values are the canonical strings stored in the database. Locale synonyms
("Confirmé", "Payée", "Mensuel", ...) are translated at the boundary by
utils.status_labels; nothing in the core compares against them.
"""

from enum import Enum


class AppointmentStatus(str, Enum):
    """Lifecycle state of an appointment."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InvoiceStatus(str, Enum):
    """Lifecycle state of an invoice."""
    PENDING = "pending"
    TO_BE_PAID = "to_be_paid"
    PAID = "paid"
    CANCELLED = "cancelled"


class RecurringFrequency(str, Enum):
    """Spacing between the sessions of a recurring series."""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class CancellationScope(str, Enum):
    """
    How far a cancellation of a series member reaches.

    OCCURRENCE: only the targeted appointment.
    SERIES: the parent and every child (parent only).
    FOLLOWING: the targeted child and every later member of its series.
    """
    OCCURRENCE = "occurrence"
    SERIES = "series"
    FOLLOWING = "following"
