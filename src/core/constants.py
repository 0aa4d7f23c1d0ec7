"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_NOTES_LENGTH = 1000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite)
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Recurring series bounds (a series of one session is not a series)
MIN_RECURRING_COUNT = 2
MAX_RECURRING_COUNT = 52

# Invoices
INVOICE_NUMBER_PREFIX = "F"
INVOICE_NUMBER_PADDING = 4
DEFAULT_TAX_RATE = "0"  # No VAT on therapy sessions

# Therapist payments
DEFAULT_PAYMENT_METHOD = "Virement bancaire"

# Name of the foreign key from therapist_payments to invoices.
# Persistence errors mentioning it mean "already settled with the therapist".
PAYMENT_INVOICE_FK_NAME = "therapist_payments_invoice_id_fkey"

# Reason codes returned by the deletion guard
REASON_ALREADY_SETTLED = "already_settled"
REASON_NOT_FOUND = "not_found"

# User-facing messages (French, the clinic's locale)
ALREADY_SETTLED_MESSAGE = (
    "Ce rendez-vous ne peut pas être supprimé car il a déjà été réglé au thérapeute"
)
INVOICE_ALREADY_SETTLED_MESSAGE = "Cette facture a déjà été réglée au thérapeute"
APPOINTMENT_NOT_FOUND_MESSAGE = "Rendez-vous non trouvé"
INVOICE_NOT_FOUND_FOR_APPOINTMENT_MESSAGE = "Facture non trouvée pour ce rendez-vous"
PARTIAL_DELETION_MESSAGE = "Suppression partielle des rendez-vous"
