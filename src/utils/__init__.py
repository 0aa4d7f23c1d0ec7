"""
Utility modules for the clinic scheduler.

This package contains shared helpers used across the application, including
datetime utilities, locale label translation, slot locks and database error
helpers.
"""

from utils.status_labels import parse_appointment_status, parse_frequency, parse_invoice_status

__all__ = ['parse_appointment_status', 'parse_frequency', 'parse_invoice_status']
