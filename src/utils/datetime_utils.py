"""
Datetime utilities for consistent timezone handling across the application.

All business logic runs in the clinic's local time (a fixed UTC offset taken
from configuration). Dates and times are kept as ``date``/``time`` objects
internally; the ``dd/MM/yyyy`` and French long formats below are presentation
helpers only.
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta, timezone

from core.config import CLINIC_UTC_OFFSET_HOURS

logger = logging.getLogger(__name__)

CLINIC_TZ = timezone(timedelta(hours=CLINIC_UTC_OFFSET_HOURS))

FRENCH_MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]


def clinic_now() -> datetime:
    """
    Get current clinic datetime.

    Returns:
        Current datetime with the clinic timezone attached
    """
    return datetime.now(CLINIC_TZ)


def clinic_today() -> date:
    """Get today's date in clinic local time. Default clock for the services."""
    return clinic_now().date()


def format_date_fr(value: date) -> str:
    """Format a date as dd/MM/yyyy."""
    return value.strftime("%d/%m/%Y")


def format_time(value: time) -> str:
    """Format a time of day as HH:MM."""
    return value.strftime("%H:%M")


def format_long_date_fr(value: date) -> str:
    """
    Format a date the way French invoices spell it out.

    Example: date(2026, 1, 5) -> "5 janvier 2026"
    """
    return f"{value.day} {FRENCH_MONTHS[value.month - 1]} {value.year}"


def parse_date_string(value: str) -> date:
    """
    Parse a date string.

    Accepts ISO format (YYYY-MM-DD) and the legacy dd/MM/yyyy format still
    sent by older clients.

    Raises:
        ValueError: If the string matches neither format
    """
    value = value.strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date format: {value} (expected YYYY-MM-DD)")


def parse_time_string(value: str) -> time:
    """
    Parse a time-of-day string in HH:MM or HH:MM:SS format.

    Raises:
        ValueError: If the string is not a valid time
    """
    value = value.strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time format: {value} (expected HH:MM)")


def add_months(value: date, months: int) -> date:
    """
    Add calendar months to a date, clamping the day to the target month's length.

    Example: add_months(date(2026, 1, 31), 1) -> date(2026, 2, 28)
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_years(value: date, years: int) -> date:
    """Add calendar years to a date; 29 February becomes 28 February in common years."""
    return add_months(value, 12 * years)
