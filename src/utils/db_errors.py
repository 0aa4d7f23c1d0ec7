"""
Helpers for interpreting database integrity errors.
"""

from sqlalchemy.exc import IntegrityError

from core.constants import PAYMENT_INVOICE_FK_NAME


def constraint_name(error: IntegrityError) -> str:
    """
    Name of the violated constraint, when the driver reports it.

    psycopg2 exposes it as ``orig.diag.constraint_name``; other drivers only
    mention it in the message, if at all.
    """
    diag = getattr(error.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    return name or ""


def is_payment_fk_violation(error: IntegrityError) -> bool:
    """True if the error comes from the therapist payment -> invoice foreign key."""
    if constraint_name(error) == PAYMENT_INVOICE_FK_NAME:
        return True
    return PAYMENT_INVOICE_FK_NAME in str(error.orig)
