"""
Invoice service.

Generates invoices for appointments, groups the invoice of a recurring series,
maps appointment status changes onto invoices and keeps grouped amounts in line
with the sessions that are still active.
"""

import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import INVOICE_DUE_DAYS, SESSION_PRICE
from core.constants import (
    DEFAULT_TAX_RATE,
    INVOICE_ALREADY_SETTLED_MESSAGE,
    INVOICE_NOT_FOUND_FOR_APPOINTMENT_MESSAGE,
    INVOICE_NUMBER_PADDING,
    INVOICE_NUMBER_PREFIX,
)
from core.exceptions import AlreadySettledError, NotFoundError
from core.sentinels import is_set
from models import Appointment, Invoice
from repositories import AppointmentRepository, InvoiceRepository, PaymentRepository
from services.therapist_payment_service import TherapistPaymentService
from shared_types.scheduling import InvoicePatch
from shared_types.statuses import AppointmentStatus, InvoiceStatus, RecurringFrequency
from utils.datetime_utils import clinic_today, format_date_fr, format_long_date_fr, format_time
from utils.db_errors import is_payment_fk_violation
from utils.status_labels import frequency_label

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Invoice status an appointment status maps to; confirmed leaves the invoice alone
STATUS_MAPPING = {
    AppointmentStatus.CANCELLED: InvoiceStatus.CANCELLED,
    AppointmentStatus.PENDING: InvoiceStatus.PENDING,
    AppointmentStatus.COMPLETED: InvoiceStatus.TO_BE_PAID,
}


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _total(amount: Decimal, tax_rate: Decimal) -> Decimal:
    return _money(amount + amount * tax_rate / Decimal("100"))


def session_note(appointment: Appointment) -> str:
    """Notes of a single-session invoice."""
    return (
        f"Séance thérapeutique du {format_date_fr(appointment.date)} "
        f"à {format_time(appointment.time)}"
    )


def extra_session_note(appointment: Appointment) -> str:
    """Line appended to an ungrouped series invoice for each further session."""
    return (
        f"Inclut également la séance du {format_date_fr(appointment.date)} "
        f"à {format_time(appointment.time)}"
    )


def grouped_notes(sessions: List[Appointment], frequency: Optional[RecurringFrequency]) -> str:
    """
    Notes of a grouped invoice, listing every session chronologically.

    Example:
        "Facture groupée pour 2 séances thérapeutiques (hebdomadaire):
        5 janvier 2026 à 09:00, 12 janvier 2026 à 09:00"
    """
    ordered = sorted(sessions, key=lambda s: (s.date, s.time))
    dates = ", ".join(
        f"{format_long_date_fr(s.date)} à {format_time(s.time)}" for s in ordered
    )
    label = f" ({frequency_label(frequency)})" if frequency is not None else ""
    return f"Facture groupée pour {len(ordered)} séances thérapeutiques{label}: {dates}"


class InvoiceService:
    """
    Service class for invoice operations.

    Helpers used by the appointment services (generate, group, reconcile,
    apply_appointment_status) only flush. update_invoice, mark_paid and
    delete_invoice commit.
    """

    @staticmethod
    def get_invoice(db: Session, invoice_id: int) -> Invoice:
        """
        Raises:
            NotFoundError: If the invoice does not exist
        """
        invoice = InvoiceRepository(db).get(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    @staticmethod
    def resolve_invoice(db: Session, appointment: Appointment) -> Optional[Invoice]:
        """A series child bills through its parent's invoice; anything else through its own."""
        return InvoiceRepository(db).find_by_appointment_id(appointment.series_id or appointment.id)

    @staticmethod
    def get_invoice_for_appointment(db: Session, appointment_id: int) -> Invoice:
        """
        The invoice billing an appointment; a series child resolves to the series invoice.

        Raises:
            NotFoundError: If the appointment does not exist or is not invoiced
        """
        appointment = AppointmentRepository(db).get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        invoice = InvoiceService.resolve_invoice(db, appointment)
        if invoice is None:
            raise NotFoundError(
                "Invoice", appointment_id, message=INVOICE_NOT_FOUND_FOR_APPOINTMENT_MESSAGE
            )
        return invoice

    @staticmethod
    def list_invoices(
        db: Session,
        patient_id: Optional[int] = None,
        therapist_id: Optional[int] = None,
    ) -> List[Invoice]:
        return InvoiceRepository(db).list(patient_id=patient_id, therapist_id=therapist_id)

    @staticmethod
    def generate_invoice(
        db: Session,
        appointment: Appointment,
        today: Optional[date] = None,
    ) -> Invoice:
        """
        Create the invoice anchored to an appointment.

        The parent of a series that groups its invoices gets a grouped invoice
        covering the active sessions of the series. Callers make sure no
        invoice exists yet.

        Args:
            db: Database session
            appointment: Persisted appointment (id assigned)
            today: Issue date, defaults to the clinic's current date

        Returns:
            The new invoice (flushed, not committed)
        """
        issue_date = today or clinic_today()
        tax_rate = Decimal(DEFAULT_TAX_RATE)
        unit_price = _money(SESSION_PRICE)

        invoice = Invoice(
            invoice_number=(
                f"{INVOICE_NUMBER_PREFIX}-{issue_date.year}-"
                f"{str(appointment.id).zfill(INVOICE_NUMBER_PADDING)}"
            ),
            patient_id=appointment.patient_id,
            therapist_id=appointment.therapist_id,
            appointment_id=appointment.id,
            amount=unit_price,
            tax_rate=tax_rate,
            total_amount=_total(unit_price, tax_rate),
            unit_price=unit_price,
            is_grouped=False,
            status=InvoiceStatus.PENDING,
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=INVOICE_DUE_DAYS),
            payment_method=None,
            notes=session_note(appointment),
        )
        InvoiceRepository(db).add(invoice)

        if appointment.is_series_parent and appointment.groups_invoice:
            InvoiceService.group_series_invoice(db, appointment, invoice)

        logger.info(f"Generated invoice {invoice.invoice_number} for appointment {appointment.id}")
        return invoice

    @staticmethod
    def group_series_invoice(db: Session, parent: Appointment, invoice: Invoice) -> Invoice:
        """Turn the parent's invoice into a grouped invoice for the whole series."""
        invoice.is_grouped = True
        InvoiceService._recompute_grouped(db, parent, invoice)
        return invoice

    @staticmethod
    def append_session(db: Session, invoice: Invoice, appointment: Appointment) -> None:
        """Mention a further session in an ungrouped series invoice. The amount is unchanged."""
        invoice.notes = f"{invoice.notes or ''}\n{extra_session_note(appointment)}"
        db.flush()

    @staticmethod
    def _recompute_grouped(db: Session, parent: Appointment, invoice: Invoice) -> None:
        members = AppointmentRepository(db).find_series_members(parent.id)
        active = [m for m in members if m.status != AppointmentStatus.CANCELLED]

        invoice.amount = _money(invoice.unit_price * len(active))
        invoice.total_amount = _total(invoice.amount, invoice.tax_rate)
        if active:
            invoice.notes = grouped_notes(active, parent.recurring_frequency)

        if invoice.status != InvoiceStatus.PAID:
            if not active:
                invoice.status = InvoiceStatus.CANCELLED
            elif invoice.status == InvoiceStatus.CANCELLED:
                invoice.status = InvoiceStatus.PENDING

        payment = PaymentRepository(db).find_by_invoice_id(invoice.id)
        if payment is not None and payment.amount != invoice.amount:
            logger.info(
                f"Adjusting payment {payment.id} from {payment.amount} to {invoice.amount} "
                f"after series change on invoice {invoice.id}"
            )
            payment.amount = invoice.amount
        db.flush()

    @staticmethod
    def reconcile_series(db: Session, parent_id: int) -> Optional[Invoice]:
        """
        Bring a grouped invoice's amount back to unit price times active sessions.

        Applies to paid invoices too, and corrects the therapist payment if one
        exists. No-op for series without a grouped invoice.

        Returns:
            The reconciled invoice, or None if there was nothing to reconcile
        """
        parent = AppointmentRepository(db).get(parent_id)
        if parent is None:
            return None
        invoice = InvoiceRepository(db).find_by_appointment_id(parent_id)
        if invoice is None or not invoice.is_grouped:
            return None

        previous = invoice.amount
        InvoiceService._recompute_grouped(db, parent, invoice)
        if previous != invoice.amount:
            logger.info(
                f"Reconciled grouped invoice {invoice.id}: {previous} -> {invoice.amount}"
            )
        return invoice

    @staticmethod
    def apply_appointment_status(
        db: Session,
        invoice: Invoice,
        new_status: AppointmentStatus,
    ) -> None:
        """
        Map an appointment's new status onto its own invoice.

        Paid invoices never change status here.
        """
        if invoice.status == InvoiceStatus.PAID:
            logger.debug(f"Invoice {invoice.id} is paid; status left unchanged")
            return
        mapped = STATUS_MAPPING.get(new_status)
        if mapped is None or mapped == invoice.status:
            return
        invoice.status = mapped
        db.flush()
        logger.info(f"Invoice {invoice.id} status set to {mapped.value}")

    @staticmethod
    def update_invoice(
        db: Session,
        invoice_id: int,
        patch: InvoicePatch,
        today: Optional[date] = None,
    ) -> Invoice:
        """
        Apply a manual edit to an invoice.

        A paid invoice ignores status changes. Moving an invoice to paid creates
        the therapist payment in the same transaction.

        Raises:
            NotFoundError: If the invoice does not exist
        """
        invoice = InvoiceService.get_invoice(db, invoice_id)

        try:
            if is_set(patch.payment_method):
                invoice.payment_method = patch.payment_method
            if is_set(patch.due_date):
                invoice.due_date = patch.due_date
            if is_set(patch.notes):
                invoice.notes = patch.notes

            if is_set(patch.status) and patch.status != invoice.status:
                if invoice.status == InvoiceStatus.PAID:
                    logger.warning(
                        f"Ignored status change {invoice.status.value} -> {patch.status.value} "
                        f"on paid invoice {invoice.id}"
                    )
                else:
                    invoice.status = patch.status
                    if patch.status == InvoiceStatus.PAID:
                        db.flush()
                        TherapistPaymentService.create_from_invoice(db, invoice, today=today)

            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Updated invoice {invoice.id}")
        return invoice

    @staticmethod
    def mark_paid(
        db: Session,
        invoice_id: int,
        payment_method: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Invoice:
        """Shortcut for update_invoice(status=paid)."""
        patch = InvoicePatch(status=InvoiceStatus.PAID)
        if payment_method is not None:
            patch.payment_method = payment_method
        return InvoiceService.update_invoice(db, invoice_id, patch, today=today)

    @staticmethod
    def delete_invoice(db: Session, invoice_id: int) -> None:
        """
        Delete an invoice that has not been settled with the therapist.

        Raises:
            NotFoundError: If the invoice does not exist
            AlreadySettledError: If a therapist payment references the invoice
        """
        invoice = InvoiceService.get_invoice(db, invoice_id)
        if PaymentRepository(db).has_payment(invoice.id):
            logger.warning(f"Refused deletion of settled invoice {invoice.id}")
            raise AlreadySettledError(INVOICE_ALREADY_SETTLED_MESSAGE, invoice_id=invoice.id)

        try:
            InvoiceRepository(db).delete(invoice)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if is_payment_fk_violation(e):
                raise AlreadySettledError(INVOICE_ALREADY_SETTLED_MESSAGE, invoice_id=invoice_id) from e
            raise
        logger.info(f"Deleted invoice {invoice_id}")
