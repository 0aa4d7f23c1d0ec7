"""
Therapist payment service.

A therapist payment settles exactly one invoice. Payments are created
automatically when an invoice becomes paid, or entered manually.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from core.constants import DEFAULT_PAYMENT_METHOD, INVOICE_ALREADY_SETTLED_MESSAGE
from core.exceptions import AlreadySettledError, NotFoundError
from core.sentinels import provided_fields
from models import Invoice, TherapistPayment
from repositories import InvoiceRepository, PaymentRepository
from shared_types.scheduling import PaymentCreate, PaymentPatch
from shared_types.statuses import InvoiceStatus
from utils.datetime_utils import clinic_today

logger = logging.getLogger(__name__)


class TherapistPaymentService:
    """
    Service class for therapist payments.

    Methods named create_/update_/delete_ commit; create_from_invoice only
    flushes so it can join the caller's transaction.
    """

    @staticmethod
    def create_from_invoice(
        db: Session,
        invoice: Invoice,
        today: Optional[date] = None,
    ) -> Optional[TherapistPayment]:
        """
        Create the payment for a paid invoice, unless one already exists.

        Args:
            db: Database session
            invoice: Invoice whose status is paid
            today: Payment date, defaults to the clinic's current date

        Returns:
            The new or existing payment, or None if the invoice is not paid
        """
        if invoice.status != InvoiceStatus.PAID:
            return None

        payments = PaymentRepository(db)
        existing = payments.find_by_invoice_id(invoice.id)
        if existing is not None:
            logger.debug(f"Invoice {invoice.id} already has payment {existing.id}")
            return existing

        payment = payments.add(TherapistPayment(
            therapist_id=invoice.therapist_id,
            invoice_id=invoice.id,
            invoice=invoice,
            amount=invoice.amount,
            payment_date=today or clinic_today(),
            payment_method=invoice.payment_method or DEFAULT_PAYMENT_METHOD,
            notes=f"Paiement automatique pour la facture {invoice.invoice_number}",
        ))
        logger.info(f"Created therapist payment {payment.id} for invoice {invoice.id}")
        return payment

    @staticmethod
    def create_payment(db: Session, data: PaymentCreate) -> TherapistPayment:
        """
        Record a manual payment.

        Raises:
            NotFoundError: If the invoice does not exist
            AlreadySettledError: If the invoice already has a payment
            ValueError: If the amount is not positive or the therapist is not
                the invoice's therapist
        """
        invoice = InvoiceRepository(db).get(data.invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", data.invoice_id)
        if data.amount <= 0:
            raise ValueError("Payment amount must be positive")
        if data.therapist_id != invoice.therapist_id:
            raise ValueError(
                f"Invoice {invoice.id} belongs to therapist {invoice.therapist_id}, "
                f"not {data.therapist_id}"
            )

        payments = PaymentRepository(db)
        if payments.has_payment(invoice.id):
            logger.warning(f"Refused second payment for invoice {invoice.id}")
            raise AlreadySettledError(INVOICE_ALREADY_SETTLED_MESSAGE, invoice_id=invoice.id)

        try:
            payment = payments.add(TherapistPayment(
                therapist_id=data.therapist_id,
                invoice_id=data.invoice_id,
                invoice=invoice,
                amount=Decimal(data.amount).quantize(Decimal("0.01")),
                payment_date=data.payment_date,
                payment_method=data.payment_method,
                payment_reference=data.payment_reference,
                notes=data.notes,
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Recorded manual payment {payment.id} for invoice {invoice.id}")
        return payment

    @staticmethod
    def update_payment(db: Session, payment_id: int, patch: PaymentPatch) -> TherapistPayment:
        """
        Update the editable fields of a payment. The invoice link never changes.

        Raises:
            NotFoundError: If the payment does not exist
        """
        payment = PaymentRepository(db).get(payment_id)
        if payment is None:
            raise NotFoundError("TherapistPayment", payment_id)

        changes = provided_fields(patch)
        if "amount" in changes:
            if changes["amount"] <= 0:
                raise ValueError("Payment amount must be positive")
            changes["amount"] = Decimal(changes["amount"]).quantize(Decimal("0.01"))

        try:
            for name, value in changes.items():
                setattr(payment, name, value)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"Updated therapist payment {payment_id}")
        return payment

    @staticmethod
    def delete_payment(db: Session, payment_id: int) -> None:
        """
        Delete a payment, which makes its invoice deletable again.

        Raises:
            NotFoundError: If the payment does not exist
        """
        payments = PaymentRepository(db)
        payment = payments.get(payment_id)
        if payment is None:
            raise NotFoundError("TherapistPayment", payment_id)
        invoice = payment.invoice
        try:
            payments.delete(payment)
            db.commit()
        except Exception:
            db.rollback()
            raise
        if invoice is not None:
            # Drop the cached link so the invoice reads as unsettled again
            db.refresh(invoice)
        logger.info(f"Deleted therapist payment {payment_id}")

    @staticmethod
    def list_for_therapist(db: Session, therapist_id: int) -> List[TherapistPayment]:
        return PaymentRepository(db).list_for_therapist(therapist_id)

    @staticmethod
    def list_by_date_range(
        db: Session,
        start_date: date,
        end_date: date,
        therapist_id: Optional[int] = None,
    ) -> List[TherapistPayment]:
        """
        List payments dated within a range, bounds included.

        Raises:
            ValueError: If start_date is after end_date
        """
        if start_date > end_date:
            raise ValueError("start_date must be on or before end_date")
        return PaymentRepository(db).list_by_date_range(start_date, end_date, therapist_id)
