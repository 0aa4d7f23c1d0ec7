"""
Persistence for therapist payments.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from models import TherapistPayment


class PaymentRepository:
    """Queries and writes on the therapist_payments table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, payment_id: int) -> Optional[TherapistPayment]:
        return self.db.query(TherapistPayment).filter(TherapistPayment.id == payment_id).first()

    def find_by_invoice_id(self, invoice_id: int) -> Optional[TherapistPayment]:
        return (
            self.db.query(TherapistPayment)
            .filter(TherapistPayment.invoice_id == invoice_id)
            .first()
        )

    def has_payment(self, invoice_id: int) -> bool:
        return self.find_by_invoice_id(invoice_id) is not None

    def list_for_therapist(self, therapist_id: int) -> List[TherapistPayment]:
        """Payments to a therapist, most recent first."""
        return (
            self.db.query(TherapistPayment)
            .filter(TherapistPayment.therapist_id == therapist_id)
            .order_by(TherapistPayment.payment_date.desc(), TherapistPayment.id.desc())
            .all()
        )

    def list_by_date_range(
        self,
        start_date: date,
        end_date: date,
        therapist_id: Optional[int] = None,
    ) -> List[TherapistPayment]:
        """Payments dated within [start_date, end_date], oldest first."""
        query = self.db.query(TherapistPayment).filter(
            TherapistPayment.payment_date >= start_date,
            TherapistPayment.payment_date <= end_date,
        )
        if therapist_id is not None:
            query = query.filter(TherapistPayment.therapist_id == therapist_id)
        return query.order_by(TherapistPayment.payment_date, TherapistPayment.id).all()

    def add(self, payment: TherapistPayment) -> TherapistPayment:
        self.db.add(payment)
        self.db.flush()
        return payment

    def delete(self, payment: TherapistPayment) -> None:
        self.db.delete(payment)
        self.db.flush()
