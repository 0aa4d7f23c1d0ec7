"""
Persistence for invoices.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from models import Invoice


class InvoiceRepository:
    """Queries and writes on the invoices table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, invoice_id: int) -> Optional[Invoice]:
        return self.db.query(Invoice).filter(Invoice.id == invoice_id).first()

    def find_by_appointment_id(self, appointment_id: int) -> Optional[Invoice]:
        """The invoice anchored to an appointment (oldest first if several exist)."""
        return (
            self.db.query(Invoice)
            .filter(Invoice.appointment_id == appointment_id)
            .order_by(Invoice.id)
            .first()
        )

    def find_all_by_appointment_id(self, appointment_id: int) -> List[Invoice]:
        return (
            self.db.query(Invoice)
            .filter(Invoice.appointment_id == appointment_id)
            .order_by(Invoice.id)
            .all()
        )

    def list(
        self,
        patient_id: Optional[int] = None,
        therapist_id: Optional[int] = None,
    ) -> List[Invoice]:
        """Invoices, most recently issued first, optionally for one patient or therapist."""
        query = self.db.query(Invoice)
        if patient_id is not None:
            query = query.filter(Invoice.patient_id == patient_id)
        if therapist_id is not None:
            query = query.filter(Invoice.therapist_id == therapist_id)
        return query.order_by(Invoice.issue_date.desc(), Invoice.id.desc()).all()

    def add(self, invoice: Invoice) -> Invoice:
        self.db.add(invoice)
        self.db.flush()
        return invoice

    def delete(self, invoice: Invoice) -> None:
        self.db.delete(invoice)
        self.db.flush()
