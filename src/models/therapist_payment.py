"""
Therapist payment model.

A payment records that the clinic has paid the therapist for the sessions of
one invoice. Once it exists, the invoice and its appointments can no longer be
deleted.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, ForeignKey, Numeric, String, TIMESTAMP, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import PAYMENT_INVOICE_FK_NAME
from core.database import Base


class TherapistPayment(Base):
    """
    Payment to a therapist for exactly one invoice.
    """

    __tablename__ = "therapist_payments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    therapist_id: Mapped[int] = mapped_column(ForeignKey("therapists.id"))
    """Therapist who received the payment."""

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id", name=PAYMENT_INVOICE_FK_NAME, ondelete="RESTRICT")
    )
    """
    Invoice being settled. The named foreign key is what turns an invoice
    deletion into an "already settled" refusal at the database level.
    """

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    payment_date: Mapped[date] = mapped_column(Date)
    payment_method: Mapped[str] = mapped_column(String(50))
    payment_reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    therapist = relationship("Therapist", back_populates="payments")
    invoice = relationship("Invoice", back_populates="payment")

    __table_args__ = (
        # At most one payment per invoice
        UniqueConstraint('invoice_id', name='uq_therapist_payments_invoice_id'),
    )
