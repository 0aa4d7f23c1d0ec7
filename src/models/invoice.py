"""
Invoice model representing what a patient owes for one or more sessions.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String, TIMESTAMP, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.base import enum_column
from shared_types.statuses import InvoiceStatus


class Invoice(Base):
    """
    Invoice entity anchored to one appointment.

    A grouped invoice covers a whole recurring series and is anchored to the
    series parent. Its amount always equals ``unit_price`` times the number of
    sessions of the series that are still active.
    """

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the invoice."""

    invoice_number: Mapped[str] = mapped_column(String(50))
    """Human-readable number, e.g. F-2026-0042."""

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    therapist_id: Mapped[int] = mapped_column(ForeignKey("therapists.id"))

    appointment_id: Mapped[int] = mapped_column(ForeignKey("appointments.id"))
    """Appointment the invoice is anchored to (the series parent for grouped invoices)."""

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    """Price of one session when the invoice was generated."""

    is_grouped: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """True when the invoice bills every session of a recurring series."""

    status: Mapped[InvoiceStatus] = mapped_column(
        enum_column(InvoiceStatus, "invoice_status"),
        default=InvoiceStatus.PENDING,
    )

    issue_date: Mapped[date] = mapped_column(Date)
    due_date: Mapped[date] = mapped_column(Date)

    payment_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    appointment = relationship("Appointment")
    """Anchor appointment."""

    payment = relationship(
        "TherapistPayment", back_populates="invoice", uselist=False, passive_deletes="all"
    )
    """
    Therapist payment settled against this invoice, if any. The ORM never
    nulls the payment's invoice_id; deleting a settled invoice fails on the
    foreign key instead.
    """

    __table_args__ = (
        Index('idx_invoices_appointment', 'appointment_id'),
        Index('idx_invoices_patient', 'patient_id'),
    )
