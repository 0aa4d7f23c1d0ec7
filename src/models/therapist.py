"""
Therapist model representing healthcare professionals who provide sessions at the clinic.

Therapists conduct appointments and are paid per invoiced session through
therapist payments.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Therapist(Base):
    """
    Therapist entity representing a healthcare professional who provides sessions.

    Each therapist owns a schedule of appointments; a (therapist, date, time)
    slot holds at most one appointment.
    """

    __tablename__ = "therapists"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the therapist."""

    name: Mapped[str] = mapped_column(String(255))
    """Full name of the therapist."""

    specialty: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Therapeutic specialty (e.g. paediatric speech therapy)."""

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the therapist record was created."""

    # Relationships
    appointments = relationship("Appointment", back_populates="therapist")
    """Relationship to all Appointment entities where this therapist is the provider."""

    payments = relationship("TherapistPayment", back_populates="therapist")
    """Payments made to this therapist."""
