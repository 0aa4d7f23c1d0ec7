"""
Patient model representing individuals receiving therapy at the clinic.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Patient(Base):
    """
    Patient entity.

    Patients book appointments with therapists and are billed through invoices.
    Only the fields the scheduling core needs are modelled here.
    """

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the patient."""

    first_name: Mapped[str] = mapped_column(String(255))
    last_name: Mapped[str] = mapped_column(String(255))

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Free-text remarks about the patient."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    appointments = relationship("Appointment", back_populates="patient")
    """All appointments booked for this patient."""

    @property
    def full_name(self) -> str:
        """Display name, as shown in conflict messages and invoices."""
        return f"{self.first_name} {self.last_name}"
