"""
Appointment model representing scheduled sessions between patients and therapists.

Appointments are either standalone or members of a recurring series. A series
has exactly one parent (``parent_appointment_id`` is NULL, ``is_recurring`` is
True, ``recurring_count`` holds the series length) and children that point to
it and never carry a ``recurring_count``.
"""

from datetime import date as date_type, datetime, time as time_type
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, TIME, TIMESTAMP, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.base import enum_column
from shared_types.statuses import AppointmentStatus, RecurringFrequency


class Appointment(Base):
    """
    Appointment entity occupying one (therapist, date, time) slot.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the appointment."""

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    """Reference to the patient who has booked this appointment."""

    therapist_id: Mapped[int] = mapped_column(ForeignKey("therapists.id"))
    """Reference to the therapist providing the session."""

    date: Mapped[date_type] = mapped_column(Date)
    """Calendar date of the session."""

    time: Mapped[time_type] = mapped_column(TIME)
    """Local start time of the session."""

    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Session length in minutes."""

    type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Kind of session (e.g. "Bilan", "Suivi régulier")."""

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[AppointmentStatus] = mapped_column(
        enum_column(AppointmentStatus, "appointment_status"),
        default=AppointmentStatus.CONFIRMED,
    )
    """Current status of the appointment."""

    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """True for every member of a recurring series, parent included."""

    recurring_frequency: Mapped[Optional[RecurringFrequency]] = mapped_column(
        enum_column(RecurringFrequency, "recurring_frequency"), nullable=True
    )

    recurring_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Total sessions in the series. Set on the series parent only."""

    parent_appointment_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("appointments.id"), nullable=True
    )
    """NULL for standalone and parent appointments; the parent's id for every other member."""

    groups_invoice: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """
    Series parent only: whether the whole series is billed through one grouped
    invoice anchored to this appointment.
    """

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    """Relationship to the Patient entity who booked this appointment."""

    therapist = relationship("Therapist", back_populates="appointments")
    """Relationship to the Therapist entity providing the session."""

    @property
    def is_series_parent(self) -> bool:
        """True for the first appointment of a recurring series."""
        return bool(self.is_recurring) and self.parent_appointment_id is None

    @property
    def is_series_child(self) -> bool:
        """True for every series member other than the parent."""
        return self.parent_appointment_id is not None

    @property
    def series_id(self) -> Optional[int]:
        """Id of the series parent, or None for a standalone appointment."""
        if self.is_series_child:
            return self.parent_appointment_id
        if self.is_series_parent:
            return self.id
        return None

    __table_args__ = (
        # Availability lookups hit the exact (therapist, date, time) slot
        Index('idx_appointments_slot', 'therapist_id', 'date', 'time'),
        Index('idx_appointments_parent', 'parent_appointment_id'),
        Index('idx_appointments_patient', 'patient_id'),
        Index('idx_appointments_status', 'status'),
    )
