"""
Audit trail of appointment status transitions.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Index, Integer, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from models.base import enum_column
from shared_types.statuses import AppointmentStatus


class AppointmentStatusChange(Base):
    """
    One row per status transition applied to an appointment, cascades included.

    ``appointment_id`` is not a foreign key; the trail outlives
    the appointment when a series is deleted.
    """

    __tablename__ = "appointment_status_changes"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    appointment_id: Mapped[int] = mapped_column(Integer)

    old_status: Mapped[Optional[AppointmentStatus]] = mapped_column(
        enum_column(AppointmentStatus, "appointment_status"), nullable=True
    )
    """Status before the transition; None for the initial status at creation."""

    new_status: Mapped[AppointmentStatus] = mapped_column(
        enum_column(AppointmentStatus, "appointment_status")
    )

    changed_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_status_changes_appointment', 'appointment_id'),
    )
