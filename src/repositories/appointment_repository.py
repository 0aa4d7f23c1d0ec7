"""
Persistence for appointments and their status audit trail.
"""

import logging
from datetime import date, time
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from core.exceptions import InvariantViolationError
from models import Appointment, AppointmentStatusChange, Patient
from shared_types.statuses import AppointmentStatus
from utils.datetime_utils import clinic_now

logger = logging.getLogger(__name__)


class AppointmentRepository:
    """Queries and writes on the appointments table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def list(
        self,
        therapist_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Appointment]:
        """List appointments ordered by date and time, optionally filtered."""
        query = self.db.query(Appointment)
        if therapist_id is not None:
            query = query.filter(Appointment.therapist_id == therapist_id)
        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        if start_date is not None:
            query = query.filter(Appointment.date >= start_date)
        if end_date is not None:
            query = query.filter(Appointment.date <= end_date)
        return query.order_by(Appointment.date, Appointment.time, Appointment.id).all()

    def add(self, appointment: Appointment) -> Appointment:
        """
        Stage a new appointment and flush it so its id is available.

        Raises:
            InvariantViolationError: If a series child carries a recurring_count
        """
        if appointment.parent_appointment_id is not None and appointment.recurring_count is not None:
            raise InvariantViolationError(
                f"Series child of appointment {appointment.parent_appointment_id} "
                f"cannot carry a recurring_count"
            )
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def find_by_parent_id(self, parent_id: int) -> List[Appointment]:
        """Children of a series parent in date order."""
        return (
            self.db.query(Appointment)
            .filter(Appointment.parent_appointment_id == parent_id)
            .order_by(Appointment.date, Appointment.time, Appointment.id)
            .all()
        )

    def find_series_members(self, parent_id: int) -> List[Appointment]:
        """The parent followed by its children, in date order."""
        parent = self.get(parent_id)
        members = [parent] if parent is not None else []
        return members + self.find_by_parent_id(parent_id)

    def find_series_from_date(self, parent_id: int, from_date: date) -> List[Appointment]:
        """Series members (parent included) dated on or after ``from_date``."""
        return [member for member in self.find_series_members(parent_id) if member.date >= from_date]

    def find_at_slot(
        self,
        therapist_id: int,
        slot_date: date,
        slot_time: time,
        exclude_appointment_id: Optional[int] = None,
    ) -> Optional[Tuple[Appointment, Patient]]:
        """
        Return the appointment occupying the exact (therapist, date, time) slot,
        whatever its status, together with its patient.
        """
        query = (
            self.db.query(Appointment, Patient)
            .join(Patient, Appointment.patient_id == Patient.id)
            .filter(
                Appointment.therapist_id == therapist_id,
                Appointment.date == slot_date,
                Appointment.time == slot_time,
            )
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        row = query.order_by(Appointment.id).first()
        if row is None:
            return None
        return row[0], row[1]

    def detach_from_series(self, appointment: Appointment) -> None:
        """Turn a series child into a standalone appointment."""
        appointment.parent_appointment_id = None
        appointment.is_recurring = False
        appointment.recurring_frequency = None
        appointment.recurring_count = None
        self.db.flush()

    def delete(self, appointment: Appointment) -> None:
        """
        Delete an appointment row.

        Raises:
            InvariantViolationError: If the appointment is a parent that still has children
        """
        remaining = self.db.query(Appointment.id).filter(
            Appointment.parent_appointment_id == appointment.id
        ).count()
        if remaining:
            raise InvariantViolationError(
                f"Appointment {appointment.id} still has {remaining} child appointment(s)"
            )
        self.db.delete(appointment)
        self.db.flush()

    def record_status_change(
        self,
        appointment_id: int,
        old_status: Optional[AppointmentStatus],
        new_status: AppointmentStatus,
    ) -> AppointmentStatusChange:
        """Append a row to the status audit trail."""
        change = AppointmentStatusChange(
            appointment_id=appointment_id,
            old_status=old_status,
            new_status=new_status,
            changed_at=clinic_now(),
        )
        self.db.add(change)
        self.db.flush()
        return change
