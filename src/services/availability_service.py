"""
Availability service.

A slot is the exact (therapist, date, time) triple. Any appointment sitting on
it blocks it, cancelled ones included.
"""

import logging
from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from repositories import AppointmentRepository
from shared_types.availability import AvailabilityResult, ConflictInfo

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service class for availability checks.

    Read-only: calling it any number of times has no effect on the database.
    """

    @staticmethod
    def check_availability(
        db: Session,
        therapist_id: int,
        date: date,
        time: time,
        exclude_appointment_id: Optional[int] = None,
    ) -> AvailabilityResult:
        """
        Check whether a therapist's slot is free.

        Args:
            db: Database session
            therapist_id: Therapist whose schedule is checked
            date: Slot date
            time: Slot time
            exclude_appointment_id: Appointment to ignore, used when moving it

        Returns:
            AvailabilityResult, with the occupying patient when unavailable
        """
        found = AppointmentRepository(db).find_at_slot(
            therapist_id, date, time, exclude_appointment_id=exclude_appointment_id
        )
        if found is None:
            return AvailabilityResult(available=True)

        appointment, patient = found
        logger.debug(
            f"Slot {date} {time} for therapist {therapist_id} taken by appointment {appointment.id}"
        )
        return AvailabilityResult(
            available=False,
            conflict=ConflictInfo(
                patient_id=patient.id,
                patient_name=patient.full_name,
                appointment_id=appointment.id,
            ),
        )
