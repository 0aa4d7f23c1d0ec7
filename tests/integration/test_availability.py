"""
Integration tests for slot availability.

A slot is blocked by any appointment at the exact therapist/date/time,
whatever its status.
"""

from datetime import time, timedelta

from sqlalchemy.orm import Session

from models import Appointment
from services import AppointmentService, AvailabilityService
from shared_types.statuses import AppointmentStatus
from tests.conftest import BASE_DATE, BASE_TIME, TODAY


class TestAvailability:
    def test_empty_schedule_is_available(self, db_session: Session, therapist):
        result = AvailabilityService.check_availability(db_session, therapist.id, BASE_DATE, BASE_TIME)

        assert result.available is True
        assert result.conflict is None

    def test_taken_slot_reports_occupying_patient(self, db_session: Session, therapist, appointment_data):
        appointment = AppointmentService.create_single_appointment(
            db_session, appointment_data(), today=TODAY
        )

        result = AvailabilityService.check_availability(db_session, therapist.id, BASE_DATE, BASE_TIME)

        assert result.available is False
        assert result.conflict.patient_name == "Léa Dubois"
        assert result.conflict.appointment_id == appointment.id

    def test_slot_is_exact_triple(self, db_session: Session, therapist, other_therapist, appointment_data):
        AppointmentService.create_single_appointment(db_session, appointment_data(), today=TODAY)

        assert AvailabilityService.check_availability(
            db_session, therapist.id, BASE_DATE, time(9, 30)
        ).available
        assert AvailabilityService.check_availability(
            db_session, therapist.id, BASE_DATE + timedelta(days=1), BASE_TIME
        ).available
        assert AvailabilityService.check_availability(
            db_session, other_therapist.id, BASE_DATE, BASE_TIME
        ).available

    def test_cancelled_appointment_still_blocks(self, db_session: Session, therapist, appointment_data):
        appointment = AppointmentService.create_single_appointment(
            db_session, appointment_data(), today=TODAY
        )
        AppointmentService.change_status(
            db_session, appointment.id, AppointmentStatus.CANCELLED, today=TODAY
        )

        result = AvailabilityService.check_availability(db_session, therapist.id, BASE_DATE, BASE_TIME)

        assert result.available is False

    def test_excluded_appointment_does_not_block(self, db_session: Session, therapist, appointment_data):
        appointment = AppointmentService.create_single_appointment(
            db_session, appointment_data(), today=TODAY
        )

        result = AvailabilityService.check_availability(
            db_session, therapist.id, BASE_DATE, BASE_TIME, exclude_appointment_id=appointment.id
        )

        assert result.available is True

    def test_check_has_no_side_effects(self, db_session: Session, therapist, appointment_data):
        AppointmentService.create_single_appointment(db_session, appointment_data(), today=TODAY)

        first = AvailabilityService.check_availability(db_session, therapist.id, BASE_DATE, BASE_TIME)
        second = AvailabilityService.check_availability(db_session, therapist.id, BASE_DATE, BASE_TIME)

        assert first == second
        assert db_session.query(Appointment).count() == 1
