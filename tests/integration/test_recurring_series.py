"""
Integration tests for recurring series creation.

Covers the all-or-nothing conflict check, series structure, and the
grouped/ungrouped invoice generated for a confirmed series.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from core.exceptions import InvariantViolationError, SlotConflictError
from models import Appointment, AppointmentStatusChange, Invoice
from repositories import AppointmentRepository
from services import AppointmentService, InvoiceService, RecurringAppointmentService
from shared_types.statuses import AppointmentStatus, InvoiceStatus, RecurringFrequency
from tests.conftest import BASE_DATE, BASE_TIME, TODAY


class TestSeriesStructure:
    def test_weekly_series_has_one_parent_and_children(self, db_session: Session, appointment_data):
        created = RecurringAppointmentService.create_series(
            db_session, appointment_data(), RecurringFrequency.WEEKLY, 4, today=TODAY
        )

        parent, children = created[0], created[1:]
        assert [a.date for a in created] == [BASE_DATE + timedelta(weeks=i) for i in range(4)]
        assert all(a.time == BASE_TIME for a in created)
        assert all(a.is_recurring for a in created)

        assert parent.parent_appointment_id is None
        assert parent.recurring_count == 4
        assert parent.recurring_frequency == RecurringFrequency.WEEKLY
        for child in children:
            assert child.parent_appointment_id == parent.id
            assert child.recurring_count is None
            assert child.recurring_frequency == RecurringFrequency.WEEKLY

    def test_monthly_series_keeps_weekday(self, db_session: Session, appointment_data):
        created = RecurringAppointmentService.create_series(
            db_session, appointment_data(), RecurringFrequency.MONTHLY, 4, today=TODAY
        )

        assert [a.date for a in created] == [
            date(2026, 1, 5), date(2026, 2, 9), date(2026, 3, 9), date(2026, 4, 6),
        ]

    def test_creation_is_recorded_in_status_trail(self, db_session: Session, appointment_data):
        created = RecurringAppointmentService.create_series(
            db_session, appointment_data(), RecurringFrequency.WEEKLY, 3, today=TODAY
        )

        rows = db_session.query(AppointmentStatusChange).order_by(AppointmentStatusChange.id).all()
        assert [r.appointment_id for r in rows] == [a.id for a in created]
        assert all(r.old_status is None for r in rows)
        assert all(r.new_status == AppointmentStatus.CONFIRMED for r in rows)

    def test_child_with_recurring_count_is_rejected(self, db_session: Session, appointment_data):
        parent = RecurringAppointmentService.create_series(
            db_session, appointment_data(), RecurringFrequency.WEEKLY, 2, today=TODAY
        )[0]

        with pytest.raises(InvariantViolationError):
            AppointmentRepository(db_session).add(Appointment(
                patient_id=parent.patient_id,
                therapist_id=parent.therapist_id,
                date=BASE_DATE + timedelta(weeks=5),
                time=BASE_TIME,
                is_recurring=True,
                recurring_frequency=RecurringFrequency.WEEKLY,
                recurring_count=3,
                parent_appointment_id=parent.id,
            ))

    @pytest.mark.parametrize("count", [1, 53])
    def test_count_out_of_range(self, db_session: Session, appointment_data, count):
        with pytest.raises(ValueError):
            RecurringAppointmentService.create_series(
                db_session, appointment_data(), RecurringFrequency.WEEKLY, count, today=TODAY
            )

        assert db_session.query(Appointment).count() == 0


class TestSeriesConflicts:
    def test_conflict_on_later_occurrence_creates_nothing(
        self, db_session: Session, appointment_data, other_patient
    ):
        blocking = AppointmentService.create_single_appointment(
            db_session,
            appointment_data(patient_id=other_patient.id, date=BASE_DATE + timedelta(weeks=2)),
            today=TODAY,
        )

        with pytest.raises(SlotConflictError) as exc_info:
            RecurringAppointmentService.create_series(
                db_session, appointment_data(), RecurringFrequency.WEEKLY, 4, today=TODAY
            )

        error = exc_info.value
        assert error.conflict_date == BASE_DATE + timedelta(weeks=2)
        assert error.patient_name == "Hugo Bernard"
        assert error.appointment_id == blocking.id
        assert "Hugo Bernard" in str(error)
        assert "19/01/2026" in str(error)

        assert db_session.query(Appointment).count() == 1
        assert db_session.query(Invoice).count() == 1

    def test_cancelled_appointment_blocks_series(self, db_session: Session, appointment_data, other_patient):
        blocking = AppointmentService.create_single_appointment(
            db_session,
            appointment_data(patient_id=other_patient.id, date=BASE_DATE + timedelta(weeks=1)),
            today=TODAY,
        )
        AppointmentService.change_status(db_session, blocking.id, AppointmentStatus.CANCELLED)

        with pytest.raises(SlotConflictError):
            RecurringAppointmentService.create_series(
                db_session, appointment_data(), RecurringFrequency.WEEKLY, 3, today=TODAY
            )

    def test_first_slot_checked_on_request(self, db_session: Session, appointment_data, other_patient):
        AppointmentService.create_single_appointment(
            db_session, appointment_data(patient_id=other_patient.id), today=TODAY
        )

        with pytest.raises(SlotConflictError) as exc_info:
            RecurringAppointmentService.create_series(
                db_session,
                appointment_data(),
                RecurringFrequency.WEEKLY,
                3,
                check_first_slot=True,
                today=TODAY,
            )

        assert exc_info.value.conflict_date == BASE_DATE
        assert db_session.query(Appointment).count() == 1


class TestSeriesInvoices:
    def test_grouped_invoice_covers_every_session(self, db_session: Session, appointment_data):
        created = RecurringAppointmentService.create_series(
            db_session, appointment_data(), RecurringFrequency.WEEKLY, 4, today=TODAY
        )
        parent = created[0]

        invoice = InvoiceService.resolve_invoice(db_session, parent)

        assert db_session.query(Invoice).count() == 1
        assert invoice.appointment_id == parent.id
        assert invoice.is_grouped is True
        assert invoice.unit_price == Decimal("50.00")
        assert invoice.amount == Decimal("200.00")
        assert invoice.total_amount == Decimal("200.00")
        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.invoice_number == f"F-2026-{parent.id:04d}"
        assert invoice.issue_date == TODAY
        assert invoice.due_date == TODAY + timedelta(days=30)
        assert invoice.notes == (
            "Facture groupée pour 4 séances thérapeutiques (hebdomadaire): "
            "5 janvier 2026 à 09:00, 12 janvier 2026 à 09:00, "
            "19 janvier 2026 à 09:00, 26 janvier 2026 à 09:00"
        )

    def test_children_bill_through_parent_invoice(self, db_session: Session, appointment_data):
        created = RecurringAppointmentService.create_series(
            db_session, appointment_data(), RecurringFrequency.WEEKLY, 3, today=TODAY
        )

        invoice_ids = {InvoiceService.resolve_invoice(db_session, a).id for a in created}

        assert len(invoice_ids) == 1

    def test_ungrouped_invoice_bills_one_session(self, db_session: Session, appointment_data):
        created = RecurringAppointmentService.create_series(
            db_session,
            appointment_data(),
            RecurringFrequency.WEEKLY,
            3,
            group_invoices=False,
            today=TODAY,
        )

        invoice = InvoiceService.resolve_invoice(db_session, created[0])

        assert db_session.query(Invoice).count() == 1
        assert invoice.is_grouped is False
        assert invoice.amount == Decimal("50.00")
        assert invoice.notes == (
            "Séance thérapeutique du 05/01/2026 à 09:00\n"
            "Inclut également la séance du 12/01/2026 à 09:00\n"
            "Inclut également la séance du 19/01/2026 à 09:00"
        )

    def test_pending_series_has_no_invoice(self, db_session: Session, appointment_data):
        created = RecurringAppointmentService.create_series(
            db_session,
            appointment_data(status=AppointmentStatus.PENDING),
            RecurringFrequency.BIWEEKLY,
            3,
            today=TODAY,
        )

        assert all(a.status == AppointmentStatus.PENDING for a in created)
        assert db_session.query(Invoice).count() == 0
