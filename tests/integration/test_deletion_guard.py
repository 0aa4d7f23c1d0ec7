"""
Integration tests for the deletion guard.

Nothing a therapist has been paid for may disappear: settled appointments are
refused, settled children of a deleted series are kept as standalone
appointments, and payment foreign key violations read as "already settled".
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.constants import PAYMENT_INVOICE_FK_NAME
from core.exceptions import AlreadySettledError
from models import Appointment, Invoice, TherapistPayment
from repositories import InvoiceRepository
from services import (
    AppointmentService,
    DeletionService,
    InvoiceService,
    RecurringAppointmentService,
)
from shared_types.statuses import InvoiceStatus, RecurringFrequency
from tests.conftest import BASE_DATE, TODAY


def _payment_fk_error() -> IntegrityError:
    return IntegrityError(
        "DELETE FROM invoices WHERE invoices.id = ?",
        {},
        Exception(f'violates foreign key constraint "{PAYMENT_INVOICE_FK_NAME}"'),
    )


@pytest.fixture
def grouped_series(db_session: Session, appointment_data):
    created = RecurringAppointmentService.create_series(
        db_session, appointment_data(), RecurringFrequency.WEEKLY, 4, today=TODAY
    )
    return created, InvoiceService.resolve_invoice(db_session, created[0])


class TestSingleAppointment:
    def test_unknown_appointment_is_a_failed_noop(self, db_session: Session):
        result = DeletionService.delete_appointment(db_session, 999)

        assert result.success is False
        assert result.reason == "not_found"

    def test_unsettled_appointment_is_deleted_with_invoice(self, db_session: Session, appointment_data):
        appointment = AppointmentService.create_single_appointment(
            db_session, appointment_data(), today=TODAY
        )

        result = DeletionService.delete_appointment(db_session, appointment.id)

        assert result.success is True
        assert result.deleted_appointment_ids == [appointment.id]
        assert db_session.query(Appointment).count() == 0
        assert db_session.query(Invoice).count() == 0

    def test_settled_appointment_is_refused_without_mutation(self, db_session: Session, appointment_data):
        appointment = AppointmentService.create_single_appointment(
            db_session, appointment_data(), today=TODAY
        )
        invoice = InvoiceService.resolve_invoice(db_session, appointment)
        InvoiceService.mark_paid(db_session, invoice.id, today=TODAY)

        result = DeletionService.delete_appointment(db_session, appointment.id)

        assert result.success is False
        assert result.reason == "already_settled"
        assert "réglé au thérapeute" in result.message
        assert db_session.query(Appointment).count() == 1
        assert db_session.query(Invoice).count() == 1
        assert db_session.query(TherapistPayment).count() == 1


class TestSeriesDeletion:
    def test_deleting_child_shrinks_grouped_invoice(self, db_session: Session, grouped_series):
        created, invoice = grouped_series

        result = DeletionService.delete_appointment(db_session, created[3].id)

        assert result.success is True
        assert invoice.amount == Decimal("150.00")
        assert invoice.notes.startswith("Facture groupée pour 3 séances")

    def test_deleting_child_of_paid_series_shrinks_paid_invoice(self, db_session: Session, grouped_series):
        created, invoice = grouped_series
        InvoiceService.mark_paid(db_session, invoice.id, today=TODAY)

        result = DeletionService.delete_appointment(db_session, created[1].id)

        payment = db_session.query(TherapistPayment).one()
        assert result.success is True
        assert db_session.query(Appointment).count() == 3
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.amount == Decimal("150.00")
        assert payment.amount == Decimal("150.00")

    def test_parent_of_paid_series_is_refused(self, db_session: Session, grouped_series):
        created, invoice = grouped_series
        InvoiceService.mark_paid(db_session, invoice.id, today=TODAY)

        result = DeletionService.delete_series(db_session, created[0].id)

        assert result.success is False
        assert result.reason == "already_settled"
        assert db_session.query(Appointment).count() == 4

    def test_settled_child_survives_series_deletion(self, db_session: Session, appointment_data):
        created = RecurringAppointmentService.create_series(
            db_session,
            appointment_data(),
            RecurringFrequency.WEEKLY,
            3,
            group_invoices=False,
            today=TODAY,
        )
        parent, settled, other = created
        # A session billed and paid on its own before the series is dropped
        own_invoice = InvoiceService.generate_invoice(db_session, settled, today=TODAY)
        db_session.commit()
        InvoiceService.mark_paid(db_session, own_invoice.id, today=TODAY)

        result = DeletionService.delete_series(db_session, parent.id)

        assert result.success is True
        assert result.skipped_appointment_ids == [settled.id]
        assert sorted(result.deleted_appointment_ids) == sorted([parent.id, other.id])

        remaining = db_session.query(Appointment).one()
        assert remaining.id == settled.id
        assert remaining.parent_appointment_id is None
        assert remaining.is_recurring is False
        assert db_session.query(Invoice).one().id == own_invoice.id

    def test_delete_following_skips_settled_members(self, db_session: Session, appointment_data):
        created = RecurringAppointmentService.create_series(
            db_session, appointment_data(), RecurringFrequency.WEEKLY, 4, today=TODAY
        )
        settled = created[3]
        own_invoice = InvoiceService.generate_invoice(db_session, settled, today=TODAY)
        db_session.commit()
        InvoiceService.mark_paid(db_session, own_invoice.id, today=TODAY)

        result = DeletionService.delete_following(db_session, created[2].id)

        assert result.success is True
        assert result.deleted_appointment_ids == [created[2].id]
        assert result.skipped_appointment_ids == [settled.id]

    def test_delete_series_rejects_non_parent(self, db_session: Session, grouped_series):
        created, _ = grouped_series

        with pytest.raises(ValueError):
            DeletionService.delete_series(db_session, created[1].id)

    def test_delete_following_rejects_parent(self, db_session: Session, grouped_series):
        created, _ = grouped_series

        with pytest.raises(ValueError):
            DeletionService.delete_following(db_session, created[0].id)

    def test_delete_series_unknown_id(self, db_session: Session):
        result = DeletionService.delete_series(db_session, 999)

        assert result.success is False
        assert result.reason == "not_found"


class TestForeignKeyMapping:
    def test_payment_fk_violation_reads_as_already_settled(self, db_session: Session, appointment_data):
        appointment = AppointmentService.create_single_appointment(
            db_session, appointment_data(date=BASE_DATE + timedelta(days=1)), today=TODAY
        )

        with patch.object(DeletionService, "_delete", side_effect=_payment_fk_error()):
            result = DeletionService.delete_appointment(db_session, appointment.id)

        assert result.success is False
        assert result.reason == "already_settled"
        assert db_session.query(Appointment).count() == 1

    def test_other_integrity_errors_propagate(self, db_session: Session, appointment_data):
        appointment = AppointmentService.create_single_appointment(
            db_session, appointment_data(), today=TODAY
        )
        error = IntegrityError("DELETE", {}, Exception("appointments_patient_id_fkey"))

        with patch.object(DeletionService, "_delete", side_effect=error):
            with pytest.raises(IntegrityError):
                DeletionService.delete_appointment(db_session, appointment.id)

    def test_invoice_deletion_maps_payment_fk(self, db_session: Session, appointment_data):
        appointment = AppointmentService.create_single_appointment(
            db_session, appointment_data(), today=TODAY
        )
        invoice = InvoiceService.resolve_invoice(db_session, appointment)

        with patch.object(InvoiceRepository, "delete", side_effect=_payment_fk_error()):
            with pytest.raises(AlreadySettledError):
                InvoiceService.delete_invoice(db_session, invoice.id)

        assert db_session.query(Invoice).count() == 1
