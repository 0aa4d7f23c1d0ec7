"""
Integration tests for manual therapist payments.
"""

from datetime import date, time
from decimal import Decimal
from unittest import mock

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import AlreadySettledError, NotFoundError
from models import Invoice
from services import AppointmentService, InvoiceService, TherapistPaymentService
from shared_types.scheduling import PaymentCreate, PaymentPatch
from tests.conftest import TODAY


@pytest.fixture
def make_invoice(db_session: Session, appointment_data):
    """Create a confirmed appointment at the given hour and return its invoice."""
    def build(hour: int = 9):
        appointment = AppointmentService.create_single_appointment(
            db_session, appointment_data(time=time(hour, 0)), today=TODAY
        )
        return InvoiceService.resolve_invoice(db_session, appointment)

    return build


def _payment(invoice, **overrides) -> PaymentCreate:
    values = {
        "therapist_id": invoice.therapist_id,
        "invoice_id": invoice.id,
        "amount": Decimal("50"),
        "payment_date": date(2026, 1, 31),
        "payment_method": "Chèque",
    }
    values.update(overrides)
    return PaymentCreate(**values)


class TestCreatePayment:
    def test_manual_payment(self, db_session: Session, make_invoice):
        invoice = make_invoice()

        payment = TherapistPaymentService.create_payment(
            db_session, _payment(invoice, payment_reference="CHQ-0042")
        )

        assert payment.id is not None
        assert payment.amount == Decimal("50.00")
        assert payment.payment_reference == "CHQ-0042"
        assert invoice.payment is payment

    def test_second_payment_for_invoice_is_refused(self, db_session: Session, make_invoice):
        invoice = make_invoice()
        TherapistPaymentService.create_payment(db_session, _payment(invoice))

        with pytest.raises(AlreadySettledError):
            TherapistPaymentService.create_payment(db_session, _payment(invoice))

    def test_marking_paid_after_manual_payment_reuses_it(self, db_session: Session, make_invoice):
        invoice = make_invoice()
        manual = TherapistPaymentService.create_payment(db_session, _payment(invoice))

        InvoiceService.mark_paid(db_session, invoice.id, today=TODAY)

        assert TherapistPaymentService.list_for_therapist(db_session, invoice.therapist_id) == [manual]

    def test_unknown_invoice(self, db_session: Session, therapist):
        with pytest.raises(NotFoundError):
            TherapistPaymentService.create_payment(db_session, PaymentCreate(
                therapist_id=therapist.id,
                invoice_id=999,
                amount=Decimal("50"),
                payment_date=TODAY,
                payment_method="Espèces",
            ))

    def test_amount_must_be_positive(self, db_session: Session, make_invoice):
        invoice = make_invoice()

        with pytest.raises(ValueError):
            TherapistPaymentService.create_payment(db_session, _payment(invoice, amount=Decimal("0")))

    def test_therapist_must_match_invoice(self, db_session: Session, make_invoice, other_therapist):
        invoice = make_invoice()

        with pytest.raises(ValueError):
            TherapistPaymentService.create_payment(
                db_session, _payment(invoice, therapist_id=other_therapist.id)
            )

        assert TherapistPaymentService.list_for_therapist(db_session, other_therapist.id) == []
        assert TherapistPaymentService.list_for_therapist(db_session, invoice.therapist_id) == []


class TestUpdateAndDeletePayment:
    def test_update_fields(self, db_session: Session, make_invoice):
        invoice = make_invoice()
        payment = TherapistPaymentService.create_payment(db_session, _payment(invoice))

        TherapistPaymentService.update_payment(
            db_session,
            payment.id,
            PaymentPatch(amount=Decimal("45.5"), payment_reference="VIR-2026-01"),
        )

        assert payment.amount == Decimal("45.50")
        assert payment.payment_reference == "VIR-2026-01"
        assert payment.invoice_id == invoice.id

    def test_failed_update_is_rolled_back(self, db_session: Session, make_invoice):
        invoice = make_invoice()
        payment = TherapistPaymentService.create_payment(db_session, _payment(invoice))

        with mock.patch.object(db_session, "commit", side_effect=SQLAlchemyError("connection lost")):
            with pytest.raises(SQLAlchemyError):
                TherapistPaymentService.update_payment(
                    db_session, payment.id, PaymentPatch(amount=Decimal("80"))
                )

        assert payment.amount == Decimal("50.00")

    def test_update_unknown_payment(self, db_session: Session):
        with pytest.raises(NotFoundError):
            TherapistPaymentService.update_payment(db_session, 999, PaymentPatch(notes="x"))

    def test_deleting_payment_unlocks_invoice(self, db_session: Session, make_invoice):
        invoice = make_invoice()
        payment = TherapistPaymentService.create_payment(db_session, _payment(invoice))

        TherapistPaymentService.delete_payment(db_session, payment.id)
        InvoiceService.delete_invoice(db_session, invoice.id)

        assert db_session.query(Invoice).count() == 0


class TestListPayments:
    def test_list_for_therapist_most_recent_first(self, db_session: Session, make_invoice):
        january = TherapistPaymentService.create_payment(db_session, _payment(make_invoice(9)))
        march = TherapistPaymentService.create_payment(
            db_session, _payment(make_invoice(10), payment_date=date(2026, 3, 1))
        )

        payments = TherapistPaymentService.list_for_therapist(db_session, january.therapist_id)

        assert payments == [march, january]

    def test_list_by_date_range_includes_bounds(self, db_session: Session, make_invoice):
        first = TherapistPaymentService.create_payment(
            db_session, _payment(make_invoice(9), payment_date=date(2026, 2, 1))
        )
        last = TherapistPaymentService.create_payment(
            db_session, _payment(make_invoice(10), payment_date=date(2026, 2, 28))
        )
        TherapistPaymentService.create_payment(
            db_session, _payment(make_invoice(11), payment_date=date(2026, 3, 1))
        )

        payments = TherapistPaymentService.list_by_date_range(
            db_session, date(2026, 2, 1), date(2026, 2, 28)
        )

        assert payments == [first, last]

    def test_list_by_date_range_filters_therapist(self, db_session: Session, make_invoice, other_therapist):
        TherapistPaymentService.create_payment(db_session, _payment(make_invoice()))

        payments = TherapistPaymentService.list_by_date_range(
            db_session, date(2026, 1, 1), date(2026, 12, 31), therapist_id=other_therapist.id
        )

        assert payments == []

    def test_inverted_range(self, db_session: Session):
        with pytest.raises(ValueError):
            TherapistPaymentService.list_by_date_range(db_session, date(2026, 2, 1), date(2026, 1, 1))
