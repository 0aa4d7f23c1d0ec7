"""
Unit tests for the patch-field sentinel.
"""

import copy
from datetime import date, time
from decimal import Decimal

from core.sentinels import MISSING, is_set, provided_fields
from shared_types.scheduling import AppointmentPatch, PaymentPatch


class TestMissing:
    def test_missing_is_falsy_and_survives_copies(self):
        assert not MISSING
        assert copy.deepcopy(MISSING) is MISSING
        assert repr(MISSING) == "MISSING"

    def test_none_counts_as_set(self):
        assert is_set(None)
        assert is_set(0)
        assert not is_set(MISSING)


class TestProvidedFields:
    def test_empty_patch_has_no_fields(self):
        assert provided_fields(PaymentPatch()) == {}

    def test_keeps_explicit_none(self):
        patch = PaymentPatch(amount=Decimal("60.00"), payment_reference=None)

        assert provided_fields(patch) == {
            "amount": Decimal("60.00"),
            "payment_reference": None,
        }


class TestMovesSlot:
    def test_notes_only_does_not_move(self):
        assert not AppointmentPatch(notes="Rappel").moves_slot()

    def test_date_or_time_moves(self):
        assert AppointmentPatch(date=date(2026, 1, 6)).moves_slot()
        assert AppointmentPatch(time=time(10, 0)).moves_slot()
