"""
Unit tests for the recurrence expander.

Covers the spacing of every frequency, the weekday realignment of monthly and
yearly series, and the general ordering guarantees.
"""

import pytest
from datetime import date, time, timedelta
from hypothesis import given, settings, strategies as st

from services.recurrence_service import RecurrenceExpander
from shared_types.availability import Occurrence
from shared_types.statuses import RecurringFrequency


MONDAY = date(2026, 1, 5)
NINE = time(9, 0)


def _dates(occurrences):
    return [o.date for o in occurrences]


class TestExpanderInvariants:
    """Length, ordering and first element hold for every frequency."""

    @pytest.mark.parametrize("frequency", list(RecurringFrequency))
    @pytest.mark.parametrize("count", [1, 2, 7, 52])
    def test_length_order_and_first_element(self, frequency, count):
        occurrences = RecurrenceExpander.expand(MONDAY, NINE, frequency, count)

        assert len(occurrences) == count
        assert occurrences[0] == Occurrence(date=MONDAY, time=NINE)
        dates = _dates(occurrences)
        assert all(earlier < later for earlier, later in zip(dates, dates[1:]))
        assert all(o.time == NINE for o in occurrences)

    @pytest.mark.parametrize("count", [0, -3])
    def test_non_positive_count_returns_empty(self, count):
        assert RecurrenceExpander.expand(MONDAY, NINE, RecurringFrequency.WEEKLY, count) == []


class TestFixedSpacing:
    def test_weekly_steps_seven_days(self):
        dates = _dates(RecurrenceExpander.expand(MONDAY, NINE, RecurringFrequency.WEEKLY, 5))

        assert all(later - earlier == timedelta(days=7) for earlier, later in zip(dates, dates[1:]))
        assert dates[-1] == date(2026, 2, 2)

    def test_biweekly_steps_fourteen_days(self):
        dates = _dates(RecurrenceExpander.expand(MONDAY, NINE, RecurringFrequency.BIWEEKLY, 3))

        assert dates == [date(2026, 1, 5), date(2026, 1, 19), date(2026, 2, 2)]


class TestMonthlyRealignment:
    """Monthly occurrences land on the base weekday."""

    def test_moves_forward_to_base_weekday(self):
        # 5 Feb and 5 Mar 2026 are Thursdays, 5 Apr is a Sunday
        dates = _dates(RecurrenceExpander.expand(MONDAY, NINE, RecurringFrequency.MONTHLY, 4))

        assert dates == [date(2026, 1, 5), date(2026, 2, 9), date(2026, 3, 9), date(2026, 4, 6)]
        assert all(d.weekday() == MONDAY.weekday() for d in dates)

    def test_steps_back_a_week_when_forward_leaves_the_month(self):
        # Monday 30 March; 30 April is a Thursday and the next Monday is 4 May
        base = date(2026, 3, 30)

        dates = _dates(RecurrenceExpander.expand(base, NINE, RecurringFrequency.MONTHLY, 2))

        assert dates == [base, date(2026, 4, 27)]
        assert dates[1].weekday() == base.weekday()

    def test_end_of_month_base_is_clamped_then_realigned(self):
        # Saturday 31 January: February has 28 days, 31 March is a Tuesday
        base = date(2026, 1, 31)

        dates = _dates(RecurrenceExpander.expand(base, NINE, RecurringFrequency.MONTHLY, 3))

        assert dates == [base, date(2026, 2, 28), date(2026, 3, 28)]
        assert all(d.weekday() == 5 for d in dates)

    def test_never_drifts_over_a_year(self):
        dates = _dates(RecurrenceExpander.expand(MONDAY, NINE, RecurringFrequency.MONTHLY, 12))

        assert all(d.weekday() == MONDAY.weekday() for d in dates)
        assert [d.month for d in dates] == list(range(1, 13))


class TestYearly:
    def test_moves_forward_to_base_weekday(self):
        dates = _dates(RecurrenceExpander.expand(MONDAY, NINE, RecurringFrequency.YEARLY, 3))

        assert dates == [date(2026, 1, 5), date(2027, 1, 11), date(2028, 1, 10)]

    def test_leap_day_clamps_to_28_february_then_moves_forward(self):
        # Tuesday 29 February 2028; 28 February 2029 is a Wednesday
        base = date(2028, 2, 29)

        dates = _dates(RecurrenceExpander.expand(base, NINE, RecurringFrequency.YEARLY, 2))

        assert dates == [base, date(2029, 3, 6)]
        assert dates[1].weekday() == base.weekday()


class TestExpanderProperties:
    """Invariants over arbitrary base dates, frequencies and counts."""

    @settings(max_examples=300, deadline=None)
    @given(
        base=st.dates(min_value=date(2000, 1, 1), max_value=date(2090, 12, 31)),
        frequency=st.sampled_from(list(RecurringFrequency)),
        count=st.integers(min_value=1, max_value=52),
    )
    def test_length_order_first_element_and_weekday(self, base, frequency, count):
        occurrences = RecurrenceExpander.expand(base, NINE, frequency, count)

        assert len(occurrences) == count
        assert occurrences[0] == Occurrence(date=base, time=NINE)
        dates = _dates(occurrences)
        assert all(earlier < later for earlier, later in zip(dates, dates[1:]))
        assert all(d.weekday() == base.weekday() for d in dates)
        assert all(o.time == NINE for o in occurrences)

    @settings(max_examples=200, deadline=None)
    @given(
        base=st.dates(min_value=date(2000, 1, 1), max_value=date(2090, 12, 31)),
        count=st.integers(min_value=1, max_value=52),
    )
    def test_monthly_occurrence_stays_in_its_month(self, base, count):
        dates = _dates(RecurrenceExpander.expand(base, NINE, RecurringFrequency.MONTHLY, count))

        for i, d in enumerate(dates):
            months = base.month - 1 + i
            assert (d.year, d.month) == (base.year + months // 12, months % 12 + 1)
