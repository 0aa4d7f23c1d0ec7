"""
Recurrence expansion for recurring appointment series.

Pure date arithmetic: no database access and no clock.
"""

from datetime import date, time, timedelta
from typing import List

from shared_types.availability import Occurrence
from shared_types.statuses import RecurringFrequency
from utils.datetime_utils import add_months, add_years


class RecurrenceExpander:
    """
    Expands a base slot into the ordered occurrences of a series.

    Monthly and yearly occurrences keep the base weekday, so a series started
    on a Tuesday stays on Tuesdays.
    """

    @staticmethod
    def expand(
        base_date: date,
        base_time: time,
        frequency: RecurringFrequency,
        count: int,
    ) -> List[Occurrence]:
        """
        Compute the occurrences of a series.

        Args:
            base_date: Date of the first session
            base_time: Time of every session
            frequency: Spacing between sessions
            count: Number of sessions, first one included

        Returns:
            ``count`` occurrences in strictly increasing date order, the first
            being ``(base_date, base_time)``. Empty when ``count <= 0``.
        """
        if count <= 0:
            return []

        occurrences: List[Occurrence] = []
        for index in range(count):
            if frequency == RecurringFrequency.WEEKLY:
                current = base_date + timedelta(days=7 * index)
            elif frequency == RecurringFrequency.BIWEEKLY:
                current = base_date + timedelta(days=14 * index)
            elif frequency == RecurringFrequency.MONTHLY:
                current = RecurrenceExpander._monthly_occurrence(base_date, index)
            elif frequency == RecurringFrequency.YEARLY:
                current = RecurrenceExpander._yearly_occurrence(base_date, index)
            else:
                raise ValueError(f"Unsupported recurring frequency: {frequency}")
            occurrences.append(Occurrence(date=current, time=base_time))
        return occurrences

    @staticmethod
    def _monthly_occurrence(base_date: date, index: int) -> date:
        candidate = add_months(base_date, index)
        if index == 0 or candidate.weekday() == base_date.weekday():
            return candidate

        # Move forward to the base weekday; step back a week if that leaves the month
        forward = candidate + timedelta(days=(base_date.weekday() - candidate.weekday()) % 7)
        if forward.month != candidate.month:
            return forward - timedelta(days=7)
        return forward

    @staticmethod
    def _yearly_occurrence(base_date: date, index: int) -> date:
        candidate = add_years(base_date, index)
        if index == 0:
            return candidate
        return candidate + timedelta(days=(base_date.weekday() - candidate.weekday()) % 7)
