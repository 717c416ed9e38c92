"""
WorkingCalendar -- working-day arithmetic over a date range.

Responsibility:
    Counts calendar days, weekend days, non-working holiday days and
    working days over inclusive date ranges.  Holidays may be single dates
    or ranges; overlapping entries are de-duplicated by date, and a holiday
    that falls on a weekend day is counted once, as a weekend day.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The holiday list is
    supplied by the caller (CalendarSelector reads it from the store).
"""

from collections.abc import Iterable, Iterator
from datetime import date, timedelta

from wbs_kernel.domain.dtos import CalendarPolicy, HolidaySpan


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from *start* to *end* inclusive (nothing if end < start)."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def inclusive_days(start: date, end: date) -> int:
    """Number of calendar days from *start* to *end* inclusive, never negative."""
    return max(0, (end - start).days + 1)


class WorkingCalendar:
    """
    Working-day calendar for one project.

    Contract:
        A day is a working day iff it is not a weekend day under the policy
        and no non-working holiday covers it.  Holidays whose type is not
        in ``policy.non_working_types`` are ignored.

    Guarantees:
        - count_working_days(a, b) == inclusive_days(a, b)
          - count_weekend_days(a, b) - len(holiday_dates(a, b))
        - All counts are >= 0; an empty range (end < start) counts 0.
    """

    def __init__(
        self,
        holidays: Iterable[HolidaySpan] = (),
        policy: CalendarPolicy | None = None,
    ):
        self._policy = policy or CalendarPolicy()
        self._holidays = tuple(holidays)
        self._closed: frozenset[date] = frozenset(
            day
            for span in self._holidays
            if span.holiday_type in self._policy.non_working_types
            for day in span.dates()
        )

    @property
    def policy(self) -> CalendarPolicy:
        return self._policy

    @property
    def holidays(self) -> tuple[HolidaySpan, ...]:
        return self._holidays

    def is_weekend(self, day: date) -> bool:
        return day.isoweekday() in self._policy.weekend_days

    def is_holiday(self, day: date) -> bool:
        """True if a non-working holiday covers *day* (weekends aside)."""
        return day in self._closed

    def is_working_day(self, day: date) -> bool:
        return not self.is_weekend(day) and not self.is_holiday(day)

    def holiday_dates(self, start: date, end: date) -> frozenset[date]:
        """Distinct non-working holiday dates in range that are not weekend days."""
        return frozenset(
            day
            for day in self._closed
            if start <= day <= end and not self.is_weekend(day)
        )

    def count_weekend_days(self, start: date, end: date) -> int:
        return sum(1 for day in iter_dates(start, end) if self.is_weekend(day))

    def count_working_days(self, start: date, end: date) -> int:
        return sum(1 for day in iter_dates(start, end) if self.is_working_day(day))
