"""
Schedule -- pure schedule analytics.

Responsibility:
    Combines a WorkingCalendar with the root rollup progress into
    expected vs. actual progress and the achievement rate.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  ScheduleSelector
    gathers the project dates, holidays and root progress and calls
    compute_schedule_stats(); nothing is cached.

Boundary convention:
    A day d has elapsed as of ``as_of`` iff start <= d < as_of.  The as-of
    day itself is not yet elapsed; every day is elapsed once as_of is after
    the end date.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from wbs_kernel.domain.calendar import WorkingCalendar, inclusive_days
from wbs_kernel.domain.dtos import ScheduleStats
from wbs_kernel.domain.rollup import HUNDRED, round_half_up
from wbs_kernel.exceptions import NoScheduleError


def expected_progress(elapsed_working_days: int, working_days: int) -> int:
    if working_days <= 0:
        return 0
    return round_half_up(Decimal(elapsed_working_days) / Decimal(working_days) * HUNDRED)


def achievement_rate(actual: int, expected: int) -> int:
    """
    Actual progress relative to plan, as a whole percentage.

    Never NaN or infinite: with nothing expected yet, any progress counts
    as 100 and no progress as 0.  Not capped above 100 (ahead of plan).
    """
    if expected > 0:
        return round_half_up(Decimal(actual) / Decimal(expected) * HUNDRED)
    return 100 if actual > 0 else 0


def compute_schedule_stats(
    project_id: UUID,
    start_date: date | None,
    end_date: date | None,
    as_of: date,
    actual_progress: int,
    calendar: WorkingCalendar,
) -> ScheduleStats:
    """
    Compute every schedule figure for one project.

    Raises:
        NoScheduleError: start or end date missing, or end before start.
    """
    if start_date is None or end_date is None:
        raise NoScheduleError(str(project_id))
    if end_date < start_date:
        raise NoScheduleError(
            str(project_id), f"end date {end_date} is before start date {start_date}"
        )

    total_days = inclusive_days(start_date, end_date)
    weekend_days = calendar.count_weekend_days(start_date, end_date)
    holiday_days = len(calendar.holiday_dates(start_date, end_date))
    working_days = total_days - weekend_days - holiday_days

    # Last elapsed day is the day before as_of, clipped to the range
    last_elapsed = min(as_of - timedelta(days=1), end_date)
    if last_elapsed < start_date:
        elapsed_days = 0
        elapsed_working = 0
    else:
        elapsed_days = inclusive_days(start_date, last_elapsed)
        elapsed_working = calendar.count_working_days(start_date, last_elapsed)
    elapsed_working = min(max(elapsed_working, 0), working_days)

    expected = expected_progress(elapsed_working, working_days)

    return ScheduleStats(
        project_id=project_id,
        start_date=start_date,
        end_date=end_date,
        as_of=as_of,
        total_days=total_days,
        working_days=working_days,
        weekend_days=weekend_days,
        holiday_days=holiday_days,
        elapsed_days=elapsed_days,
        remaining_days=total_days - elapsed_days,
        elapsed_working_days=elapsed_working,
        remaining_working_days=working_days - elapsed_working,
        expected_progress=expected,
        actual_progress=actual_progress,
        achievement_rate=achievement_rate(actual_progress, expected),
        delay_rate=expected - actual_progress,
        holidays=calendar.holidays,
    )
