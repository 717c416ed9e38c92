"""
CalendarSelector -- holiday calendar reads.

Returns the holidays that apply to a project over a date range: entries
scoped to the project plus global entries (project_id NULL), single dates
or ranges overlapping the window.  Read-only.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from wbs_kernel.domain.calendar import WorkingCalendar
from wbs_kernel.domain.dtos import CalendarPolicy, HolidaySpan
from wbs_kernel.models.holiday import Holiday
from wbs_kernel.selectors.base import BaseSelector


class CalendarSelector(BaseSelector[Holiday]):

    def __init__(self, session: Session, policy: CalendarPolicy | None = None):
        super().__init__(session)
        self._policy = policy or CalendarPolicy()

    def list_holidays(
        self,
        project_id: UUID,
        start_date: date,
        end_date: date,
    ) -> tuple[HolidaySpan, ...]:
        """Holidays of every type overlapping [start_date, end_date]."""
        rows = self.session.execute(
            select(Holiday)
            .where(
                or_(Holiday.project_id == project_id, Holiday.project_id.is_(None)),
                Holiday.start_date <= end_date,
                func.coalesce(Holiday.end_date, Holiday.start_date) >= start_date,
            )
            .order_by(Holiday.start_date, Holiday.id)
        ).scalars()
        return tuple(HolidaySpan.from_model(row) for row in rows)

    def working_calendar(
        self,
        project_id: UUID,
        start_date: date,
        end_date: date,
    ) -> WorkingCalendar:
        return WorkingCalendar(
            self.list_holidays(project_id, start_date, end_date),
            self._policy,
        )
