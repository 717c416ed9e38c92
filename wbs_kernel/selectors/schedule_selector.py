"""
ScheduleSelector -- calendar-aware schedule analytics.

Responsibility:
    Gathers a project's schedule window, its holidays and the root rollup
    progress, and hands them to the pure compute_schedule_stats().
    Recomputed on every read; nothing is cached.

Architecture position:
    Kernel > Selectors.  Read-only.

Failure modes:
    - ProjectNotFoundError: unknown project.
    - NoScheduleError: project start or end date missing, or end < start.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from wbs_kernel.domain.clock import Clock, SystemClock
from wbs_kernel.domain.dtos import CalendarPolicy, ScheduleStats
from wbs_kernel.domain.schedule import compute_schedule_stats
from wbs_kernel.exceptions import NoScheduleError, ProjectNotFoundError
from wbs_kernel.logging_config import get_logger
from wbs_kernel.models.project import Project
from wbs_kernel.models.wbs_node import WbsNode
from wbs_kernel.selectors.base import BaseSelector
from wbs_kernel.selectors.calendar_selector import CalendarSelector

logger = get_logger("selectors.schedule")


class ScheduleSelector(BaseSelector[Project]):
    """Schedule figures for one project as of one date."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: CalendarPolicy | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._calendar = CalendarSelector(session, policy)

    def compute_stats(self, project_id: UUID, as_of: date | None = None) -> ScheduleStats:
        """
        Compute schedule statistics.

        Args:
            as_of: evaluation date; defaults to today per the injected clock.
        """
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        if not project.has_schedule:
            logger.warning(
                "schedule_unavailable",
                extra={"project_id": str(project_id)},
            )
            raise NoScheduleError(str(project_id))

        as_of = as_of or self._clock.today()
        root_progress = self.session.execute(
            select(WbsNode.progress).where(
                WbsNode.project_id == project_id,
                WbsNode.parent_id.is_(None),
            )
        ).scalar_one_or_none()

        calendar = self._calendar.working_calendar(
            project_id, project.start_date, project.end_date
        )
        stats = compute_schedule_stats(
            project_id=project_id,
            start_date=project.start_date,
            end_date=project.end_date,
            as_of=as_of,
            actual_progress=root_progress or 0,
            calendar=calendar,
        )

        logger.debug(
            "schedule_stats_computed",
            extra={
                "project_id": str(project_id),
                "as_of": as_of,
                "working_days": stats.working_days,
                "expected_progress": stats.expected_progress,
                "actual_progress": stats.actual_progress,
            },
        )
        return stats
