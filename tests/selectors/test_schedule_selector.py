"""
Tests for ScheduleSelector / WbsEngine.compute_stats.

The ``project`` fixture runs 2025-01-01 .. 2025-01-31 (23 weekdays).
"""

from datetime import date
from uuid import uuid4

import pytest

from wbs_kernel.domain.dtos import CalendarPolicy, HolidayType
from wbs_kernel.exceptions import NoScheduleError, ProjectNotFoundError
from wbs_kernel.models.holiday import Holiday
from wbs_kernel.services.wbs_engine import WbsEngine


@pytest.fixture
def holidays(session, wbs_engine, project, test_actor_id):
    other = wbs_engine.create_project("Other", test_actor_id)
    rows = [
        Holiday(
            project_id=None,
            title="New Year",
            start_date=date(2025, 1, 1),
            holiday_type=HolidayType.COMPANY_HOLIDAY,
            created_by_id=test_actor_id,
        ),
        Holiday(
            project_id=project.id,
            title="Offsite",
            start_date=date(2025, 1, 20),
            end_date=date(2025, 1, 21),
            holiday_type=HolidayType.TEAM_OFFSITE,
            created_by_id=test_actor_id,
        ),
        Holiday(
            project_id=project.id,
            title="Leave",
            start_date=date(2025, 1, 15),
            holiday_type=HolidayType.PERSONAL_LEAVE,
            created_by_id=test_actor_id,
        ),
        Holiday(
            project_id=other.id,
            title="Other team",
            start_date=date(2025, 1, 10),
            holiday_type=HolidayType.COMPANY_HOLIDAY,
            created_by_id=test_actor_id,
        ),
        Holiday(
            project_id=None,
            title="Outside window",
            start_date=date(2025, 2, 3),
            holiday_type=HolidayType.COMPANY_HOLIDAY,
            created_by_id=test_actor_id,
        ),
    ]
    session.add_all(rows)
    session.flush()
    return rows


class TestComputeStats:

    def test_working_days_exclude_weekends_and_holidays(self, wbs_engine, project, holidays):
        stats = wbs_engine.compute_stats(project.id, date(2025, 1, 11))

        assert stats.total_days == 31
        assert stats.weekend_days == 8
        assert stats.holiday_days == 3
        assert stats.working_days == 20
        assert stats.elapsed_days == 10
        assert stats.elapsed_working_days == 7
        assert stats.remaining_working_days == 13
        assert stats.expected_progress == 35

    def test_holiday_list_scoped_to_project_and_window(self, wbs_engine, project, holidays):
        stats = wbs_engine.compute_stats(project.id, date(2025, 1, 11))
        assert [h.title for h in stats.holidays] == ["New Year", "Leave", "Offsite"]

    def test_actual_progress_is_root_rollup(
        self, wbs_engine, add_node, project, holidays, test_actor_id
    ):
        task = add_node("Only task")
        wbs_engine.set_leaf_progress(task.id, 70, test_actor_id)

        stats = wbs_engine.compute_stats(project.id, date(2025, 1, 11))

        assert stats.actual_progress == 70
        assert stats.achievement_rate == 200
        assert stats.delay_rate == -35

    def test_as_of_defaults_to_clock(self, wbs_engine, project, deterministic_clock):
        stats = wbs_engine.compute_stats(project.id)
        assert stats.as_of == deterministic_clock.today()
        assert stats.elapsed_days == 0
        assert stats.expected_progress == 0
        assert stats.achievement_rate == 0

    def test_recomputed_on_every_read(self, wbs_engine, add_node, project, test_actor_id):
        task = add_node("Task")
        first = wbs_engine.compute_stats(project.id, date(2025, 1, 15))
        wbs_engine.set_leaf_progress(task.id, 50, test_actor_id)
        second = wbs_engine.compute_stats(project.id, date(2025, 1, 15))

        assert first.actual_progress == 0
        assert second.actual_progress == 50

    def test_custom_calendar_policy(
        self, session, deterministic_clock, project, holidays
    ):
        engine = WbsEngine(
            session,
            deterministic_clock,
            calendar_policy=CalendarPolicy(weekend_days=frozenset()),
        )
        stats = engine.compute_stats(project.id, date(2025, 2, 1))

        assert stats.weekend_days == 0
        assert stats.working_days == 28
        assert stats.expected_progress == 100

    def test_project_without_dates(self, wbs_engine, test_actor_id, captured_logs):
        info = wbs_engine.create_project("Unscheduled", test_actor_id)

        with pytest.raises(NoScheduleError):
            wbs_engine.compute_stats(info.id, date(2025, 1, 5))
        assert any(r["message"] == "schedule_unavailable" for r in captured_logs())

    def test_unknown_project(self, wbs_engine):
        with pytest.raises(ProjectNotFoundError):
            wbs_engine.compute_stats(uuid4(), date(2025, 1, 5))
