"""
Module: wbs_kernel.models.holiday
Responsibility: ORM persistence for calendar entries that may remove
    working days from a project schedule.
Architecture position: Kernel > Models.  May import from db/ and domain/dtos.py.

A holiday covers a single date or an inclusive [start_date, end_date]
range.  Rows with project_id NULL apply to every project.  Whether a row
actually removes working days depends on its type and the configured
calendar policy (personal leave never does by default).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from wbs_kernel.db.base import TrackedBase, UUIDString
from wbs_kernel.domain.dtos import HolidayType


class Holiday(TrackedBase):
    """A dated calendar entry, optionally scoped to one project."""

    __tablename__ = "wbs_holidays"

    __table_args__ = (
        Index("idx_holiday_project_date", "project_id", "start_date"),
    )

    # NULL = applies to all projects
    project_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("wbs_projects.id", ondelete="CASCADE"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # Inclusive range end; NULL for a single day
    end_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    holiday_type: Mapped[HolidayType] = mapped_column(
        String(20),
        nullable=False,
        default=HolidayType.COMPANY_HOLIDAY,
    )

    def __repr__(self) -> str:
        return f"<Holiday {self.title}: {self.start_date}..{self.last_date}>"

    @property
    def last_date(self) -> date:
        return self.end_date or self.start_date
