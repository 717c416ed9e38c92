"""
Module: wbs_kernel.models.project
Responsibility: ORM persistence for projects -- the owner of one WBS tree,
    one schedule window and one set of code counters.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Every project owns exactly one synthetic root node (level 0), created
      together with the project by WbsService.create_project.
    - start_date <= end_date when both are set (enforced by WbsService).

Failure modes:
    - NoScheduleError from schedule analytics when either date is unset.
"""

from datetime import date

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from wbs_kernel.db.base import TrackedBase


class Project(TrackedBase):
    """
    A project whose work breakdown, schedule and codes the kernel manages.

    Guarantees:
        - name is non-empty.
        - Dates are inclusive calendar dates; both may be unset while the
          project is still being planned.
    """

    __tablename__ = "wbs_projects"

    __table_args__ = (Index("idx_project_name", "name"),)

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(4000),
        nullable=True,
    )

    # Schedule window (inclusive)
    start_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    end_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Project {self.name}: {self.start_date}..{self.end_date}>"

    @property
    def has_schedule(self) -> bool:
        """True when both schedule dates are set."""
        return self.start_date is not None and self.end_date is not None
