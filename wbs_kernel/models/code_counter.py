"""
Module: wbs_kernel.models.code_counter
Responsibility: ORM persistence for per-(project, prefix) code counters.
Architecture position: Kernel > Models.  May import from db/ only.

Each row holds the highest number ever allocated for one prefix in one
project.  It is the single source of truth for the next code; existing
issue/requirement/discussion records are never scanned.  Rows are created
lazily on first allocation and never deleted while the project exists.
"""

from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from wbs_kernel.db.base import Base, UUIDString


class CodeCounter(Base):
    """
    Code counter table.

    Row-level locking on this row serializes concurrent allocations for the
    same (project, prefix).
    """

    __tablename__ = "wbs_code_counters"

    __table_args__ = (
        UniqueConstraint("project_id", "prefix", name="uq_code_counter_key"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("wbs_projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    prefix: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
    )

    # Highest allocated number; 0 = nothing allocated yet
    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<CodeCounter {self.prefix}@{self.project_id}: {self.current_value}>"
