"""
Module: wbs_kernel.models.wbs_node
Responsibility: ORM persistence for work-breakdown nodes and their assignees.
Architecture position: Kernel > Models.  May import from db/ and domain/dtos.py.

Invariants enforced (by the services that write these rows):
    - level(child) == level(parent) + 1; the synthetic root is level 0 and
      the only node with parent_id NULL.
    - Nodes at level 4 are always leaves.
    - progress of a node with children is derived from those children and
      never written independently.
    - sort_order is dense (1..n) among siblings and code is the outline
      position ("1", "1.2", "1.2.3").

Failure modes:
    - NodeNotFoundError from WbsNodeStore when an id does not resolve.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wbs_kernel.db.base import Base, TrackedBase, UUIDString
from wbs_kernel.domain.dtos import WbsStatus


class WbsNode(TrackedBase):
    """
    One node of a project's work breakdown.

    Guarantees:
        - weight is None (counts as 1) or a non-negative Decimal.
        - progress is an integer 0..100.
        - assignees are deleted with the node.

    Non-goals:
        - No ORM children relationship; tree walks go through WbsNodeStore
          so that every read can take row locks explicitly.
    """

    __tablename__ = "wbs_nodes"

    __table_args__ = (
        Index("idx_wbs_node_project", "project_id"),
        Index("idx_wbs_node_parent_order", "parent_id", "sort_order"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("wbs_projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    # NULL only for the synthetic project root
    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("wbs_nodes.id", ondelete="CASCADE"),
        nullable=True,
    )

    level: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Position among siblings, 1-based and dense
    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )

    # Outline code, e.g. "1.2.3"; empty for the root
    code: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(4000),
        nullable=True,
    )

    # Relative weight among siblings; None means "count as 1"
    weight: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 6),
        nullable=True,
    )

    progress: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    status: Mapped[WbsStatus] = mapped_column(
        String(20),
        nullable=False,
        default=WbsStatus.NOT_STARTED,
    )

    # Planned window (inclusive)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Actual window
    actual_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    assignees: Mapped[list["WbsNodeAssignee"]] = relationship(
        back_populates="node",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="WbsNodeAssignee.assignee_id",
    )

    def __repr__(self) -> str:
        return f"<WbsNode {self.code or 'root'} L{self.level}: {self.name}>"

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def assignee_ids(self) -> tuple[UUID, ...]:
        return tuple(a.assignee_id for a in self.assignees)


class WbsNodeAssignee(Base):
    """Assignment of one person to one node."""

    __tablename__ = "wbs_node_assignees"

    __table_args__ = (
        UniqueConstraint("node_id", "assignee_id", name="uq_wbs_node_assignee"),
        Index("idx_wbs_assignee", "assignee_id"),
    )

    node_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("wbs_nodes.id", ondelete="CASCADE"),
        nullable=False,
    )

    assignee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    node: Mapped[WbsNode] = relationship(back_populates="assignees")
