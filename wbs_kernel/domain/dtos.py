"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures returned by the WBS services and
    selectors: node snapshots, the updated ancestor chain after a leaf edit,
    the result of a promote/demote, the tree read model, schedule figures,
    aggregate and per-assignee counts, and the calendar inputs.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies and database access.  from_model() class
    methods exist as boundary converters but are only invoked from the
    service and selector layers.

Invariants enforced:
    - Services and selectors return DTOs, never ORM entities.
    - Every DTO is a frozen dataclass; collections are tuples.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum, IntEnum
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from wbs_kernel.models.holiday import Holiday as HolidayModel
    from wbs_kernel.models.project import Project as ProjectModel
    from wbs_kernel.models.wbs_node import WbsNode as WbsNodeModel


# =============================================================================
# Tree vocabulary
# =============================================================================


class WbsLevel(IntEnum):
    """Depth of a node.  ROOT is the synthetic per-project root."""

    ROOT = 0
    L1 = 1
    L2 = 2
    L3 = 3
    L4 = 4


MIN_LEVEL = WbsLevel.L1
MAX_LEVEL = WbsLevel.L4


class WbsStatus(str, Enum):
    """
    Derived status of a node.

    Contract:
        Never set by hand; re-derived from progress and end date whenever
        the node's progress is (re)computed.
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DELAYED = "delayed"
    COMPLETED = "completed"


class LevelDirection(str, Enum):
    """Direction of a level change.  UP = promote, DOWN = demote."""

    UP = "up"
    DOWN = "down"


class HolidayType(str, Enum):
    COMPANY_HOLIDAY = "company_holiday"
    TEAM_OFFSITE = "team_offsite"
    PERSONAL_LEAVE = "personal_leave"


# =============================================================================
# Projects
# =============================================================================


@dataclass(frozen=True)
class ProjectInfo:
    """Pure domain representation of a project and its synthetic root."""

    id: UUID
    name: str
    root_node_id: UUID
    start_date: date | None = None
    end_date: date | None = None
    description: str | None = None

    @classmethod
    def from_model(cls, model: ProjectModel, root_node_id: UUID) -> ProjectInfo:
        return cls(
            id=model.id,
            name=model.name,
            root_node_id=root_node_id,
            start_date=model.start_date,
            end_date=model.end_date,
            description=model.description,
        )


# =============================================================================
# Node snapshots
# =============================================================================


@dataclass(frozen=True)
class WbsNodeInfo:
    """
    Pure domain representation of a WBS node.

    Contract:
        Immutable snapshot of a node at the moment it was read.  Holds no
        children; use WbsTreeNode for the nested read model.
    """

    id: UUID
    project_id: UUID
    parent_id: UUID | None
    level: int
    sort_order: int
    code: str
    name: str
    weight: Decimal | None
    progress: int
    status: WbsStatus
    start_date: date | None = None
    end_date: date | None = None
    actual_start_date: date | None = None
    actual_end_date: date | None = None
    description: str | None = None
    assignee_ids: tuple[UUID, ...] = ()

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @classmethod
    def from_model(cls, model: WbsNodeModel) -> WbsNodeInfo:
        """Create a WbsNodeInfo from a WbsNode ORM model."""
        return cls(
            id=model.id,
            project_id=model.project_id,
            parent_id=model.parent_id,
            level=model.level,
            sort_order=model.sort_order,
            code=model.code,
            name=model.name,
            weight=None if model.weight is None else Decimal(model.weight),
            progress=model.progress,
            status=WbsStatus(model.status),
            start_date=model.start_date,
            end_date=model.end_date,
            actual_start_date=model.actual_start_date,
            actual_end_date=model.actual_end_date,
            description=model.description,
            assignee_ids=tuple(model.assignee_ids),
        )


@dataclass(frozen=True)
class UpdatedChain:
    """
    Result of a leaf progress edit.

    Contract:
        ``nodes`` runs bottom-up: the edited leaf first, then every
        ancestor up to and including the project root, each as it stands
        after recomputation.
    """

    nodes: tuple[WbsNodeInfo, ...]

    @property
    def leaf(self) -> WbsNodeInfo:
        return self.nodes[0]

    @property
    def root(self) -> WbsNodeInfo:
        return self.nodes[-1]

    @property
    def ancestors(self) -> tuple[WbsNodeInfo, ...]:
        return self.nodes[1:]


@dataclass(frozen=True)
class MutationResult:
    """
    Result of a promote or demote.

    Contract:
        ``node`` is the moved node after the change.  ``moved_node_ids``
        lists the node and every descendant whose level shifted.
        ``recomputed`` holds each ancestor whose progress was re-derived,
        bottom-up, old chain before new chain, each node at most once.
    """

    node: WbsNodeInfo
    direction: LevelDirection
    old_parent_id: UUID
    new_parent_id: UUID
    old_level: int
    new_level: int
    moved_node_ids: tuple[UUID, ...]
    recomputed: tuple[WbsNodeInfo, ...]


@dataclass(frozen=True)
class DeletionResult:
    """
    Result of deleting a node.

    Contract:
        ``deleted_node_ids`` holds the node and its whole subtree.
        ``recomputed`` is the former parent chain, bottom-up to the root.
    """

    deleted_node_ids: tuple[UUID, ...]
    recomputed: tuple[WbsNodeInfo, ...]


@dataclass(frozen=True)
class WbsTreeNode:
    """
    Nested read model of a (sub)tree.

    Contract:
        ``derived_start_date`` / ``derived_end_date`` are the node's own
        dates for a leaf, and the earliest child start / latest child end
        for a node with children (None when no child has the date).
    """

    node: WbsNodeInfo
    children: tuple[WbsTreeNode, ...] = ()
    derived_start_date: date | None = None
    derived_end_date: date | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def walk(self) -> Iterator[WbsTreeNode]:
        """Pre-order traversal including self."""
        yield self
        for child in self.children:
            yield from child.walk()


# =============================================================================
# Aggregates
# =============================================================================


@dataclass(frozen=True)
class AggregateCounts:
    """
    Unweighted counts over a project's leaves.

    Contract:
        total == completed + in_progress + delayed + not_started.
        ``internal`` is the number of non-root nodes with children; they are
        not part of ``total``.
    """

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    delayed: int = 0
    not_started: int = 0
    internal: int = 0


@dataclass(frozen=True)
class AssigneeStats:
    """Per-assignee task counts and mean progress.  ``assignee_id`` None = unassigned."""

    assignee_id: UUID | None
    total: int
    completed: int
    in_progress: int
    delayed: int
    not_started: int
    average_progress: int


@dataclass(frozen=True)
class AssigneeReport:
    assignees: tuple[AssigneeStats, ...]
    unassigned: AssigneeStats


# =============================================================================
# Calendar and schedule
# =============================================================================


@dataclass(frozen=True)
class HolidaySpan:
    """
    A calendar entry as seen by the working-day calculation.

    Contract:
        Covers ``start_date`` through ``end_date`` inclusive.  A single-day
        entry has ``end_date == start_date``.
    """

    start_date: date
    end_date: date
    holiday_type: HolidayType = HolidayType.COMPANY_HOLIDAY
    title: str = ""

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise ValueError(
                f"Holiday end {self.end_date} is before start {self.start_date}"
            )

    def dates(self) -> Iterator[date]:
        day = self.start_date
        while day <= self.end_date:
            yield day
            day += timedelta(days=1)

    @classmethod
    def from_model(cls, model: HolidayModel) -> HolidaySpan:
        return cls(
            start_date=model.start_date,
            end_date=model.end_date or model.start_date,
            holiday_type=HolidayType(model.holiday_type),
            title=model.title,
        )


@dataclass(frozen=True)
class CalendarPolicy:
    """
    Which days are never working days.

    ``weekend_days`` are ISO weekday numbers (Monday=1 .. Sunday=7).
    ``non_working_types`` are the holiday types that remove a working day.
    """

    weekend_days: frozenset[int] = frozenset({6, 7})
    non_working_types: frozenset[HolidayType] = frozenset(
        {HolidayType.COMPANY_HOLIDAY, HolidayType.TEAM_OFFSITE}
    )


@dataclass(frozen=True)
class ScheduleStats:
    """
    Calendar-aware schedule figures for one project as of one date.

    Contract:
        - working_days == total_days - weekend_days - holiday_days
        - elapsed_working_days + remaining_working_days == working_days
        - elapsed_days + remaining_days == total_days
        - expected_progress in 0..100; achievement_rate >= 0 and never
          NaN or infinite.
        - delay_rate = expected_progress - actual_progress (positive means
          behind plan).
    """

    project_id: UUID
    start_date: date
    end_date: date
    as_of: date
    total_days: int
    working_days: int
    weekend_days: int
    holiday_days: int
    elapsed_days: int
    remaining_days: int
    elapsed_working_days: int
    remaining_working_days: int
    expected_progress: int
    actual_progress: int
    achievement_rate: int
    delay_rate: int
    holidays: tuple[HolidaySpan, ...] = field(default=())
