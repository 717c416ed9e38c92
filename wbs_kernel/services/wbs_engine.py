"""
WbsEngine -- single entry point for the application layer.

Responsibility:
    Wires the node store, rollup, tree mutation, WBS, allocation and
    schedule components onto one session and exposes the kernel's public
    operations:

        set_leaf_progress(node_id, progress)   -> UpdatedChain
        change_level(node_id, "up" | "down")   -> MutationResult
        compute_stats(project_id, as_of)       -> ScheduleStats
        allocate(project_id, prefix, count)    -> list[str]
        get_aggregate_counts(project_id)       -> AggregateCounts

    plus project/node lifecycle and the tree read model.

Architecture position:
    Kernel > Services.  Built by wbs_config.bridges.build_wbs_engine from a
    configuration set, or directly with kernel defaults.  The caller owns
    the session and commits.

Logging:
    Every write and stats call binds its operation name and the project_id,
    node_id or actor_id it was given into LogContext so the component log
    lines carry them.
"""

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from wbs_kernel.domain.clock import Clock, SystemClock
from wbs_kernel.domain.codes import PrefixRegistry
from wbs_kernel.domain.dtos import (
    AggregateCounts,
    AssigneeReport,
    CalendarPolicy,
    DeletionResult,
    LevelDirection,
    MutationResult,
    ProjectInfo,
    ScheduleStats,
    UpdatedChain,
    WbsNodeInfo,
    WbsTreeNode,
)
from wbs_kernel.logging_config import LogContext
from wbs_kernel.selectors.schedule_selector import ScheduleSelector
from wbs_kernel.selectors.wbs_selector import WbsSelector
from wbs_kernel.services.code_allocator import CodeAllocator
from wbs_kernel.services.node_store import WbsNodeStore
from wbs_kernel.services.rollup_service import ProgressRollupService
from wbs_kernel.services.tree_mutation_service import TreeMutationService
from wbs_kernel.services.wbs_service import WbsService


class WbsEngine:
    """Facade over the WBS kernel for one session."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        prefixes: PrefixRegistry | None = None,
        calendar_policy: CalendarPolicy | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        store = WbsNodeStore(session)
        self.rollup = ProgressRollupService(session, self.clock, store)
        self.tree = TreeMutationService(session, self.clock, store, self.rollup)
        self.wbs = WbsService(session, self.clock, store, self.rollup)
        self.allocator = CodeAllocator(session, prefixes)
        self.schedule = ScheduleSelector(session, self.clock, calendar_policy)
        self.selector = WbsSelector(session, self.clock)

    # Core operations

    def set_leaf_progress(
        self, node_id: UUID, progress: int, actor_id: UUID
    ) -> UpdatedChain:
        with LogContext.bind(
            operation="set_leaf_progress", node_id=str(node_id), actor_id=str(actor_id)
        ):
            return self.rollup.set_leaf_progress(node_id, progress, actor_id)

    def change_level(
        self, node_id: UUID, direction: LevelDirection | str, actor_id: UUID
    ) -> MutationResult:
        with LogContext.bind(
            operation="change_level", node_id=str(node_id), actor_id=str(actor_id)
        ):
            return self.tree.change_level(node_id, direction, actor_id)

    def compute_stats(self, project_id: UUID, as_of: date | None = None) -> ScheduleStats:
        with LogContext.bind(operation="compute_stats", project_id=str(project_id)):
            return self.schedule.compute_stats(project_id, as_of)

    def allocate(
        self,
        project_id: UUID,
        prefix: str,
        count: int = 1,
        width: int | None = None,
    ) -> list[str]:
        with LogContext.bind(operation="allocate", project_id=str(project_id)):
            return self.allocator.allocate(project_id, prefix, count, width)

    def get_aggregate_counts(
        self, project_id: UUID, as_of: date | None = None
    ) -> AggregateCounts:
        return self.selector.get_aggregate_counts(project_id, as_of)

    # Lifecycle and read models

    def create_project(self, name: str, actor_id: UUID, **kwargs) -> ProjectInfo:
        with LogContext.bind(operation="create_project", actor_id=str(actor_id)):
            return self.wbs.create_project(name, actor_id, **kwargs)

    def create_node(
        self, project_id: UUID, name: str, actor_id: UUID, **kwargs
    ) -> WbsNodeInfo:
        with LogContext.bind(
            operation="create_node", project_id=str(project_id), actor_id=str(actor_id)
        ):
            return self.wbs.create_node(project_id, name, actor_id, **kwargs)

    def update_node(self, node_id: UUID, actor_id: UUID, **kwargs) -> WbsNodeInfo:
        with LogContext.bind(
            operation="update_node", node_id=str(node_id), actor_id=str(actor_id)
        ):
            return self.wbs.update_node(node_id, actor_id, **kwargs)

    def delete_node(self, node_id: UUID, actor_id: UUID) -> DeletionResult:
        with LogContext.bind(
            operation="delete_node", node_id=str(node_id), actor_id=str(actor_id)
        ):
            return self.wbs.delete_node(node_id, actor_id)

    def get_tree(self, project_id: UUID) -> WbsTreeNode:
        return self.selector.get_tree(project_id)

    def get_assignee_stats(
        self, project_id: UUID, as_of: date | None = None
    ) -> AssigneeReport:
        return self.selector.get_assignee_stats(project_id, as_of)
