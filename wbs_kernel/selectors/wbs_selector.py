"""
WbsSelector -- read models over a project's work breakdown.

Responsibility:
    - The nested tree with derived parent dates.
    - Unweighted aggregate counts over leaves, from a single pass.
    - Per-assignee task statistics.
    - A full bottom-up re-derivation of every aggregate, used to check that
      the stored (incrementally maintained) progress is consistent.

Architecture position:
    Kernel > Selectors.  Read-only.  Every method loads the project's nodes
    with one query and works in memory; the tree is at most five levels
    deep.

Failure modes:
    - ProjectNotFoundError: the project has no root node.
    - NodeNotFoundError: unknown node id in get_node.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from wbs_kernel.domain.clock import Clock, SystemClock
from wbs_kernel.domain.dtos import (
    AggregateCounts,
    AssigneeReport,
    AssigneeStats,
    WbsNodeInfo,
    WbsStatus,
    WbsTreeNode,
)
from wbs_kernel.domain.rollup import derive_status, round_half_up, weighted_progress
from wbs_kernel.exceptions import NodeNotFoundError, ProjectNotFoundError
from wbs_kernel.models.wbs_node import WbsNode
from wbs_kernel.selectors.base import BaseSelector


class WbsSelector(BaseSelector[WbsNode]):
    """Read access to WBS nodes as frozen DTOs."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def get_node(self, node_id: UUID) -> WbsNodeInfo:
        node = self.session.get(WbsNode, node_id)
        if node is None:
            raise NodeNotFoundError(str(node_id))
        return WbsNodeInfo.from_model(node)

    def list_nodes(self, project_id: UUID) -> list[WbsNodeInfo]:
        """Every node of the project, root first, then by level and position."""
        rows = self.session.execute(
            select(WbsNode)
            .where(WbsNode.project_id == project_id)
            .order_by(WbsNode.level, WbsNode.parent_id, WbsNode.sort_order)
        ).scalars()
        nodes = [WbsNodeInfo.from_model(row) for row in rows]
        if not nodes or not nodes[0].is_root:
            raise ProjectNotFoundError(str(project_id))
        return nodes

    @staticmethod
    def _children_map(nodes: list[WbsNodeInfo]) -> dict[UUID, list[WbsNodeInfo]]:
        children: dict[UUID, list[WbsNodeInfo]] = defaultdict(list)
        for node in nodes:
            if node.parent_id is not None:
                children[node.parent_id].append(node)
        for siblings in children.values():
            siblings.sort(key=lambda n: n.sort_order)
        return children

    # ------------------------------------------------------------------
    # Tree
    # ------------------------------------------------------------------

    def get_tree(self, project_id: UUID) -> WbsTreeNode:
        """
        The project's tree from the synthetic root.

        Parents report the earliest start and latest end among their
        children's (derived) dates.
        """
        nodes = self.list_nodes(project_id)
        children = self._children_map(nodes)

        def build(node: WbsNodeInfo) -> WbsTreeNode:
            kids = tuple(build(child) for child in children.get(node.id, ()))
            if not kids:
                return WbsTreeNode(node, (), node.start_date, node.end_date)
            starts = [k.derived_start_date for k in kids if k.derived_start_date]
            ends = [k.derived_end_date for k in kids if k.derived_end_date]
            return WbsTreeNode(
                node,
                kids,
                min(starts) if starts else None,
                max(ends) if ends else None,
            )

        return build(nodes[0])

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def get_aggregate_counts(
        self,
        project_id: UUID,
        as_of: date | None = None,
    ) -> AggregateCounts:
        """
        Unweighted counts over leaves, statuses derived as of *as_of*.

        Single pass over the node set, partitioned into leaf vs internal.
        """
        as_of = as_of or self._clock.today()
        nodes = self.list_nodes(project_id)
        parents = {n.parent_id for n in nodes if n.parent_id is not None}

        tally: dict[WbsStatus, int] = defaultdict(int)
        internal = 0
        for node in nodes:
            if node.is_root:
                continue
            if node.id in parents:
                internal += 1
                continue
            tally[derive_status(node.progress, node.end_date, as_of)] += 1

        return AggregateCounts(
            total=sum(tally.values()),
            completed=tally[WbsStatus.COMPLETED],
            in_progress=tally[WbsStatus.IN_PROGRESS],
            delayed=tally[WbsStatus.DELAYED],
            not_started=tally[WbsStatus.NOT_STARTED],
            internal=internal,
        )

    def get_assignee_stats(
        self,
        project_id: UUID,
        as_of: date | None = None,
    ) -> AssigneeReport:
        """
        Task statistics per assignee.

        An assignee is counted on every node (any level) they are assigned
        to.  Leaves without any assignee are reported as ``unassigned``.
        """
        as_of = as_of or self._clock.today()
        nodes = self.list_nodes(project_id)
        parents = {n.parent_id for n in nodes if n.parent_id is not None}

        per_assignee: dict[UUID, list[WbsNodeInfo]] = defaultdict(list)
        unassigned: list[WbsNodeInfo] = []
        for node in nodes:
            if node.is_root:
                continue
            for assignee_id in node.assignee_ids:
                per_assignee[assignee_id].append(node)
            if not node.assignee_ids and node.id not in parents:
                unassigned.append(node)

        return AssigneeReport(
            assignees=tuple(
                self._stats(assignee_id, per_assignee[assignee_id], as_of)
                for assignee_id in sorted(per_assignee, key=str)
            ),
            unassigned=self._stats(None, unassigned, as_of),
        )

    @staticmethod
    def _stats(
        assignee_id: UUID | None,
        nodes: list[WbsNodeInfo],
        as_of: date,
    ) -> AssigneeStats:
        statuses = [derive_status(n.progress, n.end_date, as_of) for n in nodes]
        average = (
            round_half_up(Decimal(sum(n.progress for n in nodes)) / Decimal(len(nodes)))
            if nodes
            else 0
        )
        return AssigneeStats(
            assignee_id=assignee_id,
            total=len(nodes),
            completed=statuses.count(WbsStatus.COMPLETED),
            in_progress=statuses.count(WbsStatus.IN_PROGRESS),
            delayed=statuses.count(WbsStatus.DELAYED),
            not_started=statuses.count(WbsStatus.NOT_STARTED),
            average_progress=average,
        )

    # ------------------------------------------------------------------
    # Consistency
    # ------------------------------------------------------------------

    def rederive_progress(self, project_id: UUID) -> dict[UUID, int]:
        """
        Progress of every node re-derived from the leaves alone.

        Leaves keep their stored progress; every node with children gets the
        weighted average of its (re-derived) children.
        """
        nodes = self.list_nodes(project_id)
        children = self._children_map(nodes)
        derived: dict[UUID, int] = {}

        def visit(node: WbsNodeInfo) -> int:
            kids = children.get(node.id)
            if kids:
                value = weighted_progress([(k.weight, visit(k)) for k in kids])
            else:
                value = node.progress
            derived[node.id] = value
            return value

        visit(nodes[0])
        return derived

    def find_rollup_mismatches(self, project_id: UUID) -> tuple[UUID, ...]:
        """Nodes whose stored progress differs from a full re-derivation."""
        stored = {n.id: n.progress for n in self.list_nodes(project_id)}
        return tuple(
            node_id
            for node_id, value in self.rederive_progress(project_id).items()
            if stored[node_id] != value
        )
