"""
TreeMutationService -- promote and demote between fixed depth levels.

Responsibility:
    Moves a node (with its whole subtree) one level up or down the WBS,
    keeping level consistency, dense sibling order and outline codes, and
    re-derives progress along the old and new ancestor chains.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by WbsEngine.change_level.

Algorithms:
    Promote (UP), node n with parent p and grandparent g:
        n becomes a child of g placed immediately after p; g's later
        children shift one position right.  n and every descendant go up
        one level.  p's remaining children close the gap.
        Rollup runs from p upward; g is p's parent so one walk covers both
        the old and the new chain.
    Demote (DOWN), node n with parent p:
        n becomes the last child of its immediately preceding sibling s.
        n and every descendant go down one level.  p's remaining children
        close the gap.  Rollup runs from s upward (s, p, ..., root).

Invariants enforced:
    LEVEL_CONSISTENCY -- every moved node stays within L1..L4 and keeps
        level(child) == level(parent) + 1.
    L4_IS_LEAF -- a demote that would push any descendant past L4 is
        rejected before anything is written.
    ACYCLIC_TREE -- reparenting goes through WbsNodeStore.reparent_node.
    Atomicity -- reparent, relevel, renumber and rollup run in one
        SAVEPOINT; on any error none of it persists.

Failure modes:
    - NodeNotFoundError: unknown node.
    - InvalidNodeError: node is the project root.
    - InvalidDirectionError: direction is neither "up" nor "down".
    - BoundaryError: promote of an L1 node; demote of an L4 node; demote
      that would push a descendant past L4.
    - NoTargetError: demote of a node with no preceding sibling.

Concurrency:
    Concurrent promote/demote of overlapping subtrees must be serialized
    by the caller.  The moved node and its chain are locked for the
    duration of the caller's transaction.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from wbs_kernel.domain.clock import Clock, SystemClock
from wbs_kernel.domain.dtos import (
    MAX_LEVEL,
    MIN_LEVEL,
    LevelDirection,
    MutationResult,
    WbsNodeInfo,
)
from wbs_kernel.exceptions import (
    BoundaryError,
    InvalidDirectionError,
    InvalidNodeError,
    NoTargetError,
)
from wbs_kernel.logging_config import get_logger
from wbs_kernel.models.wbs_node import WbsNode
from wbs_kernel.services.base import BaseService
from wbs_kernel.services.node_store import WbsNodeStore
from wbs_kernel.services.rollup_service import ProgressRollupService

logger = get_logger("services.tree_mutation")


def parse_direction(node_id: UUID, direction: LevelDirection | str) -> LevelDirection:
    try:
        return LevelDirection(direction)
    except ValueError:
        raise InvalidDirectionError(str(node_id), direction) from None


class TreeMutationService(BaseService[WbsNode]):
    """
    Service for level changes.

    Contract:
        ``change_level`` either fully applies the move (returning a frozen
        MutationResult) or raises a typed TreeError with nothing written.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        store: WbsNodeStore | None = None,
        rollup: ProgressRollupService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._store = store or WbsNodeStore(session)
        self._rollup = rollup or ProgressRollupService(
            session, self._clock, self._store
        )

    def change_level(
        self,
        node_id: UUID,
        direction: LevelDirection | str,
        actor_id: UUID,
    ) -> MutationResult:
        """Promote (``"up"``) or demote (``"down"``) a node with its subtree."""
        resolved = parse_direction(node_id, direction)
        node = self._store.get_node(node_id, for_update=True)
        if node.is_root:
            logger.warning(
                "level_change_rejected",
                extra={"node_id": str(node_id), "reason": "project_root"},
            )
            raise InvalidNodeError(
                str(node_id), "change the level of", "node is the project root"
            )

        if resolved is LevelDirection.UP:
            return self._promote(node, actor_id)
        return self._demote(node, actor_id)

    # ------------------------------------------------------------------
    # Promote
    # ------------------------------------------------------------------

    def _promote(self, node: WbsNode, actor_id: UUID) -> MutationResult:
        if node.level <= MIN_LEVEL:
            logger.warning(
                "level_change_rejected",
                extra={
                    "node_id": str(node.id),
                    "direction": LevelDirection.UP.value,
                    "level": node.level,
                },
            )
            raise BoundaryError(str(node.id), "promote", node.level)

        parent = self._store.get_node(node.parent_id, for_update=True)
        grandparent = self._store.get_node(parent.parent_id, for_update=True)
        subtree = self._store.get_subtree(node)
        self._check_levels(node, subtree, -1, "promote")

        old_level = node.level
        with self.session.begin_nested():
            new_order = parent.sort_order + 1
            for sibling in self._store.get_children(grandparent.id):
                if sibling.sort_order >= new_order:
                    sibling.sort_order += 1

            self._store.reparent_node(node, grandparent, new_order)
            self._store.relevel_subtree(subtree, -1)
            node.updated_by_id = actor_id

            self._store.renumber_children(parent)
            self._store.renumber_children(grandparent)

            recomputed = self._rollup.recompute_chain(parent, actor_id)

        return self._result(
            node,
            LevelDirection.UP,
            old_parent_id=parent.id,
            old_level=old_level,
            subtree=subtree,
            recomputed=recomputed,
        )

    # ------------------------------------------------------------------
    # Demote
    # ------------------------------------------------------------------

    def _demote(self, node: WbsNode, actor_id: UUID) -> MutationResult:
        if node.level >= MAX_LEVEL:
            logger.warning(
                "level_change_rejected",
                extra={
                    "node_id": str(node.id),
                    "direction": LevelDirection.DOWN.value,
                    "level": node.level,
                },
            )
            raise BoundaryError(str(node.id), "demote", node.level)

        parent = self._store.get_node(node.parent_id, for_update=True)
        siblings = self._store.get_children(parent.id)
        preceding = [s for s in siblings if s.sort_order < node.sort_order]
        if not preceding:
            logger.warning(
                "level_change_rejected",
                extra={"node_id": str(node.id), "reason": "no_preceding_sibling"},
            )
            raise NoTargetError(str(node.id))
        target = self._store.get_node(preceding[-1].id, for_update=True)

        subtree = self._store.get_subtree(node)
        self._check_levels(node, subtree, +1, "demote")

        old_level = node.level
        with self.session.begin_nested():
            new_order = len(self._store.get_children(target.id)) + 1
            self._store.reparent_node(node, target, new_order)
            self._store.relevel_subtree(subtree, +1)
            node.updated_by_id = actor_id

            self._store.renumber_children(parent)
            self._store.renumber_children(target)

            recomputed = self._rollup.recompute_chain(target, actor_id)

        return self._result(
            node,
            LevelDirection.DOWN,
            old_parent_id=parent.id,
            old_level=old_level,
            subtree=subtree,
            recomputed=recomputed,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_levels(
        self,
        node: WbsNode,
        subtree: list[WbsNode],
        delta: int,
        operation: str,
    ) -> None:
        for member in subtree:
            new_level = member.level + delta
            if not MIN_LEVEL <= new_level <= MAX_LEVEL:
                logger.warning(
                    "level_change_rejected",
                    extra={
                        "node_id": str(node.id),
                        "offending_node_id": str(member.id),
                        "offending_level": new_level,
                    },
                )
                raise BoundaryError(
                    str(node.id),
                    operation,
                    node.level,
                    offending_node_id=str(member.id),
                    offending_level=new_level,
                )

    def _result(
        self,
        node: WbsNode,
        direction: LevelDirection,
        old_parent_id: UUID,
        old_level: int,
        subtree: list[WbsNode],
        recomputed: list[WbsNode],
    ) -> MutationResult:
        logger.info(
            "node_level_changed",
            extra={
                "node_id": str(node.id),
                "project_id": str(node.project_id),
                "direction": direction.value,
                "old_level": old_level,
                "new_level": node.level,
                "old_parent_id": str(old_parent_id),
                "new_parent_id": str(node.parent_id),
                "moved": len(subtree),
            },
        )
        return MutationResult(
            node=WbsNodeInfo.from_model(node),
            direction=direction,
            old_parent_id=old_parent_id,
            new_parent_id=node.parent_id,
            old_level=old_level,
            new_level=node.level,
            moved_node_ids=tuple(member.id for member in subtree),
            recomputed=tuple(WbsNodeInfo.from_model(n) for n in recomputed),
        )
