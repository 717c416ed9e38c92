"""
ProgressRollupService -- bottom-up progress propagation.

Responsibility:
    Sets a leaf's progress and re-derives every ancestor's progress and
    status from its direct children, walking strictly bottom-up to the
    project root.  Also re-derives a whole project in one pass (used after
    bulk imports and to check incremental results).

Architecture position:
    Kernel > Services -- imperative shell.
    Called by WbsEngine, TreeMutationService and WbsService whenever a
    change can alter an aggregate.

Invariants enforced:
    DERIVED_PROGRESS -- a node with children always carries
        round_half_up(sum(w_i * p_i) / sum(w_i)) over its direct children.
        Its progress is never written any other way.
    Status is re-derived for every node on the chain.

Failure modes:
    - NodeNotFoundError: unknown node.
    - InvalidNodeError: progress set on a node with children, or on the
      project root.
    - OutOfRangeError: progress outside 0..100.

Locking:
    The leaf and its whole ancestor chain are locked (bottom-up) before any
    recomputation, then each ancestor's children are re-read so that a
    concurrent edit of a sibling committed while we waited is included.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from wbs_kernel.domain.clock import Clock, SystemClock
from wbs_kernel.domain.dtos import UpdatedChain, WbsNodeInfo, WbsStatus
from wbs_kernel.domain.rollup import (
    derive_status,
    validate_progress,
    weighted_progress,
)
from wbs_kernel.exceptions import InvalidNodeError
from wbs_kernel.logging_config import get_logger
from wbs_kernel.models.wbs_node import WbsNode
from wbs_kernel.services.base import BaseService
from wbs_kernel.services.node_store import WbsNodeStore

logger = get_logger("services.rollup")


class ProgressRollupService(BaseService[WbsNode]):
    """
    Service for leaf progress edits and ancestor recomputation.

    Contract:
        ``set_leaf_progress`` returns the updated chain (leaf first, root
        last) as frozen DTOs.  Recomputation happens in the caller's
        transaction; nothing is committed here.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        store: WbsNodeStore | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._store = store or WbsNodeStore(session)

    def set_leaf_progress(
        self,
        node_id: UUID,
        progress: int,
        actor_id: UUID,
    ) -> UpdatedChain:
        """
        Set the progress of a leaf and propagate it to the root.

        Raises:
            NodeNotFoundError: unknown node.
            InvalidNodeError: node has children or is the project root.
            OutOfRangeError: progress outside 0..100.
            TypeError: progress is not an integer.
        """
        leaf = self._store.get_node(node_id, for_update=True)
        if leaf.is_root:
            logger.warning(
                "leaf_progress_rejected",
                extra={"node_id": str(node_id), "reason": "project_root"},
            )
            raise InvalidNodeError(
                str(node_id), "set progress on", "node is the project root"
            )
        if self._store.has_children(leaf.id):
            logger.warning(
                "leaf_progress_rejected",
                extra={"node_id": str(node_id), "reason": "has_children"},
            )
            raise InvalidNodeError(
                str(node_id),
                "set progress on",
                "node has children; its progress is derived from them",
            )
        validate_progress(progress)

        chain = self._store.get_ancestor_chain(leaf, for_update=True)

        old_progress = leaf.progress
        with self.session.begin_nested():
            self._store.update_node(
                leaf,
                progress=progress,
                status=self._derive_status(progress, leaf),
                updated_by_id=actor_id,
            )
            recomputed = self._recompute(chain, actor_id)

        logger.info(
            "leaf_progress_set",
            extra={
                "node_id": str(leaf.id),
                "project_id": str(leaf.project_id),
                "old_progress": old_progress,
                "new_progress": progress,
                "root_progress": recomputed[-1].progress if recomputed else None,
            },
        )

        return UpdatedChain(
            nodes=(WbsNodeInfo.from_model(leaf),)
            + tuple(WbsNodeInfo.from_model(n) for n in recomputed),
        )

    def recompute_chain(
        self,
        start: WbsNode,
        actor_id: UUID | None = None,
    ) -> list[WbsNode]:
        """
        Recompute *start* and every ancestor above it, bottom-up.

        A node on the chain that has no children keeps its stored progress;
        only its status is re-derived.
        """
        self._store.get_node(start.id, for_update=True)
        chain = [start] + self._store.get_ancestor_chain(start, for_update=True)
        return self._recompute(chain, actor_id)

    def recompute_project(self, root: WbsNode, actor_id: UUID | None = None) -> int:
        """
        Re-derive every aggregate of a project from its leaves in one pass.

        Returns:
            The root's progress afterwards.
        """
        subtree = self._store.get_subtree(root)
        by_parent: dict[UUID, list[WbsNode]] = {}
        for member in subtree:
            if member.parent_id is not None:
                by_parent.setdefault(member.parent_id, []).append(member)

        # Deepest first so every child is final before its parent
        for member in sorted(subtree, key=lambda n: n.level, reverse=True):
            self._apply(member, by_parent.get(member.id, []), actor_id)
        self.session.flush()

        logger.info(
            "project_recomputed",
            extra={
                "project_id": str(root.project_id),
                "nodes": len(subtree),
                "root_progress": root.progress,
            },
        )
        return root.progress

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _recompute(self, chain: list[WbsNode], actor_id: UUID | None) -> list[WbsNode]:
        for node in chain:
            children = self._store.get_children(node.id)
            old = node.progress
            self._apply(node, children, actor_id)
            logger.debug(
                "ancestor_recomputed",
                extra={
                    "node_id": str(node.id),
                    "level": node.level,
                    "children": len(children),
                    "old_progress": old,
                    "new_progress": node.progress,
                },
            )
        self.session.flush()
        return chain

    def _apply(
        self,
        node: WbsNode,
        children: list[WbsNode],
        actor_id: UUID | None,
    ) -> None:
        if children:
            node.progress = weighted_progress(
                [(child.weight, child.progress) for child in children]
            )
        node.status = self._derive_status(node.progress, node)
        if actor_id is not None:
            node.updated_by_id = actor_id

    def _derive_status(self, progress: int, node: WbsNode) -> WbsStatus:
        return derive_status(progress, node.end_date, self._clock.today())
