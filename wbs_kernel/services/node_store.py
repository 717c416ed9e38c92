"""
WbsNodeStore -- transactional node persistence for the tree services.

Responsibility:
    The one place that reads and writes ``wbs_nodes`` rows on behalf of the
    rollup, tree mutation and WBS services: lookups, children in sibling
    order, the ancestor chain, field updates, reparenting with an explicit
    acyclicity check, subtree collection, dense renumbering with outline
    codes, and subtree deletion.

Architecture position:
    Kernel > Services -- imperative shell.  Returns ORM entities to other
    services only; nothing outside ``services/`` sees them.

Invariants enforced:
    ACYCLIC_TREE -- ``reparent_node`` rejects a new parent inside the moved
        subtree, and every ancestor walk must reach the root within
        MAX_LEVEL + 1 steps.
    Sibling order is dense (1..n) and outline codes follow it after every
    ``renumber_children``.

Locking:
    ``for_update=True`` issues ``SELECT ... FOR UPDATE`` with
    ``populate_existing`` so the identity map is refreshed from the locked
    row.  The ancestor chain is always locked bottom-up; two chains share
    only common ancestors, which every caller locks in the same order.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from wbs_kernel.domain.codes import outline_code
from wbs_kernel.domain.dtos import MAX_LEVEL
from wbs_kernel.exceptions import (
    InvalidNodeError,
    NodeNotFoundError,
    ProjectNotFoundError,
    TreeCycleError,
)
from wbs_kernel.logging_config import get_logger
from wbs_kernel.models.wbs_node import WbsNode
from wbs_kernel.services.base import BaseService

logger = get_logger("services.node_store")

# Fields that update_node may set.  progress/status/level/parent/order are
# owned by the rollup and tree mutation services.
UPDATABLE_FIELDS = frozenset({
    "name",
    "description",
    "weight",
    "start_date",
    "end_date",
    "actual_start_date",
    "actual_end_date",
    "progress",
    "status",
    "updated_by_id",
})


class WbsNodeStore(BaseService[WbsNode]):
    """Row-level access to WBS nodes."""

    def __init__(self, session: Session):
        super().__init__(session)

    @staticmethod
    def _locked(stmt: Select, for_update: bool) -> Select:
        if for_update:
            return stmt.with_for_update().execution_options(populate_existing=True)
        return stmt

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_node(self, node_id: UUID, for_update: bool = False) -> WbsNode:
        """
        Raises:
            NodeNotFoundError: No node with this id.
        """
        node = self.session.execute(
            self._locked(select(WbsNode).where(WbsNode.id == node_id), for_update)
        ).scalar_one_or_none()
        if node is None:
            raise NodeNotFoundError(str(node_id))
        return node

    def get_root(self, project_id: UUID) -> WbsNode:
        root = self.session.execute(
            select(WbsNode).where(
                WbsNode.project_id == project_id,
                WbsNode.parent_id.is_(None),
            )
        ).scalar_one_or_none()
        if root is None:
            raise ProjectNotFoundError(str(project_id))
        return root

    def get_children(self, parent_id: UUID, for_update: bool = False) -> list[WbsNode]:
        """Direct children in sibling order."""
        stmt = (
            select(WbsNode)
            .where(WbsNode.parent_id == parent_id)
            .order_by(WbsNode.sort_order, WbsNode.id)
        )
        return list(self.session.execute(self._locked(stmt, for_update)).scalars())

    def has_children(self, node_id: UUID) -> bool:
        return self.session.execute(
            select(WbsNode.id).where(WbsNode.parent_id == node_id).limit(1)
        ).first() is not None

    def get_ancestor_chain(
        self,
        node: WbsNode,
        for_update: bool = False,
    ) -> list[WbsNode]:
        """
        Ancestors of *node*, nearest first, ending with the project root.

        Raises:
            TreeCycleError: The parent links loop or never reach a root.
        """
        chain: list[WbsNode] = []
        seen = {node.id}
        parent_id = node.parent_id
        while parent_id is not None:
            if parent_id in seen or len(chain) > MAX_LEVEL:
                raise TreeCycleError(str(node.id), str(parent_id))
            parent = self.get_node(parent_id, for_update=for_update)
            chain.append(parent)
            seen.add(parent.id)
            parent_id = parent.parent_id
        return chain

    def get_subtree(self, node: WbsNode) -> list[WbsNode]:
        """*node* and all its descendants, breadth-first."""
        result = [node]
        frontier = [node.id]
        depth = 0
        while frontier:
            depth += 1
            if depth > MAX_LEVEL + 1:
                raise TreeCycleError(str(node.id), str(frontier[0]))
            children = list(
                self.session.execute(
                    select(WbsNode)
                    .where(WbsNode.parent_id.in_(frontier))
                    .order_by(WbsNode.level, WbsNode.sort_order)
                ).scalars()
            )
            result.extend(children)
            frontier = [c.id for c in children]
        return result

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update_node(self, node: WbsNode, **changes: object) -> WbsNode:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"update_node got unexpected fields: {sorted(unknown)}")
        for field_name, value in changes.items():
            setattr(node, field_name, value)
        self.session.flush()
        return node

    def reparent_node(
        self,
        node: WbsNode,
        new_parent: WbsNode,
        sort_order: int,
    ) -> WbsNode:
        """
        Move *node* under *new_parent* at *sort_order*.

        Levels are not touched here; the caller relevels the subtree.

        Raises:
            TreeCycleError: new_parent is node itself or inside its subtree.
            InvalidNodeError: new_parent belongs to another project.
        """
        if new_parent.project_id != node.project_id:
            raise InvalidNodeError(
                str(node.id), "move", "target parent belongs to another project"
            )
        if new_parent.id == node.id:
            raise TreeCycleError(str(node.id), str(new_parent.id))
        for ancestor in self.get_ancestor_chain(new_parent):
            if ancestor.id == node.id:
                raise TreeCycleError(str(node.id), str(new_parent.id))

        node.parent_id = new_parent.id
        node.sort_order = sort_order
        self.session.flush()
        return node

    def relevel_subtree(self, subtree: Iterable[WbsNode], delta: int) -> None:
        for member in subtree:
            member.level = member.level + delta
        self.session.flush()

    def renumber_children(self, parent: WbsNode) -> list[WbsNode]:
        """
        Make sibling order dense (1..n) under *parent* and refresh outline
        codes for every descendant whose code changed.
        """
        children = self.get_children(parent.id)
        for position, child in enumerate(children, start=1):
            code = outline_code(parent.code, position)
            if child.sort_order != position or child.code != code:
                child.sort_order = position
                child.code = code
                self._recode_descendants(child)
        self.session.flush()
        return children

    def _recode_descendants(self, node: WbsNode) -> None:
        for position, child in enumerate(self.get_children(node.id), start=1):
            child.sort_order = position
            child.code = outline_code(node.code, position)
            self._recode_descendants(child)

    def delete_subtree(self, node: WbsNode) -> list[UUID]:
        """Delete *node* and its descendants, deepest first."""
        subtree = self.get_subtree(node)
        deleted = [n.id for n in subtree]
        # Deepest level first, one flush per level
        for level in sorted({n.level for n in subtree}, reverse=True):
            for member in subtree:
                if member.level == level:
                    self.session.delete(member)
            self.session.flush()
        logger.debug(
            "subtree_deleted",
            extra={"node_id": str(node.id), "count": len(deleted)},
        )
        return deleted
