"""
WbsService -- project and node lifecycle.

Responsibility:
    Registers projects (each with its synthetic root node), and creates,
    updates and deletes WBS nodes while keeping sibling order, outline
    codes and the derived progress of every ancestor consistent.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by WbsEngine and by importers that build a breakdown row by row.

Invariants enforced:
    LEVEL_CONSISTENCY -- a new node is always created one level below its
        parent; an explicit level that disagrees is rejected.
    L4_IS_LEAF -- nodes cannot be created under an L4 node.
    DERIVED_PROGRESS -- every structural change (create, delete, weight
        change) re-derives the parent chain in the same SAVEPOINT.

Failure modes:
    - ProjectNotFoundError: unknown project.
    - NodeNotFoundError: unknown node or parent.
    - InvalidNodeError: parent in another project; explicit level that is
      not parent level + 1; delete of the project root.
    - BoundaryError: child requested under an L4 node.
    - OutOfRangeError: negative weight or progress outside 0..100.
    - ValueError: project or node end date before its start date.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from wbs_kernel.domain.clock import Clock, SystemClock
from wbs_kernel.domain.codes import outline_code
from wbs_kernel.domain.dtos import (
    MAX_LEVEL,
    DeletionResult,
    ProjectInfo,
    WbsLevel,
    WbsNodeInfo,
)
from wbs_kernel.domain.rollup import derive_status, validate_progress, validate_weight
from wbs_kernel.exceptions import (
    BoundaryError,
    InvalidNodeError,
    ProjectNotFoundError,
)
from wbs_kernel.logging_config import get_logger
from wbs_kernel.models.project import Project
from wbs_kernel.models.wbs_node import WbsNode, WbsNodeAssignee
from wbs_kernel.services.base import BaseService
from wbs_kernel.services.node_store import WbsNodeStore
from wbs_kernel.services.rollup_service import ProgressRollupService

logger = get_logger("services.wbs")

# Marks an update_node argument that was not passed (None means "clear").
_UNSET = object()


def _check_dates(start: date | None, end: date | None, what: str) -> None:
    if start is not None and end is not None and end < start:
        raise ValueError(f"{what} end_date ({end}) cannot be before start_date ({start})")


class WbsService(BaseService[WbsNode]):
    """
    Service for project registration and node CRUD.

    Contract:
        All public methods return frozen DTOs and flush within the caller's
        transaction.  Structural changes run inside a SAVEPOINT.
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

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(
        self,
        name: str,
        actor_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        description: str | None = None,
    ) -> ProjectInfo:
        """Create a project together with its synthetic root node."""
        _check_dates(start_date, end_date, "project")

        project = Project(
            name=name,
            description=description,
            start_date=start_date,
            end_date=end_date,
            created_by_id=actor_id,
        )
        self.session.add(project)
        self.session.flush()

        root = WbsNode(
            project_id=project.id,
            parent_id=None,
            level=WbsLevel.ROOT,
            sort_order=1,
            code="",
            name=name,
            progress=0,
            status=derive_status(0, end_date, self._clock.today()),
            start_date=start_date,
            end_date=end_date,
            created_by_id=actor_id,
        )
        self.session.add(root)
        self.session.flush()

        logger.info(
            "project_created",
            extra={
                "project_id": str(project.id),
                "root_node_id": str(root.id),
                "start_date": start_date,
                "end_date": end_date,
            },
        )
        return ProjectInfo.from_model(project, root.id)

    def get_project(self, project_id: UUID) -> Project:
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        return project

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def create_node(
        self,
        project_id: UUID,
        name: str,
        actor_id: UUID,
        parent_id: UUID | None = None,
        level: int | None = None,
        weight: Decimal | int | str | None = None,
        progress: int = 0,
        start_date: date | None = None,
        end_date: date | None = None,
        actual_start_date: date | None = None,
        actual_end_date: date | None = None,
        description: str | None = None,
        assignee_ids: Iterable[UUID] = (),
    ) -> WbsNodeInfo:
        """
        Append a node as the last child of *parent_id* (the root if None).

        The parent chain is recomputed; a parent that was a leaf becomes an
        aggregate and its progress is from now on derived.
        """
        self.get_project(project_id)
        if parent_id is None:
            parent = self._store.get_root(project_id)
        else:
            parent = self._store.get_node(parent_id, for_update=True)
            if parent.project_id != project_id:
                raise InvalidNodeError(
                    str(parent_id), "add a child to", "parent belongs to another project"
                )

        new_level = parent.level + 1
        if new_level > MAX_LEVEL:
            logger.warning(
                "node_create_rejected",
                extra={"parent_id": str(parent.id), "parent_level": parent.level},
            )
            raise BoundaryError(
                str(parent.id),
                "add a child to",
                parent.level,
                offending_level=new_level,
            )
        if level is not None and level != new_level:
            raise InvalidNodeError(
                str(parent.id),
                "add a child to",
                f"child level {level} must be parent level + 1 ({new_level})",
            )
        validate_progress(progress)
        resolved_weight = validate_weight(weight)
        _check_dates(start_date, end_date, "node")

        with self.session.begin_nested():
            position = len(self._store.get_children(parent.id)) + 1
            node = WbsNode(
                project_id=project_id,
                parent_id=parent.id,
                level=new_level,
                sort_order=position,
                code=outline_code(parent.code, position),
                name=name,
                description=description,
                weight=resolved_weight,
                progress=progress,
                status=derive_status(progress, end_date, self._clock.today()),
                start_date=start_date,
                end_date=end_date,
                actual_start_date=actual_start_date,
                actual_end_date=actual_end_date,
                created_by_id=actor_id,
            )
            node.assignees = [
                WbsNodeAssignee(assignee_id=a) for a in dict.fromkeys(assignee_ids)
            ]
            self.session.add(node)
            self.session.flush()

            self._rollup.recompute_chain(parent, actor_id)

        logger.info(
            "node_created",
            extra={
                "node_id": str(node.id),
                "project_id": str(project_id),
                "parent_id": str(parent.id),
                "level": new_level,
                "code": node.code,
            },
        )
        return WbsNodeInfo.from_model(node)

    def update_node(
        self,
        node_id: UUID,
        actor_id: UUID,
        *,
        name=_UNSET,
        description=_UNSET,
        weight=_UNSET,
        start_date=_UNSET,
        end_date=_UNSET,
        actual_start_date=_UNSET,
        actual_end_date=_UNSET,
        assignee_ids=_UNSET,
    ) -> WbsNodeInfo:
        """
        Update descriptive fields of a node.

        Only the arguments actually passed are changed; pass None to clear
        an optional field.  Progress is not updatable here (see
        ProgressRollupService.set_leaf_progress).  A weight change re-runs
        the parent chain; an end-date change re-derives the node's status.
        """
        node = self._store.get_node(node_id, for_update=True)

        changes: dict[str, object] = {}
        if name is not _UNSET:
            changes["name"] = name
        if description is not _UNSET:
            changes["description"] = description
        if weight is not _UNSET:
            changes["weight"] = validate_weight(weight)
        for field_name, value in (
            ("start_date", start_date),
            ("end_date", end_date),
            ("actual_start_date", actual_start_date),
            ("actual_end_date", actual_end_date),
        ):
            if value is not _UNSET:
                changes[field_name] = value
        _check_dates(
            changes.get("start_date", node.start_date),
            changes.get("end_date", node.end_date),
            "node",
        )

        weight_changed = "weight" in changes and changes["weight"] != node.weight

        with self.session.begin_nested():
            self._store.update_node(node, updated_by_id=actor_id, **changes)
            if assignee_ids is not _UNSET:
                # Keep surviving rows so the unique (node, assignee) key never
                # sees a delete and re-insert of the same pair
                existing = {a.assignee_id: a for a in node.assignees}
                node.assignees = [
                    existing.get(a) or WbsNodeAssignee(assignee_id=a)
                    for a in dict.fromkeys(assignee_ids or ())
                ]
            node.status = derive_status(node.progress, node.end_date, self._clock.today())
            self.session.flush()

            if weight_changed and node.parent_id is not None:
                parent = self._store.get_node(node.parent_id)
                self._rollup.recompute_chain(parent, actor_id)

        logger.info(
            "node_updated",
            extra={
                "node_id": str(node.id),
                "fields": sorted(changes) + (["assignee_ids"] if assignee_ids is not _UNSET else []),
            },
        )
        return WbsNodeInfo.from_model(node)

    def delete_node(self, node_id: UUID, actor_id: UUID) -> DeletionResult:
        """
        Delete a node and its subtree, close the sibling gap and recompute
        the former parent chain.
        """
        node = self._store.get_node(node_id, for_update=True)
        if node.is_root:
            logger.warning(
                "node_delete_rejected",
                extra={"node_id": str(node_id), "reason": "project_root"},
            )
            raise InvalidNodeError(str(node_id), "delete", "node is the project root")

        parent = self._store.get_node(node.parent_id, for_update=True)
        project_id = node.project_id

        with self.session.begin_nested():
            deleted = self._store.delete_subtree(node)
            self._store.renumber_children(parent)
            recomputed = self._rollup.recompute_chain(parent, actor_id)

        logger.info(
            "node_deleted",
            extra={
                "node_id": str(node_id),
                "project_id": str(project_id),
                "deleted": len(deleted),
            },
        )
        return DeletionResult(
            deleted_node_ids=tuple(deleted),
            recomputed=tuple(WbsNodeInfo.from_model(n) for n in recomputed),
        )
