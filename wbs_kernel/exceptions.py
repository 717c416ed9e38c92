"""
Typed Exception Hierarchy for the WBS Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejection in the kernel is either invalid input or a structural
impossibility (a promote past L1, a demote with nothing to attach to).
Callers must be able to tell them apart without parsing messages, and the
end user must be told *why* an operation failed, not just *that* it did.

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (node id, attempted operation)

Example:
    try:
        engine.change_level(node_id, "up", actor_id=actor)
    except BoundaryError as e:
        api_response(code=e.code, node=e.node_id, level=e.level)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WbsKernelError (base)
    |
    +-- NotFoundError
    |   +-- NodeNotFoundError
    |   +-- ProjectNotFoundError
    |
    +-- OutOfRangeError
    |
    +-- TreeError
    |   +-- InvalidNodeError
    |   +-- BoundaryError
    |   +-- NoTargetError
    |   +-- TreeCycleError
    |   +-- InvalidDirectionError
    |
    +-- ScheduleError
    |   +-- NoScheduleError
    |
    +-- AllocationError
        +-- InvalidPrefixError
        +-- AllocationFailedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code               | When Raised
------------|--------------------|--------------------------------------------
Lookup      | NODE_NOT_FOUND     | Node ID doesn't exist
            | PROJECT_NOT_FOUND  | Project ID doesn't exist
------------|--------------------|--------------------------------------------
Input       | OUT_OF_RANGE       | Progress outside 0..100, negative weight,
            |                    | allocation count < 1
------------|--------------------|--------------------------------------------
Tree        | INVALID_NODE       | Operation on the wrong kind of node
            | LEVEL_BOUNDARY     | Promote/demote past L1/L4
            | NO_DEMOTE_TARGET   | Demote with no preceding sibling
            | TREE_CYCLE         | Reparent under own descendant
            | INVALID_DIRECTION  | Direction is neither "up" nor "down"
------------|--------------------|--------------------------------------------
Schedule    | NO_SCHEDULE        | Project has no start/end dates
------------|--------------------|--------------------------------------------
Allocation  | INVALID_PREFIX     | Prefix is not a registered entity kind
            | ALLOCATION_FAILED  | Counter storage unavailable (retryable)

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Only AllocationFailedError is retryable (``retryable = True``).  The
   caller retries the whole allocation call, never part of it.  Everything
   else is terminal for the single operation that raised it.

2. Codes are class attributes so they can be read without instantiation
   (API documentation, error tables).

3. All context is stored as attributes; StructuredFormatter copies them
   into the log line as ``exc_<name>`` fields.
"""


class WbsKernelError(Exception):
    """
    Base exception for all WBS kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "WBS_KERNEL_ERROR"
    retryable: bool = False


# Lookup exceptions


class NotFoundError(WbsKernelError):
    """A referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class NodeNotFoundError(NotFoundError):
    """WBS node with given ID was not found."""

    code: str = "NODE_NOT_FOUND"

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__("WBS node", node_id)


class ProjectNotFoundError(NotFoundError):
    """Project with given ID was not found."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__("Project", project_id)


# Input exceptions


class OutOfRangeError(WbsKernelError):
    """A numeric input is outside its permitted range."""

    code: str = "OUT_OF_RANGE"

    def __init__(
        self,
        field: str,
        value: object,
        minimum: object | None = None,
        maximum: object | None = None,
    ):
        self.field = field
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        if maximum is None:
            bounds = f">= {minimum}"
        else:
            bounds = f"{minimum}..{maximum}"
        super().__init__(f"{field}={value!r} is out of range ({bounds})")


# Tree exceptions


class TreeError(WbsKernelError):
    """Base exception for tree-structure errors."""

    code: str = "TREE_ERROR"


class InvalidNodeError(TreeError):
    """
    Operation attempted on the wrong kind of node.

    Raised e.g. when setting progress on an internal node (progress of an
    aggregate is always derived from its children) or when deleting the
    synthetic project root.
    """

    code: str = "INVALID_NODE"

    def __init__(self, node_id: str, operation: str, reason: str):
        self.node_id = node_id
        self.operation = operation
        self.reason = reason
        super().__init__(f"Cannot {operation} node {node_id}: {reason}")


class BoundaryError(TreeError):
    """Level change would move a node (or a descendant) outside L1..L4."""

    code: str = "LEVEL_BOUNDARY"

    def __init__(
        self,
        node_id: str,
        operation: str,
        level: int,
        offending_node_id: str | None = None,
        offending_level: int | None = None,
    ):
        self.node_id = node_id
        self.operation = operation
        self.level = level
        self.offending_node_id = offending_node_id or node_id
        self.offending_level = offending_level
        if offending_node_id and offending_node_id != node_id:
            detail = (
                f"descendant {offending_node_id} would move to level "
                f"{offending_level}"
            )
        else:
            detail = f"node is at level {level}"
        super().__init__(f"Cannot {operation} node {node_id}: {detail}")


class NoTargetError(TreeError):
    """Demote requested but the node has no preceding sibling to attach to."""

    code: str = "NO_DEMOTE_TARGET"

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(
            f"Cannot demote node {node_id}: no preceding sibling to become "
            f"its parent"
        )


class TreeCycleError(TreeError):
    """Reparenting would place a node under its own descendant."""

    code: str = "TREE_CYCLE"

    def __init__(self, node_id: str, new_parent_id: str):
        self.node_id = node_id
        self.new_parent_id = new_parent_id
        super().__init__(
            f"Cannot move node {node_id} under {new_parent_id}: "
            f"target is inside the moved subtree"
        )


class InvalidDirectionError(TreeError):
    """Level-change direction is neither 'up' nor 'down'."""

    code: str = "INVALID_DIRECTION"

    def __init__(self, node_id: str, direction: object):
        self.node_id = node_id
        self.direction = direction
        super().__init__(
            f"Invalid level-change direction {direction!r} for node {node_id}"
        )


# Schedule exceptions


class ScheduleError(WbsKernelError):
    """Base exception for schedule analytics errors."""

    code: str = "SCHEDULE_ERROR"


class NoScheduleError(ScheduleError):
    """Project has no usable start/end dates to compute a schedule against."""

    code: str = "NO_SCHEDULE"

    def __init__(self, project_id: str, reason: str = "start/end dates not set"):
        self.project_id = project_id
        self.reason = reason
        super().__init__(f"No schedule for project {project_id}: {reason}")


# Allocation exceptions


class AllocationError(WbsKernelError):
    """Base exception for code allocation errors."""

    code: str = "ALLOCATION_ERROR"


class InvalidPrefixError(AllocationError):
    """Prefix is not a registered entity kind."""

    code: str = "INVALID_PREFIX"

    def __init__(self, prefix: str, known_prefixes: tuple[str, ...] = ()):
        self.prefix = prefix
        self.known_prefixes = known_prefixes
        known = ", ".join(known_prefixes) if known_prefixes else "none"
        super().__init__(f"Unknown code prefix {prefix!r} (known: {known})")


class AllocationFailedError(AllocationError):
    """
    Counter storage was unavailable during allocation.

    Transient: retry the whole allocation call in a fresh transaction.
    A range returned by a failed attempt must be discarded; ranges are
    never reclaimed, so gaps after failed imports are expected.
    """

    code: str = "ALLOCATION_FAILED"
    retryable: bool = True

    def __init__(self, project_id: str, prefix: str, count: int, reason: str):
        self.project_id = project_id
        self.prefix = prefix
        self.count = count
        self.reason = reason
        super().__init__(
            f"Allocation of {count} {prefix} code(s) for project {project_id} "
            f"failed: {reason}"
        )
