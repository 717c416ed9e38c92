"""
Kernel Invariants Contract.

These invariants are structural law for the work breakdown. No
configuration set may override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across ProgressRollupService,
TreeMutationService, WbsNodeStore and CodeAllocator.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    LEVEL_CONSISTENCY = "level_consistency"
    """level(child) == level(parent) + 1 for every non-root node, and no
    node leaves L1..L4.  Enforced by TreeMutationService and WbsService
    before any write."""

    DERIVED_PROGRESS = "derived_progress"
    """Progress of a node with children is the weight-normalized average
    of its direct children and is never written independently.  Enforced
    by ProgressRollupService."""

    L4_IS_LEAF = "l4_is_leaf"
    """Nodes at the deepest level never have children.  Follows from
    LEVEL_CONSISTENCY; checked again on create and demote."""

    ACYCLIC_TREE = "acyclic_tree"
    """Every parent chain terminates at the project root.  Enforced by
    WbsNodeStore.reparent_node."""

    CODE_CONTIGUITY = "code_contiguity"
    """Codes for one (project, prefix) are issued from a locked counter
    row, never by scanning existing records.  Concurrent allocations never
    overlap.  Enforced by CodeAllocator."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_import_boundaries.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = ("wbs_config",)
