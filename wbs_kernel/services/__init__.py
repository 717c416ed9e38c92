"""Write-side services (flush only; the caller commits)."""

from wbs_kernel.services.code_allocator import CodeAllocator, allocate_codes
from wbs_kernel.services.node_store import WbsNodeStore
from wbs_kernel.services.rollup_service import ProgressRollupService
from wbs_kernel.services.tree_mutation_service import TreeMutationService
from wbs_kernel.services.wbs_engine import WbsEngine
from wbs_kernel.services.wbs_service import WbsService

__all__ = [
    "CodeAllocator",
    "allocate_codes",
    "WbsNodeStore",
    "ProgressRollupService",
    "TreeMutationService",
    "WbsService",
    "WbsEngine",
]
