"""ORM models for the WBS kernel."""

from wbs_kernel.domain.dtos import (
    MAX_LEVEL,
    MIN_LEVEL,
    HolidayType,
    WbsLevel,
    WbsStatus,
)
from wbs_kernel.models.code_counter import CodeCounter
from wbs_kernel.models.holiday import Holiday
from wbs_kernel.models.project import Project
from wbs_kernel.models.wbs_node import WbsNode, WbsNodeAssignee

__all__ = [
    "Project",
    "WbsNode",
    "WbsNodeAssignee",
    "WbsLevel",
    "WbsStatus",
    "MIN_LEVEL",
    "MAX_LEVEL",
    "Holiday",
    "HolidayType",
    "CodeCounter",
]
