"""
Bridges -- configuration to kernel inputs.

Responsibility:
    Turns a validated ``WbsConfigurationSet`` into the objects the kernel
    accepts: a PrefixRegistry, a CalendarPolicy, a ready WbsEngine and a configured
    code allocation callable.
    This is the only module where config and kernel types meet; the kernel
    never imports ``wbs_config``.
"""

from __future__ import annotations

from functools import partial
from typing import Callable

from sqlalchemy.orm import Session

from wbs_config.schema import WbsConfigurationSet
from wbs_kernel.domain.clock import Clock
from wbs_kernel.domain.codes import CodePrefix, PrefixRegistry
from wbs_kernel.domain.dtos import CalendarPolicy, HolidayType
from wbs_kernel.services.code_allocator import allocate_codes
from wbs_kernel.services.wbs_engine import WbsEngine


def build_prefix_registry(config: WbsConfigurationSet) -> PrefixRegistry:
    return PrefixRegistry(
        CodePrefix(entry.prefix, entry.width, entry.entity)
        for entry in config.code_prefixes
    )


def build_calendar_policy(config: WbsConfigurationSet) -> CalendarPolicy:
    return CalendarPolicy(
        weekend_days=frozenset(config.calendar.weekend_days),
        non_working_types=frozenset(
            HolidayType(t) for t in config.calendar.non_working_holiday_types
        ),
    )


def build_wbs_engine(
    config: WbsConfigurationSet,
    session: Session,
    clock: Clock | None = None,
) -> WbsEngine:
    """A WbsEngine on *session* using the set's prefixes and calendar."""
    return WbsEngine(
        session,
        clock=clock,
        prefixes=build_prefix_registry(config),
        calendar_policy=build_calendar_policy(config),
    )


def build_code_allocation(
    config: WbsConfigurationSet,
    session_factory: Callable[[], Session],
) -> Callable[..., list[str]]:
    """
    ``allocate_codes`` bound to the set's prefixes and retry limit.

    The returned callable takes ``(project_id, prefix, count=1, width=None)``
    and commits each allocation in its own session.
    """
    return partial(
        allocate_codes,
        session_factory,
        registry=build_prefix_registry(config),
        max_attempts=config.allocation.max_attempts,
    )
