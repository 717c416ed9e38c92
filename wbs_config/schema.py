"""
WbsConfigurationSet schema.

The human-authored, reviewable configuration for the WBS kernel.  YAML
files are parsed into these frozen types by the loader, checked by the
validator, and turned into kernel inputs by the bridges.

Values are kept as plain data (ints, strings, tuples); kernel types are
only built in bridges.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CalendarConfig:
    """Which days are never working days."""

    # ISO weekday numbers, Monday=1 .. Sunday=7
    weekend_days: tuple[int, ...] = (6, 7)
    non_working_holiday_types: tuple[str, ...] = ("company_holiday", "team_offsite")


@dataclass(frozen=True)
class CodePrefixDef:
    """One code-allocating entity kind."""

    prefix: str
    width: int
    entity: str = ""


@dataclass(frozen=True)
class AllocationConfig:
    max_attempts: int = 3


DEFAULT_CODE_PREFIXES: tuple[CodePrefixDef, ...] = (
    CodePrefixDef("ISS", 3, "issue"),
    CodePrefixDef("REQ", 3, "requirement"),
    CodePrefixDef("DIS", 4, "discussion_item"),
)


@dataclass(frozen=True)
class WbsConfigurationSet:
    """
    A complete configuration set (one ``sets/<name>/root.yaml``).

    ``checksum`` is the SHA-256 of the canonical JSON of the source YAML.
    """

    config_id: str
    version: int
    description: str = ""
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    code_prefixes: tuple[CodePrefixDef, ...] = DEFAULT_CODE_PREFIXES
    allocation: AllocationConfig = field(default_factory=AllocationConfig)
    checksum: str = ""
