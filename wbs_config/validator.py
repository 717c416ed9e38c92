"""
Configuration Validator (``wbs_config.validator``).

Validates a ``WbsConfigurationSet`` before it is handed to the bridges.
Errors block use of the set; warnings are reported but do not.

Rules
-----
* Code prefixes: 2-10 uppercase letters, unique, width 1..12.
* Calendar: weekend days are ISO weekdays 1..7, holiday types are known.
* Allocation: max_attempts >= 1.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from wbs_config.schema import WbsConfigurationSet

PREFIX_PATTERN = re.compile(r"^[A-Z]{2,10}$")
MIN_WIDTH = 1
MAX_WIDTH = 12
KNOWN_HOLIDAY_TYPES = frozenset({"company_holiday", "team_offsite", "personal_leave"})


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: WbsConfigurationSet) -> ConfigValidationResult:
    """Run every rule and collect the findings."""
    result = ConfigValidationResult()
    _validate_prefixes(config, result)
    _validate_calendar(config, result)
    _validate_allocation(config, result)
    return result


def _validate_prefixes(config: WbsConfigurationSet, result: ConfigValidationResult) -> None:
    if not config.code_prefixes:
        result.add_warning("No code prefixes configured; every allocation will be rejected")

    seen: set[str] = set()
    for entry in config.code_prefixes:
        if not PREFIX_PATTERN.match(entry.prefix):
            result.add_error(
                f"Code prefix {entry.prefix!r} must be 2-10 uppercase letters"
            )
        if entry.prefix in seen:
            result.add_error(f"Duplicate code prefix {entry.prefix!r}")
        seen.add(entry.prefix)
        if (
            isinstance(entry.width, bool)
            or not isinstance(entry.width, int)
            or not MIN_WIDTH <= entry.width <= MAX_WIDTH
        ):
            result.add_error(
                f"Code prefix {entry.prefix!r}: width {entry.width!r} "
                f"must be an integer {MIN_WIDTH}..{MAX_WIDTH}"
            )
        if not entry.entity:
            result.add_warning(f"Code prefix {entry.prefix!r} has no entity name")


def _validate_calendar(config: WbsConfigurationSet, result: ConfigValidationResult) -> None:
    for day in config.calendar.weekend_days:
        if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= 7:
            result.add_error(f"Weekend day {day!r} must be an ISO weekday 1..7")
    if len(set(config.calendar.weekend_days)) == 7:
        result.add_warning("Every weekday is a weekend day; no working days exist")

    for holiday_type in config.calendar.non_working_holiday_types:
        if holiday_type not in KNOWN_HOLIDAY_TYPES:
            result.add_error(
                f"Unknown holiday type {holiday_type!r} "
                f"(known: {', '.join(sorted(KNOWN_HOLIDAY_TYPES))})"
            )


def _validate_allocation(config: WbsConfigurationSet, result: ConfigValidationResult) -> None:
    attempts = config.allocation.max_attempts
    if isinstance(attempts, bool) or not isinstance(attempts, int) or attempts < 1:
        result.add_error(f"allocation.max_attempts {attempts!r} must be an integer >= 1")
