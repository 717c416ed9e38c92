"""
Configuration Loader (``wbs_config.loader``).

Responsibility
--------------
Reads a configuration set directory (``root.yaml``) with
``yaml.safe_load`` and parses it into ``wbs_config.schema`` dataclasses.
Missing sections fall back to the schema defaults.

Architecture position
---------------------
**Config layer** -- internal; only ``wbs_config.get_active_config`` and
tests call it.  No dependency on the kernel.

Failure modes
-------------
* ``FileNotFoundError`` -- no ``root.yaml`` in the directory.
* ``yaml.YAMLError`` -- malformed YAML.
* ``ValueError`` -- a section has the wrong shape (not a mapping / list).
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from wbs_config.schema import (
    DEFAULT_CODE_PREFIXES,
    AllocationConfig,
    CalendarConfig,
    CodePrefixDef,
    WbsConfigurationSet,
)

ROOT_FILE = "root.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping")
    return value


def parse_calendar(data: dict[str, Any]) -> CalendarConfig:
    defaults = CalendarConfig()
    return CalendarConfig(
        weekend_days=tuple(data.get("weekend_days", defaults.weekend_days)),
        non_working_holiday_types=tuple(
            data.get("non_working_holiday_types", defaults.non_working_holiday_types)
        ),
    )


def parse_code_prefix(data: dict[str, Any]) -> CodePrefixDef:
    """Parse one ``code_prefixes`` entry."""
    return CodePrefixDef(
        prefix=str(data["prefix"]),
        width=data["width"],
        entity=str(data.get("entity", "")),
    )


def parse_allocation(data: dict[str, Any]) -> AllocationConfig:
    return AllocationConfig(
        max_attempts=data.get("max_attempts", AllocationConfig().max_attempts),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    SHA-256 of the canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_config_set(directory: Path) -> WbsConfigurationSet:
    """Load ``<directory>/root.yaml`` into a WbsConfigurationSet."""
    data = load_yaml_file(directory / ROOT_FILE)

    prefixes_raw = data.get("code_prefixes")
    if prefixes_raw is None:
        prefixes = DEFAULT_CODE_PREFIXES
    elif isinstance(prefixes_raw, list):
        prefixes = tuple(parse_code_prefix(entry) for entry in prefixes_raw)
    else:
        raise ValueError("'code_prefixes' must be a list")

    return WbsConfigurationSet(
        config_id=str(data.get("config_id", directory.name)),
        version=data.get("version", 1),
        description=str(data.get("description", "")),
        calendar=parse_calendar(_section(data, "calendar")),
        code_prefixes=prefixes,
        allocation=parse_allocation(_section(data, "allocation")),
        checksum=compute_checksum(data),
    )
