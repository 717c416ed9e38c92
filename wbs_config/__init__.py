"""
wbs_config -- single public entrypoint for WBS kernel configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.  Kernel inputs are produced from the returned set by
    ``wbs_config.bridges``.

Architecture position:
    Configuration -- YAML-driven, validated before use.  Sits above
    ``wbs_kernel``; the kernel MUST NEVER import from ``wbs_config``.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``ValueError`` -- the set failed validation.

Every successful call emits a ``WBS_CONFIG_TRACE`` log entry with the
set's id, version and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from wbs_config.loader import ROOT_FILE, load_config_set
from wbs_config.schema import WbsConfigurationSet
from wbs_config.validator import validate_configuration

_logger = logging.getLogger("wbs_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> WbsConfigurationSet:
    """The ONLY public configuration entrypoint.

    Args:
        name: configuration set name (a subdirectory of *config_dir*).
        config_dir: override path to the sets directory.  Defaults to
            wbs_config/sets/.

    Raises:
        FileNotFoundError: no ``<config_dir>/<name>/root.yaml``.
        ValueError: validation failed.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    set_dir = sets_dir / name
    if not (set_dir / ROOT_FILE).is_file():
        raise FileNotFoundError(f"Configuration set {name!r} not found in {sets_dir}")

    config = load_config_set(set_dir)

    validation = validate_configuration(config)
    for warning in validation.warnings:
        _logger.warning(
            "config_validation_warning",
            extra={"config_set_id": config.config_id, "warning": warning},
        )
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )

    _logger.info(
        "WBS_CONFIG_TRACE",
        extra={
            "trace_type": "WBS_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "prefix_count": len(config.code_prefixes),
            "weekend_days": list(config.calendar.weekend_days),
        },
    )
    return config


__all__ = ["get_active_config", "WbsConfigurationSet"]
