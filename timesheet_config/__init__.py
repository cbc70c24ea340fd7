"""
timesheet_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the only way components obtain settings.
    It loads a named YAML set from ``timesheet_config/sets/`` (or a given
    directory), validates it, applies the ``TIMESHEET_DATABASE_URL``
    override and logs a ``config_loaded`` trace with the set's checksum.

Architecture position:
    Configuration sits beside the kernel; the kernel never imports it.
    Scripts and application wiring read the config and pass plain values
    (URLs, strategies, thresholds) into kernel constructors.

Failure modes:
    - ``FileNotFoundError`` -- no set with the requested name.
    - ``ValueError`` -- schema or range validation failures.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from timesheet_config.loader import load_config_file
from timesheet_config.schema import (
    ApproverSyncConfig,
    DatabaseConfig,
    DirectoryImportConfig,
    LoggingConfig,
    TimesheetConfig,
)

_logger = logging.getLogger("timesheet_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DATABASE_URL_ENV = "TIMESHEET_DATABASE_URL"


def get_active_config(
    set_name: str = "default",
    config_dir: Path | None = None,
) -> TimesheetConfig:
    """
    The ONLY public configuration entrypoint.

    Args:
        set_name: File stem of the set (``default`` -> ``default.yaml``).
        config_dir: Override path to the sets directory.

    Raises:
        FileNotFoundError: If the set does not exist.
        ValueError: If validation fails.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{set_name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"No configuration set '{set_name}' in {sets_dir}")

    config = load_config_file(path)

    url_override = os.environ.get(DATABASE_URL_ENV)
    if url_override:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=url_override),
        )

    _logger.info(
        "config_loaded",
        extra={
            "config_name": config.name,
            "config_version": config.version,
            "checksum": config.checksum,
            "database_url_overridden": bool(url_override),
        },
    )
    return config


__all__ = [
    "ApproverSyncConfig",
    "DatabaseConfig",
    "DirectoryImportConfig",
    "LoggingConfig",
    "TimesheetConfig",
    "get_active_config",
]
