"""
Configuration loader (``timesheet_config.loader``).

Responsibility
--------------
Load one YAML configuration set and parse it into the frozen dataclasses
of ``timesheet_config.schema``.  Runtime callers go through
``timesheet_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or key, or a value out of range  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from timesheet_config.schema import (
    ApproverSyncConfig,
    DatabaseConfig,
    DirectoryImportConfig,
    LoggingConfig,
    TimesheetConfig,
)

_SECTIONS: dict[str, type] = {
    "database": DatabaseConfig,
    "logging": LoggingConfig,
    "directory_import": DirectoryImportConfig,
    "approver_sync": ApproverSyncConfig,
}

_END_STRATEGIES = frozenset({"end_date", "soft_delete"})
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _parse_section(name: str, raw: Any) -> Any:
    section_type = _SECTIONS[name]
    if raw is None:
        return section_type()
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    known = {f.name for f in fields(section_type)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown keys in section '{name}': {', '.join(unknown)}")
    return section_type(**raw)


def parse_config(data: dict[str, Any], default_name: str = "default") -> TimesheetConfig:
    """Turn a loaded YAML mapping into a validated ``TimesheetConfig``."""
    unknown = sorted(set(data) - set(_SECTIONS) - {"name", "version"})
    if unknown:
        raise ValueError(f"Unknown configuration sections: {', '.join(unknown)}")

    sections = {name: _parse_section(name, data.get(name)) for name in _SECTIONS}
    config = TimesheetConfig(
        name=str(data.get("name", default_name)),
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        **sections,
    )
    validate_config(config)
    return config


def validate_config(config: TimesheetConfig) -> None:
    """
    Raises:
        ValueError: if any value is outside its allowed range.
    """
    rate = config.directory_import.max_error_rate
    if not 0.0 <= rate <= 1.0:
        raise ValueError(f"directory_import.max_error_rate must be within [0, 1], got {rate}")
    if len(config.directory_import.delimiter) != 1:
        raise ValueError("directory_import.delimiter must be a single character")
    if config.approver_sync.end_strategy not in _END_STRATEGIES:
        raise ValueError(
            f"approver_sync.end_strategy must be one of {sorted(_END_STRATEGIES)}, "
            f"got {config.approver_sync.end_strategy!r}"
        )
    if config.logging.level.upper() not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}")
    if not config.database.url:
        raise ValueError("database.url is required")


def load_config_file(path: Path) -> TimesheetConfig:
    return parse_config(load_yaml_file(path), default_name=path.stem)
