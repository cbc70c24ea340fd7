"""
Timesheet configuration schema.

Frozen dataclasses that a YAML configuration set is parsed into.  Every
field has a default so a set only needs to list what it changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///timesheet.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class DirectoryImportConfig:
    """How the employee directory CSV is read."""

    encoding: str = "utf-8-sig"
    delimiter: str = ","
    has_header: bool = True
    max_error_rate: float = 0.10


@dataclass(frozen=True)
class ApproverSyncConfig:
    """How directory reconciliation retires relationships."""

    end_strategy: str = "end_date"
    actor_email: str | None = None


@dataclass(frozen=True)
class TimesheetConfig:
    """A complete, validated configuration set."""

    name: str
    version: int = 1
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    directory_import: DirectoryImportConfig = field(default_factory=DirectoryImportConfig)
    approver_sync: ApproverSyncConfig = field(default_factory=ApproverSyncConfig)
    checksum: str = ""
