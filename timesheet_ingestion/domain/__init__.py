"""Ingestion value objects."""

from timesheet_ingestion.domain.types import (
    DIRECTORY_COLUMNS,
    DirectoryLoadResult,
    RowError,
)

__all__ = ["DIRECTORY_COLUMNS", "DirectoryLoadResult", "RowError"]
