"""
DirectoryImportService -- employee directory file to EmployeeRecord snapshot.

Responsibility:
    Read a directory CSV through a SourceAdapter, validate each row by
    constructing an ``EmployeeRecord``, collect per-row errors, and refuse
    the whole file when too many rows are bad.

Architecture position:
    Ingestion > Services.  Reads files only; persisting the outcome is the
    job of ``ApproverService.sync_from_directory``.

Invariants enforced:
    - Blank rows are skipped and not counted.
    - Duplicate emails: the later row wins and the email is reported.
    - error_count / total_rows must not exceed ``max_error_rate``.

Failure modes:
    - DirectoryFileError: missing or empty file, missing required columns.
    - ErrorRateExceededError: too many invalid rows.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from timesheet_kernel.domain.organization import EmployeeRecord, normalize_email
from timesheet_kernel.exceptions import (
    DirectoryFileError,
    ErrorRateExceededError,
    InvalidParameterError,
)
from timesheet_kernel.logging_config import get_logger
from timesheet_ingestion.adapters.base import SourceAdapter, is_blank_row
from timesheet_ingestion.adapters.csv_adapter import CsvSourceAdapter
from timesheet_ingestion.domain.types import (
    DIRECTORY_COLUMNS,
    REQUIRED_COLUMNS,
    DirectoryLoadResult,
    RowError,
)

logger = get_logger("ingestion.directory_import")

DEFAULT_MAX_ERROR_RATE = 0.10


def _cell(row: dict[str, Any], column: str) -> str | None:
    value = row.get(column)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def record_from_row(row: dict[str, Any]) -> EmployeeRecord:
    """
    Build an EmployeeRecord from one directory row.

    Raises:
        InvalidParameterError subclasses (InvalidEmployeeRecordError,
        InvalidPositionError) for invalid content.
    """
    return EmployeeRecord.from_columns(
        email=_cell(row, "email") or "",
        name=_cell(row, "name") or "",
        position=_cell(row, "position") or "",
        level1_code=_cell(row, "level1_code"),
        level1_name=_cell(row, "level1_name"),
        level2_code=_cell(row, "level2_code"),
        level2_name=_cell(row, "level2_name"),
        level3_code=_cell(row, "level3_code"),
        level3_name=_cell(row, "level3_name"),
        level4_code=_cell(row, "level4_code"),
        level4_name=_cell(row, "level4_name"),
    )


class DirectoryImportService:
    """Loads a directory file into a validated snapshot."""

    def __init__(
        self,
        adapter: SourceAdapter | None = None,
        max_error_rate: float = DEFAULT_MAX_ERROR_RATE,
        options: dict[str, Any] | None = None,
    ):
        self._adapter = adapter or CsvSourceAdapter()
        self._max_error_rate = max_error_rate
        self._options = {"columns": list(DIRECTORY_COLUMNS), **(options or {})}

    def load(self, path: Path | str) -> DirectoryLoadResult:
        source = Path(path)
        if not source.is_file():
            raise DirectoryFileError(str(source), "file does not exist")

        probe = self._adapter.probe(source, self._options)
        if probe.is_empty:
            raise DirectoryFileError(str(source), "file contains no rows")
        missing = probe.missing_columns(REQUIRED_COLUMNS)
        if missing:
            raise DirectoryFileError(
                str(source), f"missing required columns: {', '.join(missing)}"
            )

        snapshot: dict[str, EmployeeRecord] = {}
        errors: list[RowError] = []
        duplicates: list[str] = []
        total = 0

        for row in self._adapter.read(source, self._options):
            if is_blank_row(row):
                continue
            total += 1
            try:
                record = record_from_row(row)
            except InvalidParameterError as exc:
                errors.append(
                    RowError(
                        row_number=total,
                        email=normalize_email(_cell(row, "email")) or None,
                        code=exc.code,
                        message=str(exc),
                    )
                )
                continue
            if record.email in snapshot:
                duplicates.append(record.email)
            snapshot[record.email] = record

        result = DirectoryLoadResult(
            source=str(source),
            snapshot=snapshot,
            total_rows=total,
            errors=tuple(errors),
            duplicate_emails=tuple(sorted(set(duplicates))),
            position_counts=DirectoryLoadResult.count_positions(snapshot),
        )

        for error in result.errors:
            logger.warning(
                "directory_row_rejected",
                extra={
                    "row_number": error.row_number,
                    "email": error.email,
                    "error_code": error.code,
                    "reason": error.message,
                },
            )

        if result.error_rate > self._max_error_rate:
            logger.error(
                "directory_import_rejected",
                extra={
                    "source": result.source,
                    "total_rows": total,
                    "error_count": len(errors),
                    "max_error_rate": self._max_error_rate,
                },
            )
            raise ErrorRateExceededError(len(errors), total, self._max_error_rate)

        logger.info(
            "directory_loaded",
            extra={
                "source": result.source,
                "total_rows": total,
                "employees": len(snapshot),
                "error_count": len(errors),
                "duplicate_emails": len(result.duplicate_emails),
                "position_counts": result.position_counts,
            },
        )
        return result
