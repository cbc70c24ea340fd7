"""
Directory source contract.

A directory source is any tabular file with one employee per row whose
columns use the names in ``DIRECTORY_COLUMNS``.  Adapters only turn the
file into dicts keyed by those names; validating cell content belongs to
``DirectoryImportService``.

The probe is taken before any row is parsed into an ``EmployeeRecord`` so
a file with the wrong shape is refused as a whole rather than producing
one row error per line.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable

from timesheet_ingestion.domain.types import REQUIRED_COLUMNS


@runtime_checkable
class SourceAdapter(Protocol):
    """Reads a directory file into dicts keyed by directory column name."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        ...

    def probe(self, source_path: Path, options: dict[str, Any]) -> "SourceProbe":
        ...


@dataclass(frozen=True)
class SourceProbe:
    """
    Shape of a directory file: its header and how many employee rows it holds.

    ``row_count`` excludes rows whose cells are all blank, matching what the
    import counts as a row.
    """

    row_count: int
    columns: tuple[str, ...]
    sample_rows: tuple[dict[str, Any], ...]
    encoding: str | None = None
    detected_delimiter: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0

    def missing_columns(
        self, required: Iterable[str] = REQUIRED_COLUMNS,
    ) -> tuple[str, ...]:
        """Required directory columns absent from the header, sorted."""
        present = set(self.columns)
        return tuple(sorted(name for name in set(required) if name not in present))

    def has_required_columns(self, required: Iterable[str] = REQUIRED_COLUMNS) -> bool:
        return not self.missing_columns(required)


def is_blank_row(row: dict[str, Any]) -> bool:
    """True when every cell of a directory row is empty or whitespace."""
    return all(value is None or not str(value).strip() for value in row.values())
