"""
Directory ingestion types.

``DirectoryLoadResult.snapshot`` is what the approver graph resolver and
``ApproverService.sync_from_directory`` consume.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from timesheet_kernel.domain.organization import EmployeeRecord

DIRECTORY_COLUMNS: tuple[str, ...] = (
    "email",
    "name",
    "level1_code",
    "level1_name",
    "level2_code",
    "level2_name",
    "level3_code",
    "level3_name",
    "level4_code",
    "level4_name",
    "position",
)

REQUIRED_COLUMNS: frozenset[str] = frozenset({"email", "name", "position"})


@dataclass(frozen=True)
class RowError:
    """One rejected row. ``row_number`` is 1-based over data rows."""

    row_number: int
    email: str | None
    code: str
    message: str


@dataclass(frozen=True)
class DirectoryLoadResult:
    source: str
    snapshot: dict[str, EmployeeRecord]
    total_rows: int
    errors: tuple[RowError, ...] = ()
    duplicate_emails: tuple[str, ...] = ()
    position_counts: dict[str, int] = field(default_factory=dict)

    @property
    def error_rate(self) -> float:
        if self.total_rows == 0:
            return 0.0
        return len(self.errors) / self.total_rows

    @staticmethod
    def count_positions(snapshot: dict[str, EmployeeRecord]) -> dict[str, int]:
        counts = Counter(record.position.value for record in snapshot.values())
        return dict(sorted(counts.items()))
