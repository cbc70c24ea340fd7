"""
Collaborator ports (``timesheet_kernel.domain.ports``).

Structural interfaces the workflow depends on.  The SQLAlchemy selectors
in ``timesheet_kernel.selectors`` satisfy them; tests or other
applications may substitute any object with matching methods.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, runtime_checkable
from uuid import UUID

from timesheet_kernel.domain.approval import WorkRecordInfo


@runtime_checkable
class IdentityResolver(Protocol):
    """Maps opaque user ids to emails and back."""

    def resolve_email(self, user_id: UUID) -> str | None: ...

    def resolve_id(self, email: str) -> UUID | None: ...


@runtime_checkable
class ApproverRelationshipStore(Protocol):
    """Read side of the time-windowed approver relationships."""

    def find_valid_approvers(self, target_email: str, on_date: date) -> list[str]: ...

    def is_valid_approver(
        self, target_email: str, approver_email: str, on_date: date,
    ) -> bool: ...

    def find_targets(self, approver_email: str, on_date: date) -> list[str]: ...


@runtime_checkable
class WorkRecordReader(Protocol):
    """Hour entries owned by the timesheet entry feature."""

    def find_by_user_and_date(self, user_id: UUID, work_date: date) -> list[WorkRecordInfo]: ...

    def find_by_user_and_date_range(
        self, user_id: UUID, start: date, end: date,
    ) -> list[WorkRecordInfo]: ...
