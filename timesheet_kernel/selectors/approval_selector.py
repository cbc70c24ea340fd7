"""
Module: timesheet_kernel.selectors.approval_selector
Responsibility: Read-only access to daily approval rows and their history.

Invariants enforced:
    - A missing row is reported as NotEntered by ``get_state``; callers never
      see None standing in for a status.
    - History is returned in the order it was written.
"""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select

from timesheet_kernel.domain.approval import (
    ApprovalAction,
    ApprovalState,
    ApprovalStatus,
    NotEntered,
)
from timesheet_kernel.models.work_record_approval import (
    WorkRecordApprovalHistoryModel,
    WorkRecordApprovalModel,
)
from timesheet_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ApprovalHistoryEntry:
    user_id: UUID
    work_date: date
    action: ApprovalAction
    previous_status: ApprovalStatus
    new_status: ApprovalStatus
    actor_id: UUID | None
    rejection_reason: str | None
    occurred_at: datetime


class WorkRecordApprovalSelector(BaseSelector[WorkRecordApprovalModel]):
    """Queries over work_record_approvals and work_record_approval_history."""

    def find_by_user_and_date(
        self, user_id: UUID, work_date: date,
    ) -> WorkRecordApprovalModel | None:
        """The stored row for the key, as an ORM instance (the workflow mutates it)."""
        return self.session.execute(
            select(WorkRecordApprovalModel)
            .where(WorkRecordApprovalModel.user_id == user_id)
            .where(WorkRecordApprovalModel.work_date == work_date)
        ).scalar_one_or_none()

    def get_state(self, user_id: UUID, work_date: date) -> ApprovalState:
        row = self.find_by_user_and_date(user_id, work_date)
        if row is None:
            return NotEntered()
        return row.to_state()

    def find_by_users_and_statuses(
        self, user_ids: list[UUID], statuses: list[ApprovalStatus],
    ) -> list[WorkRecordApprovalModel]:
        """Rows for any of ``user_ids`` in any of ``statuses``, newest day first."""
        stored = [s.value for s in statuses if s is not ApprovalStatus.NOT_ENTERED]
        if not user_ids or not stored:
            return []
        return list(
            self.session.execute(
                select(WorkRecordApprovalModel)
                .where(WorkRecordApprovalModel.user_id.in_(user_ids))
                .where(WorkRecordApprovalModel.status.in_(stored))
                .order_by(WorkRecordApprovalModel.work_date.desc())
            ).scalars()
        )

    def count_history(self, user_id: UUID, work_date: date) -> int:
        return len(self._history_rows(user_id, work_date))

    def get_history(self, user_id: UUID, work_date: date) -> list[ApprovalHistoryEntry]:
        return [
            ApprovalHistoryEntry(
                user_id=row.user_id,
                work_date=row.work_date,
                action=ApprovalAction(row.action),
                previous_status=ApprovalStatus(row.previous_status),
                new_status=ApprovalStatus(row.new_status),
                actor_id=row.actor_id,
                rejection_reason=row.rejection_reason,
                occurred_at=row.occurred_at,
            )
            for row in self._history_rows(user_id, work_date)
        ]

    def _history_rows(
        self, user_id: UUID, work_date: date,
    ) -> list[WorkRecordApprovalHistoryModel]:
        return list(
            self.session.execute(
                select(WorkRecordApprovalHistoryModel)
                .where(WorkRecordApprovalHistoryModel.user_id == user_id)
                .where(WorkRecordApprovalHistoryModel.work_date == work_date)
                .order_by(WorkRecordApprovalHistoryModel.sequence)
            ).scalars()
        )
