"""
Module: timesheet_kernel.models.work_record_approval
Responsibility: ORM persistence for per (user, date) approval status and its
    append-only history.

Architecture position: Kernel > Models.  May import from db/base.py, the
    pure domain layer and exceptions.

Invariants enforced:
    - One row per (user_id, work_date) (unique constraint).  No row means
      NOT_ENTERED; that status is never stored.
    - status in {pending, approved, rejected} (check constraint).
    - rejection_reason is set only while status is rejected (check
      constraint).
    - version is the mapper's version_id_col: an UPDATE whose expected
      version no longer matches raises StaleDataError, which the service
      turns into OptimisticLockError.
    - History rows are immutable (before_update / before_delete listeners).

Failure modes:
    - IntegrityError on a duplicate (user_id, work_date) insert.
    - ImmutabilityViolationError on history UPDATE/DELETE.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_kernel.db.base import Base, TimestampedBase, UUIDString
from timesheet_kernel.domain.approval import (
    ApprovalState,
    ApprovalStatus,
    Approved,
    NotEntered,
    Pending,
    Rejected,
)
from timesheet_kernel.exceptions import ImmutabilityViolationError


class WorkRecordApprovalModel(TimestampedBase):
    """Stored approval status for one user's day."""

    __tablename__ = "work_record_approvals"

    __table_args__ = (
        UniqueConstraint("user_id", "work_date", name="uq_work_record_approvals_user_date"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_work_record_approvals_valid_status",
        ),
        CheckConstraint(
            "rejection_reason IS NULL OR status = 'rejected'",
            name="ck_work_record_approvals_reason_only_when_rejected",
        ),
        Index("ix_work_record_approvals_status_user", "status", "user_id"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    approver_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def status_enum(self) -> ApprovalStatus:
        return ApprovalStatus(self.status)

    def to_state(self) -> ApprovalState:
        status = self.status_enum
        if status is ApprovalStatus.PENDING:
            return Pending(submitted_at=self.submitted_at)
        if status is ApprovalStatus.APPROVED:
            return Approved(approver_id=self.approver_id, decided_at=self.decided_at)
        return Rejected(
            approver_id=self.approver_id,
            reason=self.rejection_reason or "",
            decided_at=self.decided_at,
        )

    def apply_state(self, state: ApprovalState, actor_id: UUID | None = None) -> None:
        """Copy a stored (non NOT_ENTERED) tagged state onto this row."""
        if isinstance(state, NotEntered):
            raise ValueError("NOT_ENTERED is represented by deleting the row")
        self.status = state.status.value
        self.updated_by_id = actor_id
        if isinstance(state, Pending):
            self.approver_id = None
            self.rejection_reason = None
            self.decided_at = None
            self.submitted_at = state.submitted_at
        elif isinstance(state, Approved):
            self.approver_id = state.approver_id
            self.rejection_reason = None
            self.decided_at = state.decided_at
        else:
            self.approver_id = state.approver_id
            self.rejection_reason = state.reason
            self.decided_at = state.decided_at

    def __repr__(self) -> str:
        return f"<WorkRecordApprovalModel {self.user_id} {self.work_date} {self.status} v{self.version}>"


class WorkRecordApprovalHistoryModel(Base):
    """Append-only record of every status change."""

    __tablename__ = "work_record_approval_history"

    __table_args__ = (
        Index("ix_work_record_approval_history_user_date", "user_id", "work_date"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    previous_status: Mapped[str] = mapped_column(String(20), nullable=False)
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


@event.listens_for(WorkRecordApprovalHistoryModel, "before_update")
def prevent_history_update(mapper, connection, target):
    """Prevent updates to approval history records."""
    raise ImmutabilityViolationError(
        entity_type="WorkRecordApprovalHistory",
        entity_id=str(target.id),
        reason="Approval history is append-only -- cannot modify",
    )


@event.listens_for(WorkRecordApprovalHistoryModel, "before_delete")
def prevent_history_delete(mapper, connection, target):
    """Prevent deletion of approval history records."""
    raise ImmutabilityViolationError(
        entity_type="WorkRecordApprovalHistory",
        entity_id=str(target.id),
        reason="Approval history is append-only -- cannot delete",
    )
