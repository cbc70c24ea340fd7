"""
Module: timesheet_kernel.models.approver
Responsibility: ORM persistence for time-windowed approver relationships.

Architecture position: Kernel > Models.  May import from db/base.py and the
    pure domain layer only.

Invariants enforced:
    - effective_from <= effective_to when effective_to is set (check
      constraint; the service raises InvalidEffectivePeriodError first).
    - target_email != approver_email (check constraint).
    - No uniqueness on (target, approver): several rows for the same pair
      may exist as long as history is kept by ending or soft-deleting.
    - Rows are ended (effective_to) or soft-deleted, never physically
      removed by the kernel.

Failure modes:
    - IntegrityError if a row bypasses the service and violates a check.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_kernel.db.base import TimestampedBase


@dataclass(frozen=True)
class ApproverRelationship:
    """Detached, immutable view of one relationship row."""

    id: UUID
    target_email: str
    approver_email: str
    effective_from: date
    effective_to: date | None
    is_deleted: bool

    def is_valid_for(self, on_date: date) -> bool:
        """Both endpoints inclusive; soft-deleted rows are never valid."""
        if self.is_deleted:
            return False
        if on_date < self.effective_from:
            return False
        return self.effective_to is None or on_date <= self.effective_to


class ApproverModel(TimestampedBase):
    """Grant of approval authority from approver_email over target_email."""

    __tablename__ = "approvers"

    __table_args__ = (
        CheckConstraint(
            "effective_to IS NULL OR effective_from <= effective_to",
            name="ck_approvers_effective_period",
        ),
        CheckConstraint(
            "target_email <> approver_email",
            name="ck_approvers_no_self_approval",
        ),
        Index("ix_approvers_target_email", "target_email"),
        Index("ix_approvers_approver_email", "approver_email"),
    )

    target_email: Mapped[str] = mapped_column(String(255), nullable=False)
    approver_email: Mapped[str] = mapped_column(String(255), nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def is_valid_for(self, on_date: date) -> bool:
        return self.to_dto().is_valid_for(on_date)

    def to_dto(self) -> ApproverRelationship:
        return ApproverRelationship(
            id=self.id,
            target_email=self.target_email,
            approver_email=self.approver_email,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
            is_deleted=bool(self.is_deleted),
        )

    def __repr__(self) -> str:
        return (
            f"<ApproverModel {self.approver_email} -> {self.target_email} "
            f"[{self.effective_from}, {self.effective_to or 'open'}]>"
        )
