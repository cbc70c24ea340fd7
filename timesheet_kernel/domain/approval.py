"""
Daily approval domain types (``timesheet_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the per-user-per-day approval lifecycle: the
explicit tagged state, the transition table, decision plans, batch
outcomes and the aggregated pending-approval view.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``APPROVAL_TRANSITIONS`` is the only source of valid status changes.
* NOT_ENTERED is a real state (``NotEntered``), never inferred from a
  ``None`` field on a stored row.
* ``Rejected`` always carries a non-blank reason; ``Approved`` never does.
* Batch outcomes are produced one per input pair, in input order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Union
from uuid import UUID

from timesheet_kernel.exceptions import (
    InvalidApprovalTransitionError,
    MissingRejectionReasonError,
)


# =========================================================================
# Status lifecycle
# =========================================================================


class ApprovalStatus(str, Enum):
    """Daily approval states. NOT_ENTERED is never stored."""

    NOT_ENTERED = "not_entered"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


STORED_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.PENDING,
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
})


class ApprovalAction(str, Enum):
    """What a caller asks the workflow to do to one (user, date)."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    WITHDRAW = "withdraw"


APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.NOT_ENTERED: frozenset({
        ApprovalStatus.PENDING,
    }),
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
        ApprovalStatus.NOT_ENTERED,
    }),
    ApprovalStatus.APPROVED: frozenset({
        ApprovalStatus.REJECTED,
    }),
    ApprovalStatus.REJECTED: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.PENDING,
        ApprovalStatus.NOT_ENTERED,
    }),
}

ACTION_TARGETS: dict[ApprovalAction, ApprovalStatus] = {
    ApprovalAction.SUBMIT: ApprovalStatus.PENDING,
    ApprovalAction.APPROVE: ApprovalStatus.APPROVED,
    ApprovalAction.REJECT: ApprovalStatus.REJECTED,
    ApprovalAction.WITHDRAW: ApprovalStatus.NOT_ENTERED,
}


def can_transition(from_status: ApprovalStatus, to_status: ApprovalStatus) -> bool:
    return to_status in APPROVAL_TRANSITIONS.get(from_status, frozenset())


# =========================================================================
# Tagged state
# =========================================================================


@dataclass(frozen=True)
class NotEntered:
    """No timesheet entry exists for the day yet."""

    status = ApprovalStatus.NOT_ENTERED


@dataclass(frozen=True)
class Pending:
    """Entered and waiting for a decision."""

    submitted_at: datetime | None = None
    status = ApprovalStatus.PENDING


@dataclass(frozen=True)
class Approved:
    approver_id: UUID
    decided_at: datetime | None = None
    status = ApprovalStatus.APPROVED


@dataclass(frozen=True)
class Rejected:
    approver_id: UUID
    reason: str
    decided_at: datetime | None = None
    status = ApprovalStatus.REJECTED

    def __post_init__(self) -> None:
        if not self.reason or not self.reason.strip():
            raise MissingRejectionReasonError()


ApprovalState = Union[NotEntered, Pending, Approved, Rejected]


def next_state(
    current: ApprovalState,
    action: ApprovalAction,
    *,
    actor_id: UUID | None = None,
    reason: str | None = None,
    at: datetime | None = None,
) -> ApprovalState:
    """
    Apply ``action`` to ``current`` and return the resulting state.

    Pure: validates the transition against ``APPROVAL_TRANSITIONS`` and
    builds the new tagged state.  Re-entrant decisions (approve after
    reject and the reverse) replace the previous approver, reason and
    timestamp.  Submitting an already pending day returns it unchanged.

    Raises:
        InvalidApprovalTransitionError: If the action is not allowed from
            the current state, or an approve/reject has no actor.
        MissingRejectionReasonError: If a reject has a blank reason.
    """
    target = ACTION_TARGETS[action]
    if action is ApprovalAction.SUBMIT and isinstance(current, Pending):
        return current
    if not can_transition(current.status, target):
        raise InvalidApprovalTransitionError(current.status.value, target.value)

    if target is ApprovalStatus.PENDING:
        return Pending(submitted_at=at)
    if target is ApprovalStatus.NOT_ENTERED:
        return NotEntered()
    if actor_id is None:
        raise InvalidApprovalTransitionError(current.status.value, target.value)
    if target is ApprovalStatus.APPROVED:
        return Approved(approver_id=actor_id, decided_at=at)
    return Rejected(approver_id=actor_id, reason=(reason or "").strip(), decided_at=at)


# =========================================================================
# Keys, results and batch outcomes
# =========================================================================


@dataclass(frozen=True)
class WorkDayKey:
    """Identity of one daily approval: (user, date)."""

    user_id: UUID
    work_date: date


@dataclass(frozen=True)
class DailyApprovalResult:
    """State after a successful single operation."""

    user_id: UUID
    work_date: date
    state: ApprovalState
    version: int | None = None

    @property
    def status(self) -> ApprovalStatus:
        return self.state.status


class BatchFailureReason(str, Enum):
    """Why one pair of a batch was not applied."""

    NO_AUTHORITY = "no_authority"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    INVALID_TRANSITION = "invalid_transition"
    CONCURRENT_MODIFICATION = "concurrent_modification"


@dataclass(frozen=True)
class BatchItemOutcome:
    """
    Result of one pair in a batch call.

    Exactly one of ``status`` (success) or ``failure`` (typed reason) is set.
    """

    index: int
    user_id: UUID | None
    work_date: date | None
    status: ApprovalStatus | None = None
    failure: BatchFailureReason | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    @classmethod
    def success(
        cls, index: int, user_id: UUID, work_date: date, status: ApprovalStatus,
    ) -> BatchItemOutcome:
        return cls(index=index, user_id=user_id, work_date=work_date, status=status)

    @classmethod
    def failed(
        cls,
        index: int,
        user_id: UUID | None,
        work_date: date | None,
        failure: BatchFailureReason,
        error_code: str,
        error_message: str,
    ) -> BatchItemOutcome:
        return cls(
            index=index,
            user_id=user_id,
            work_date=work_date,
            failure=failure,
            error_code=error_code,
            error_message=error_message,
        )


@dataclass(frozen=True)
class BatchSummary:
    total: int
    succeeded: int
    failed: int
    failures_by_reason: dict[str, int] = field(default_factory=dict)

    @classmethod
    def of(cls, outcomes: list[BatchItemOutcome]) -> BatchSummary:
        by_reason: dict[str, int] = {}
        for outcome in outcomes:
            if outcome.failure is not None:
                by_reason[outcome.failure.value] = by_reason.get(outcome.failure.value, 0) + 1
        failed = sum(by_reason.values())
        return cls(
            total=len(outcomes),
            succeeded=len(outcomes) - failed,
            failed=failed,
            failures_by_reason=by_reason,
        )


# =========================================================================
# Work records and aggregation
# =========================================================================


@dataclass(frozen=True)
class WorkRecordInfo:
    """Read-only view of one (user, project, date) hour entry."""

    user_id: UUID
    project_id: UUID
    work_date: date
    category_hours: dict[str, Decimal] = field(default_factory=dict)
    description: str | None = None

    @property
    def total_hours(self) -> Decimal:
        return sum(self.category_hours.values(), Decimal("0"))


@dataclass(frozen=True)
class ProjectHours:
    project_id: UUID
    hours: Decimal


@dataclass(frozen=True)
class AggregatedApproval:
    """Pending approval for one (target user, date) with hour totals."""

    user_id: UUID
    user_email: str
    work_date: date
    status: ApprovalStatus
    total_hours: Decimal
    project_count: int
    category_hours: dict[str, Decimal] = field(default_factory=dict)
    projects: tuple[ProjectHours, ...] = ()
    version: int | None = None


def aggregate_work_records(records: list[WorkRecordInfo]) -> tuple[
    Decimal, dict[str, Decimal], tuple[ProjectHours, ...]
]:
    """
    Sum hours across one user's records for one day.

    Returns (total hours, hours per category, hours per project); projects
    are ordered by id for stable output.
    """
    total = Decimal("0")
    by_category: dict[str, Decimal] = {}
    by_project: dict[UUID, Decimal] = {}
    for record in records:
        hours = record.total_hours
        total += hours
        by_project[record.project_id] = by_project.get(record.project_id, Decimal("0")) + hours
        for category, value in record.category_hours.items():
            by_category[category] = by_category.get(category, Decimal("0")) + value
    projects = tuple(
        ProjectHours(project_id=project_id, hours=hours)
        for project_id, hours in sorted(by_project.items(), key=lambda item: str(item[0]))
    )
    return total, by_category, projects
