"""
Pure domain layer: value objects, the approver graph resolver and the
approval state machine.  No I/O.
"""

from timesheet_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    AggregatedApproval,
    ApprovalAction,
    ApprovalState,
    ApprovalStatus,
    Approved,
    BatchFailureReason,
    BatchItemOutcome,
    BatchSummary,
    DailyApprovalResult,
    NotEntered,
    Pending,
    Rejected,
    WorkDayKey,
    WorkRecordInfo,
    next_state,
)
from timesheet_kernel.domain.approver_graph import (
    APPROVAL_LADDER,
    TierDescriptor,
    resolve_approvers,
)
from timesheet_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from timesheet_kernel.domain.organization import (
    EmployeeRecord,
    OrgUnit,
    Position,
    normalize_email,
)

__all__ = [
    "APPROVAL_LADDER",
    "APPROVAL_TRANSITIONS",
    "AggregatedApproval",
    "ApprovalAction",
    "ApprovalState",
    "ApprovalStatus",
    "Approved",
    "BatchFailureReason",
    "BatchItemOutcome",
    "BatchSummary",
    "Clock",
    "DailyApprovalResult",
    "DeterministicClock",
    "EmployeeRecord",
    "NotEntered",
    "OrgUnit",
    "Pending",
    "Position",
    "Rejected",
    "SystemClock",
    "TierDescriptor",
    "WorkDayKey",
    "WorkRecordInfo",
    "next_state",
    "normalize_email",
    "resolve_approvers",
]
