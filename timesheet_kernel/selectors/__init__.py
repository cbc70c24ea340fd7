"""Read-only query selectors for the timesheet kernel."""

from timesheet_kernel.selectors.approval_selector import WorkRecordApprovalSelector
from timesheet_kernel.selectors.approver_selector import ApproverSelector
from timesheet_kernel.selectors.user_selector import UserSelector
from timesheet_kernel.selectors.work_record_selector import WorkRecordSelector

__all__ = [
    "ApproverSelector",
    "UserSelector",
    "WorkRecordApprovalSelector",
    "WorkRecordSelector",
]
