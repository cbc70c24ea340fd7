"""ORM models for the timesheet kernel."""

from timesheet_kernel.models.approver import ApproverModel, ApproverRelationship
from timesheet_kernel.models.user import UserModel
from timesheet_kernel.models.work_record import WorkRecordModel
from timesheet_kernel.models.work_record_approval import (
    WorkRecordApprovalHistoryModel,
    WorkRecordApprovalModel,
)

__all__ = [
    "ApproverModel",
    "ApproverRelationship",
    "UserModel",
    "WorkRecordApprovalHistoryModel",
    "WorkRecordApprovalModel",
    "WorkRecordModel",
]
