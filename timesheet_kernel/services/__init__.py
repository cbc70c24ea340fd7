"""Kernel services: authority validation, relationship administration and the daily approval workflow."""

from timesheet_kernel.services.approver_service import (
    ApproverService,
    ApproverSyncResult,
    EndStrategy,
)
from timesheet_kernel.services.authority_validator import AuthorityValidator
from timesheet_kernel.services.daily_approval_service import DailyApprovalService

__all__ = [
    "ApproverService",
    "ApproverSyncResult",
    "AuthorityValidator",
    "DailyApprovalService",
    "EndStrategy",
]
