"""
Timesheet Approval Kernel

Approval authority and daily approval workflow for a work-hour tracking
platform:
- Approver derivation from an organizational hierarchy snapshot
- Time-windowed approver relationships
- Authority validation (default deny)
- Single and batch approve/reject over per-user-per-day approvals
"""

__version__ = "0.1.0"
