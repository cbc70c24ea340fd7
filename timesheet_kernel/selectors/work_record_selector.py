"""
Module: timesheet_kernel.selectors.work_record_selector
Responsibility: Read-only access to hour entries.  Implements the
    WorkRecordReader port used for pending-approval aggregation.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select

from timesheet_kernel.domain.approval import WorkRecordInfo
from timesheet_kernel.models.work_record import WorkRecordModel
from timesheet_kernel.selectors.base import BaseSelector


class WorkRecordSelector(BaseSelector[WorkRecordModel]):

    def find_by_user_and_date(self, user_id: UUID, work_date: date) -> list[WorkRecordInfo]:
        return self.find_by_user_and_date_range(user_id, work_date, work_date)

    def find_by_user_and_date_range(
        self, user_id: UUID, start: date, end: date,
    ) -> list[WorkRecordInfo]:
        """Entries with ``start <= work_date <= end``, ordered by date."""
        rows = self.session.execute(
            select(WorkRecordModel)
            .where(WorkRecordModel.user_id == user_id)
            .where(WorkRecordModel.work_date >= start)
            .where(WorkRecordModel.work_date <= end)
            .order_by(WorkRecordModel.work_date, WorkRecordModel.project_id)
        ).scalars()
        return [row.to_dto() for row in rows]
