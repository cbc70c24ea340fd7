"""
Module: timesheet_kernel.models.work_record
Responsibility: ORM persistence for per (user, project, date) hour entries.

Architecture position: Kernel > Models.  The timesheet entry feature owns
    writes to this table; the approval kernel only reads it through
    selectors.work_record_selector.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_kernel.db.base import TimestampedBase, UUIDString
from timesheet_kernel.domain.approval import WorkRecordInfo


class WorkRecordModel(TimestampedBase):
    """Hours one user spent on one project on one day, split by category."""

    __tablename__ = "work_records"

    __table_args__ = (
        Index("ix_work_records_user_date", "user_id", "work_date"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    project_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    # category code -> hours, stored as strings to keep Decimal precision
    category_hours: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    project_code: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def to_dto(self) -> WorkRecordInfo:
        return WorkRecordInfo(
            user_id=self.user_id,
            project_id=self.project_id,
            work_date=self.work_date,
            category_hours={
                str(category): Decimal(str(hours))
                for category, hours in (self.category_hours or {}).items()
            },
            description=self.description,
        )
