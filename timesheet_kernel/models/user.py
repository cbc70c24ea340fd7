"""
Module: timesheet_kernel.models.user
Responsibility: ORM persistence for the user identity table that backs
    id <-> email resolution.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - email is unique and stored normalized (trimmed, lower-case).
"""

from __future__ import annotations

from sqlalchemy import Boolean, String, event
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_kernel.db.base import TimestampedBase


class UserModel(TimestampedBase):
    """A person who can enter time or approve it."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<UserModel {self.email}>"


@event.listens_for(UserModel.email, "set", retval=True)
def _normalize_user_email(target, value, oldvalue, initiator):
    if value is None:
        return value
    return value.strip().lower()
