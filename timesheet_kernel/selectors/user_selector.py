"""
Module: timesheet_kernel.selectors.user_selector
Responsibility: Identity resolution between opaque user ids and emails.
    Implements the IdentityResolver port.
"""

from uuid import UUID

from sqlalchemy import select

from timesheet_kernel.domain.organization import normalize_email
from timesheet_kernel.models.user import UserModel
from timesheet_kernel.selectors.base import BaseSelector


class UserSelector(BaseSelector[UserModel]):
    """Resolve user ids to emails and back. Unknown input resolves to None."""

    def resolve_email(self, user_id: UUID | None) -> str | None:
        if user_id is None:
            return None
        return self.session.execute(
            select(UserModel.email).where(UserModel.id == user_id)
        ).scalar_one_or_none()

    def resolve_id(self, email: str | None) -> UUID | None:
        normalized = normalize_email(email)
        if not normalized:
            return None
        return self.session.execute(
            select(UserModel.id).where(UserModel.email == normalized)
        ).scalar_one_or_none()

    def resolve_ids(self, emails: list[str]) -> dict[str, UUID]:
        """Map each known email to its id; unknown emails are omitted."""
        normalized = sorted({normalize_email(e) for e in emails if e})
        if not normalized:
            return {}
        rows = self.session.execute(
            select(UserModel.email, UserModel.id).where(UserModel.email.in_(normalized))
        ).all()
        return {email: user_id for email, user_id in rows}
