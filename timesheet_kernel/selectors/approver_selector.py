"""
Module: timesheet_kernel.selectors.approver_selector
Responsibility: Read side of the approver relationship store.  Implements the
    ApproverRelationshipStore port used by the authority validator.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - A relationship is valid on a date iff it is not soft-deleted,
      effective_from <= date, and effective_to is NULL or date <= effective_to.
      Both endpoints are inclusive.
    - Email arguments are normalized before comparison.

Failure modes:
    - Never raises on absence of data; returns False or an empty list.
"""

from collections import defaultdict
from datetime import date

from sqlalchemy import and_, or_, select

from timesheet_kernel.domain.organization import normalize_email
from timesheet_kernel.models.approver import ApproverModel, ApproverRelationship
from timesheet_kernel.selectors.base import BaseSelector


def _valid_on(on_date: date):
    return and_(
        ApproverModel.is_deleted.is_(False),
        ApproverModel.effective_from <= on_date,
        or_(
            ApproverModel.effective_to.is_(None),
            ApproverModel.effective_to >= on_date,
        ),
    )


class ApproverSelector(BaseSelector[ApproverModel]):
    """Queries over approver relationships."""

    def find_valid_approvers(self, target_email: str, on_date: date) -> list[str]:
        """Distinct approver emails valid for ``target_email`` on ``on_date``, sorted."""
        rows = self.session.execute(
            select(ApproverModel.approver_email)
            .where(ApproverModel.target_email == normalize_email(target_email))
            .where(_valid_on(on_date))
            .distinct()
            .order_by(ApproverModel.approver_email)
        ).scalars().all()
        return list(rows)

    def is_valid_approver(
        self, target_email: str, approver_email: str, on_date: date,
    ) -> bool:
        target = normalize_email(target_email)
        approver = normalize_email(approver_email)
        if not target or not approver:
            return False
        found = self.session.execute(
            select(ApproverModel.id)
            .where(ApproverModel.target_email == target)
            .where(ApproverModel.approver_email == approver)
            .where(_valid_on(on_date))
            .limit(1)
        ).first()
        return found is not None

    def find_targets(self, approver_email: str, on_date: date) -> list[str]:
        """Distinct target emails ``approver_email`` may approve on ``on_date``."""
        rows = self.session.execute(
            select(ApproverModel.target_email)
            .where(ApproverModel.approver_email == normalize_email(approver_email))
            .where(_valid_on(on_date))
            .distinct()
            .order_by(ApproverModel.target_email)
        ).scalars().all()
        return list(rows)

    def find_by_target(
        self, target_email: str, include_deleted: bool = False,
    ) -> list[ApproverRelationship]:
        """Every relationship row for a target, oldest start first."""
        stmt = select(ApproverModel).where(
            ApproverModel.target_email == normalize_email(target_email)
        )
        if not include_deleted:
            stmt = stmt.where(ApproverModel.is_deleted.is_(False))
        stmt = stmt.order_by(ApproverModel.effective_from, ApproverModel.approver_email)
        return [row.to_dto() for row in self.session.execute(stmt).scalars()]

    def find_current_grouped_by_target(self, on_date: date) -> dict[str, frozenset[str]]:
        """target email -> approver emails, for every relationship valid on ``on_date``."""
        rows = self.session.execute(
            select(ApproverModel.target_email, ApproverModel.approver_email)
            .where(_valid_on(on_date))
        ).all()
        grouped: dict[str, set[str]] = defaultdict(set)
        for target, approver in rows:
            grouped[target].add(approver)
        return {target: frozenset(approvers) for target, approvers in grouped.items()}

    def find_live_models(
        self, target_email: str, approver_email: str, on_or_after: date | None = None,
    ) -> list[ApproverModel]:
        """
        Non-deleted rows for one pair, as ORM instances for the write service.

        With ``on_or_after``, only rows still open on or after that date
        (effective_to NULL or >= the date) are returned.
        """
        stmt = (
            select(ApproverModel)
            .where(ApproverModel.target_email == normalize_email(target_email))
            .where(ApproverModel.approver_email == normalize_email(approver_email))
            .where(ApproverModel.is_deleted.is_(False))
        )
        if on_or_after is not None:
            stmt = stmt.where(
                or_(
                    ApproverModel.effective_to.is_(None),
                    ApproverModel.effective_to >= on_or_after,
                )
            )
        return list(self.session.execute(stmt.order_by(ApproverModel.effective_from)).scalars())
