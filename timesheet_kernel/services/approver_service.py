"""
timesheet_kernel.services.approver_service -- Approver relationship administration.

Responsibility:
    Write side of the approver relationship store: grant, end and revoke
    individual relationships, and reconcile the whole store with a fresh
    directory snapshot through the approver graph resolver.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/, db/.

Invariants enforced:
    - Emails are normalized before they are stored.
    - effective_from <= effective_to when both are set.
    - Nobody is granted authority over themselves.
    - Rows are ended (effective_to) or soft-deleted, never deleted.
    - Sync is computed as of the injected clock's today: new pairs start
      today, dropped pairs end yesterday so that authority over days
      already worked is kept.

Failure modes:
    - InvalidParameterError / SelfApprovalError / InvalidEffectivePeriodError
      on bad input, before any row is touched.
    - ApproverRelationshipNotFoundError when ending or revoking a pair that
      has no live row.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from uuid import UUID

from sqlalchemy.orm import Session

from timesheet_kernel.domain.approver_graph import resolve_approvers
from timesheet_kernel.domain.clock import Clock, SystemClock
from timesheet_kernel.domain.organization import (
    EmployeeRecord,
    Position,
    is_valid_email,
    normalize_email,
)
from timesheet_kernel.exceptions import (
    ApproverRelationshipNotFoundError,
    InvalidEffectivePeriodError,
    InvalidParameterError,
    SelfApprovalError,
)
from timesheet_kernel.logging_config import get_logger
from timesheet_kernel.models.approver import ApproverModel, ApproverRelationship
from timesheet_kernel.selectors.approver_selector import ApproverSelector
from timesheet_kernel.services.base import BaseService

logger = get_logger("services.approver_service")


class EndStrategy(str, Enum):
    """How sync retires a relationship the directory no longer implies."""

    END_DATE = "end_date"
    SOFT_DELETE = "soft_delete"


@dataclass(frozen=True)
class ApproverSyncResult:
    as_of: date
    added: tuple[tuple[str, str], ...]
    ended: tuple[tuple[str, str], ...]
    unchanged: int
    scheduled: tuple[tuple[str, str], ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.added or self.ended)


def _require_email(parameter: str, value: str | None) -> str:
    email = normalize_email(value)
    if not email:
        raise InvalidParameterError(parameter, "email is required")
    if not is_valid_email(email):
        raise InvalidParameterError(parameter, f"{email!r} is not a valid email")
    return email


class ApproverService(BaseService[ApproverModel]):
    """Maintains approver relationship rows."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        end_strategy: EndStrategy | str = EndStrategy.END_DATE,
    ) -> None:
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._end_strategy = EndStrategy(end_strategy)
        self._selector = ApproverSelector(session)

    # ------------------------------------------------------------------
    # Single relationship administration
    # ------------------------------------------------------------------

    def grant(
        self,
        target_email: str,
        approver_email: str,
        effective_from: date,
        effective_to: date | None = None,
        actor_id: UUID | None = None,
    ) -> ApproverRelationship:
        """Insert a relationship row. Existing rows for the pair are left alone."""
        target = _require_email("target_email", target_email)
        approver = _require_email("approver_email", approver_email)
        if target == approver:
            raise SelfApprovalError(target)
        if effective_from is None:
            raise InvalidParameterError("effective_from", "a start date is required")
        if effective_to is not None and effective_to < effective_from:
            raise InvalidEffectivePeriodError(effective_from, effective_to)

        model = ApproverModel(
            target_email=target,
            approver_email=approver,
            effective_from=effective_from,
            effective_to=effective_to,
            is_deleted=False,
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "approver_relationship_granted",
            extra={
                "relationship_id": str(model.id),
                "target_email": target,
                "approver_email": approver,
                "effective_from": effective_from,
                "effective_to": effective_to,
            },
        )
        return model.to_dto()

    def end(
        self,
        target_email: str,
        approver_email: str,
        effective_to: date,
        actor_id: UUID | None = None,
    ) -> list[ApproverRelationship]:
        """
        Close every live row of the pair that is still open on ``effective_to``.

        Rows that would end before they start are soft-deleted instead.
        """
        target = _require_email("target_email", target_email)
        approver = _require_email("approver_email", approver_email)
        rows = self._selector.find_live_models(target, approver, on_or_after=effective_to)
        if not rows:
            raise ApproverRelationshipNotFoundError(target, approver)

        for row in rows:
            self._close(row, effective_to, actor_id, soft_delete=False)
        self.session.flush()

        logger.info(
            "approver_relationship_ended",
            extra={
                "target_email": target,
                "approver_email": approver,
                "effective_to": effective_to,
                "rows": len(rows),
            },
        )
        return [row.to_dto() for row in rows]

    def revoke(
        self,
        target_email: str,
        approver_email: str,
        actor_id: UUID | None = None,
    ) -> int:
        """Soft-delete every live row of the pair. Returns the row count."""
        target = _require_email("target_email", target_email)
        approver = _require_email("approver_email", approver_email)
        rows = self._selector.find_live_models(target, approver)
        if not rows:
            raise ApproverRelationshipNotFoundError(target, approver)

        for row in rows:
            row.is_deleted = True
            row.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "approver_relationship_revoked",
            extra={"target_email": target, "approver_email": approver, "rows": len(rows)},
        )
        return len(rows)

    # ------------------------------------------------------------------
    # Directory reconciliation
    # ------------------------------------------------------------------

    def sync_from_directory(
        self,
        snapshot: Mapping[str, EmployeeRecord],
        actor_id: UUID | None = None,
    ) -> ApproverSyncResult:
        """
        Make the relationships valid today equal to the resolver's output.

        Pairs the resolver adds are granted from today with no end date.
        Pairs it no longer produces, including every pair of a target who
        left the snapshot, are retired with the configured EndStrategy.
        Relationships starting in the future are not touched, and a pair
        that already has one is reported as scheduled instead of granted.
        """
        today = self._clock.today()
        desired = resolve_approvers(snapshot)
        existing = self._selector.find_current_grouped_by_target(today)

        added: list[tuple[str, str]] = []
        ended: list[tuple[str, str]] = []
        scheduled: list[tuple[str, str]] = []
        unchanged = 0

        for target in sorted(set(desired) | set(existing)):
            want = desired.get(target, frozenset())
            have = existing.get(target, frozenset())
            unchanged += len(want & have)
            for approver in sorted(want - have):
                starts = self._next_start(target, approver, today)
                if starts is not None:
                    logger.info(
                        "approver_sync_pair_scheduled",
                        extra={
                            "target_email": target,
                            "approver_email": approver,
                            "effective_from": starts,
                        },
                    )
                    scheduled.append((target, approver))
                    continue
                self.grant(target, approver, today, actor_id=actor_id)
                added.append((target, approver))
            for approver in sorted(have - want):
                self._retire(target, approver, today, actor_id)
                ended.append((target, approver))

        self.session.flush()

        positions = Counter(record.position.value for record in snapshot.values())
        without_approver = sum(
            1 for email, approvers in desired.items()
            if not approvers and snapshot[email].position is not Position.GENERAL_MANAGER
        )
        logger.info(
            "approver_sync_completed",
            extra={
                "as_of": today,
                "employees": len(snapshot),
                "positions": dict(sorted(positions.items())),
                "without_approver": without_approver,
                "added": len(added),
                "ended": len(ended),
                "unchanged": unchanged,
                "scheduled": len(scheduled),
                "end_strategy": self._end_strategy.value,
            },
        )
        return ApproverSyncResult(
            as_of=today,
            added=tuple(added),
            ended=tuple(ended),
            unchanged=unchanged,
            scheduled=tuple(scheduled),
        )

    def _next_start(self, target: str, approver: str, today: date) -> date | None:
        """Start date of the pair's earliest live row beginning after today, if any."""
        for row in self._selector.find_live_models(target, approver, on_or_after=today):
            if row.effective_from > today:
                return row.effective_from
        return None

    def _retire(
        self, target: str, approver: str, today: date, actor_id: UUID | None,
    ) -> None:
        soft_delete = self._end_strategy is EndStrategy.SOFT_DELETE
        for row in self._selector.find_live_models(target, approver, on_or_after=today):
            if row.effective_from > today:
                continue
            self._close(row, today - timedelta(days=1), actor_id, soft_delete=soft_delete)

    @staticmethod
    def _close(
        row: ApproverModel, effective_to: date, actor_id: UUID | None, soft_delete: bool,
    ) -> None:
        row.updated_by_id = actor_id
        if soft_delete or effective_to < row.effective_from:
            row.is_deleted = True
        else:
            row.effective_to = effective_to
