"""
timesheet_kernel.services.daily_approval_service -- Daily approval workflow.

Responsibility:
    Approve and reject one user's day, singly or in batches; move days in
    and out of PENDING as entries appear or disappear; report pending work
    for an approver with hour totals.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/, db/.
    Authority comes from AuthorityValidator; hours come from a
    WorkRecordReader.

Invariants enforced:
    - Check order for a decision: input validation, authority as of the
      work date, row existence, expected version, transition table.  Nothing
      is written unless every check passes.
    - Every state change appends exactly one history row.
    - Batch: one outcome per input pair, in input order.  Each pair is
      evaluated without raising and written inside its own SAVEPOINT, so a
      failed pair never undoes or blocks another.
    - Optimistic versioning: a concurrent writer on the same (user, date)
      surfaces as OptimisticLockError (CONCURRENT_MODIFICATION in batches).

Failure modes:
    - InvalidParameterError / MissingRejectionReasonError on bad input.
    - NoApprovalAuthorityError when the approver has no valid grant.
    - WorkRecordApprovalNotFoundError for a NOT_ENTERED day.
    - InvalidApprovalTransitionError for a disallowed status change.
    - OptimisticLockError on version mismatch.
    - SQLAlchemy errors propagate unmodified (batch included).
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from timesheet_kernel.domain.approval import (
    ACTION_TARGETS,
    AggregatedApproval,
    ApprovalAction,
    ApprovalState,
    ApprovalStatus,
    BatchFailureReason,
    BatchItemOutcome,
    BatchSummary,
    DailyApprovalResult,
    NotEntered,
    Pending,
    WorkDayKey,
    WorkRecordInfo,
    aggregate_work_records,
    can_transition,
    next_state,
)
from timesheet_kernel.domain.clock import Clock
from timesheet_kernel.domain.ports import WorkRecordReader
from timesheet_kernel.exceptions import (
    InvalidApprovalTransitionError,
    InvalidParameterError,
    MissingRejectionReasonError,
    NoApprovalAuthorityError,
    OptimisticLockError,
    TimesheetKernelError,
    WorkRecordApprovalNotFoundError,
)
from timesheet_kernel.logging_config import LogContext, get_logger
from timesheet_kernel.models.work_record_approval import (
    WorkRecordApprovalHistoryModel,
    WorkRecordApprovalModel,
)
from timesheet_kernel.selectors.approval_selector import (
    ApprovalHistoryEntry,
    WorkRecordApprovalSelector,
)
from timesheet_kernel.selectors.work_record_selector import WorkRecordSelector
from timesheet_kernel.services.authority_validator import AuthorityValidator
from timesheet_kernel.services.base import BaseService

logger = get_logger("services.daily_approval")

_FAILURE_REASONS: tuple[tuple[type[TimesheetKernelError], BatchFailureReason], ...] = (
    (NoApprovalAuthorityError, BatchFailureReason.NO_AUTHORITY),
    (WorkRecordApprovalNotFoundError, BatchFailureReason.NOT_FOUND),
    (InvalidApprovalTransitionError, BatchFailureReason.INVALID_TRANSITION),
    (OptimisticLockError, BatchFailureReason.CONCURRENT_MODIFICATION),
    (InvalidParameterError, BatchFailureReason.INVALID_INPUT),
)


def failure_reason_for(error: TimesheetKernelError) -> BatchFailureReason:
    for error_type, reason in _FAILURE_REASONS:
        if isinstance(error, error_type):
            return reason
    return BatchFailureReason.INVALID_INPUT


@dataclass(frozen=True)
class _Plan:
    """A checked, not yet written, state change for one day."""

    key: WorkDayKey
    action: ApprovalAction
    row: WorkRecordApprovalModel | None
    current: ApprovalState
    target: ApprovalState


def _entity_id(user_id: UUID, work_date: date) -> str:
    return f"{user_id}:{work_date.isoformat()}"


class DailyApprovalService(BaseService[WorkRecordApprovalModel]):
    """Approval workflow over (user, date) approval rows."""

    def __init__(
        self,
        session: Session,
        validator: AuthorityValidator,
        clock: Clock | None = None,
        work_records: WorkRecordReader | None = None,
    ) -> None:
        super().__init__(session)
        self._validator = validator
        self._clock = clock or validator.clock
        self._approvals = WorkRecordApprovalSelector(session)
        self._work_records = work_records or WorkRecordSelector(session)

    # ------------------------------------------------------------------
    # Single decisions
    # ------------------------------------------------------------------

    def approve_daily(
        self,
        target_user_id: UUID,
        work_date: date,
        approver_id: UUID,
        expected_version: int | None = None,
    ) -> DailyApprovalResult:
        """
        Approve one day.

        Raises:
            InvalidParameterError, NoApprovalAuthorityError,
            WorkRecordApprovalNotFoundError, OptimisticLockError,
            InvalidApprovalTransitionError.
        """
        return self._decide_or_raise(
            ApprovalAction.APPROVE, target_user_id, work_date, approver_id,
            reason=None, expected_version=expected_version,
        )

    def reject_daily(
        self,
        target_user_id: UUID,
        work_date: date,
        approver_id: UUID,
        reason: str,
        expected_version: int | None = None,
    ) -> DailyApprovalResult:
        """
        Reject one day with a reason.

        Raises:
            MissingRejectionReasonError if ``reason`` is blank, otherwise as
            ``approve_daily``.
        """
        return self._decide_or_raise(
            ApprovalAction.REJECT, target_user_id, work_date, approver_id,
            reason=reason, expected_version=expected_version,
        )

    def _decide_or_raise(
        self,
        action: ApprovalAction,
        target_user_id: UUID,
        work_date: date,
        approver_id: UUID,
        reason: str | None,
        expected_version: int | None,
    ) -> DailyApprovalResult:
        plan = self._evaluate(
            action, target_user_id, work_date, approver_id, reason, expected_version,
        )
        if isinstance(plan, TimesheetKernelError):
            logger.warning(
                "daily_decision_refused",
                extra={
                    "action": action.value,
                    "target_user_id": str(target_user_id),
                    "work_date": work_date,
                    "approver_id": str(approver_id),
                    "error_code": plan.code,
                },
            )
            raise plan
        return self._write(plan, approver_id)

    # ------------------------------------------------------------------
    # Batch decisions
    # ------------------------------------------------------------------

    def approve_batch(
        self,
        pairs: Iterable[WorkDayKey | tuple[UUID, date]],
        approver_id: UUID,
    ) -> list[BatchItemOutcome]:
        """Approve each (user, date) pair independently. Never raises per pair."""
        return self._run_batch(ApprovalAction.APPROVE, pairs, approver_id, reason=None)

    def reject_batch(
        self,
        reason: str,
        pairs: Iterable[WorkDayKey | tuple[UUID, date]],
        approver_id: UUID,
    ) -> list[BatchItemOutcome]:
        """
        Reject each (user, date) pair independently with one shared reason.

        A blank reason or missing approver fails the whole call up front,
        since it applies to every pair.
        """
        if not reason or not reason.strip():
            raise MissingRejectionReasonError()
        return self._run_batch(ApprovalAction.REJECT, pairs, approver_id, reason=reason)

    def _run_batch(
        self,
        action: ApprovalAction,
        pairs: Iterable[WorkDayKey | tuple[UUID, date]] | None,
        approver_id: UUID,
        reason: str | None,
    ) -> list[BatchItemOutcome]:
        if approver_id is None:
            raise InvalidParameterError("approver_id", "an approver is required")
        if pairs is None:
            raise InvalidParameterError("pairs", "a list of (user, date) pairs is required")

        batch_id = uuid4()
        with LogContext.bind(batch_id=str(batch_id), actor_id=str(approver_id)):
            logger.info("approval_batch_started", extra={"action": action.value})
            outcomes = [
                self._run_batch_item(index, pair, action, approver_id, reason)
                for index, pair in enumerate(pairs)
            ]
            summary = BatchSummary.of(outcomes)
            logger.info(
                "approval_batch_completed",
                extra={
                    "action": action.value,
                    "total": summary.total,
                    "succeeded": summary.succeeded,
                    "failed": summary.failed,
                    "failures_by_reason": summary.failures_by_reason,
                },
            )
        return outcomes

    def _run_batch_item(
        self,
        index: int,
        pair: object,
        action: ApprovalAction,
        approver_id: UUID,
        reason: str | None,
    ) -> BatchItemOutcome:
        key = _coerce_pair(pair)
        if isinstance(key, TimesheetKernelError):
            return self._failed(index, None, None, key)

        plan = self._evaluate(action, key.user_id, key.work_date, approver_id, reason, None)
        if isinstance(plan, TimesheetKernelError):
            return self._failed(index, key.user_id, key.work_date, plan)

        savepoint = self.session.begin_nested()
        try:
            result = self._write(plan, approver_id)
            savepoint.commit()
        except OptimisticLockError as exc:
            savepoint.rollback()
            return self._failed(index, key.user_id, key.work_date, exc)
        except SQLAlchemyError:
            savepoint.rollback()
            raise
        return BatchItemOutcome.success(index, key.user_id, key.work_date, result.status)

    @staticmethod
    def _failed(
        index: int,
        user_id: UUID | None,
        work_date: date | None,
        error: TimesheetKernelError,
    ) -> BatchItemOutcome:
        failure = failure_reason_for(error)
        logger.info(
            "approval_batch_item_failed",
            extra={
                "item_index": index,
                "target_user_id": str(user_id) if user_id else None,
                "work_date": work_date,
                "failure": failure.value,
                "error_code": error.code,
            },
        )
        return BatchItemOutcome.failed(
            index, user_id, work_date, failure, error.code, str(error),
        )

    # ------------------------------------------------------------------
    # Entry lifecycle (submit / withdraw)
    # ------------------------------------------------------------------

    def submit_daily(
        self, user_id: UUID, work_date: date, actor_id: UUID | None = None,
    ) -> DailyApprovalResult:
        """
        Mark a day as waiting for approval.

        NOT_ENTERED creates the row; REJECTED is resubmitted; PENDING is
        returned unchanged.  APPROVED days are locked.

        Raises:
            InvalidParameterError, InvalidApprovalTransitionError.
        """
        _require_key(user_id, work_date)
        row = self._approvals.find_by_user_and_date(user_id, work_date)
        current = row.to_state() if row is not None else NotEntered()
        if isinstance(current, Pending):
            return DailyApprovalResult(user_id, work_date, current, row.version)
        if not can_transition(current.status, ApprovalStatus.PENDING):
            raise InvalidApprovalTransitionError(
                current.status.value, ApprovalStatus.PENDING.value,
            )
        plan = _Plan(
            key=WorkDayKey(user_id, work_date),
            action=ApprovalAction.SUBMIT,
            row=row,
            current=current,
            target=next_state(current, ApprovalAction.SUBMIT, at=self._clock.now()),
        )
        return self._write(plan, actor_id)

    def withdraw_daily(
        self, user_id: UUID, work_date: date, actor_id: UUID | None = None,
    ) -> DailyApprovalResult:
        """
        Return a PENDING or REJECTED day to NOT_ENTERED (its entries were removed).

        Withdrawing a day that has no row is a no-op.

        Raises:
            InvalidParameterError, InvalidApprovalTransitionError.
        """
        _require_key(user_id, work_date)
        row = self._approvals.find_by_user_and_date(user_id, work_date)
        if row is None:
            return DailyApprovalResult(user_id, work_date, NotEntered(), None)
        current = row.to_state()
        if not can_transition(current.status, ApprovalStatus.NOT_ENTERED):
            raise InvalidApprovalTransitionError(
                current.status.value, ApprovalStatus.NOT_ENTERED.value,
            )
        plan = _Plan(
            key=WorkDayKey(user_id, work_date),
            action=ApprovalAction.WITHDRAW,
            row=row,
            current=current,
            target=NotEntered(),
        )
        return self._write(plan, actor_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_state(self, user_id: UUID, work_date: date) -> ApprovalState:
        return self._approvals.get_state(user_id, work_date)

    def get_history(self, user_id: UUID, work_date: date) -> list[ApprovalHistoryEntry]:
        return self._approvals.get_history(user_id, work_date)

    def get_pending_aggregated_approvals(self, approver_id: UUID) -> list[AggregatedApproval]:
        """
        Pending days of everyone the approver may approve today, with hours.

        Sorted by work date (newest first), then by the target's email.
        An approver id that does not resolve yields an empty list.
        """
        identity = self._validator.identity
        approver_email = identity.resolve_email(approver_id) if approver_id else None
        if approver_email is None:
            logger.info(
                "pending_approvals_approver_unresolved",
                extra={"approver_id": str(approver_id)},
            )
            return []

        today = self._clock.today()
        emails_by_id: dict[UUID, str] = {}
        for target_email in self._validator.store.find_targets(approver_email, today):
            target_id = identity.resolve_id(target_email)
            if target_id is not None:
                emails_by_id[target_id] = target_email

        rows = self._approvals.find_by_users_and_statuses(
            list(emails_by_id), [ApprovalStatus.PENDING],
        )
        days_by_user: dict[UUID, list[WorkRecordApprovalModel]] = defaultdict(list)
        for row in rows:
            days_by_user[row.user_id].append(row)

        aggregated: list[AggregatedApproval] = []
        for user_id, user_rows in days_by_user.items():
            records_by_date = self._records_by_date(user_id, user_rows)
            for row in user_rows:
                total, by_category, projects = aggregate_work_records(
                    records_by_date.get(row.work_date, [])
                )
                aggregated.append(
                    AggregatedApproval(
                        user_id=user_id,
                        user_email=emails_by_id[user_id],
                        work_date=row.work_date,
                        status=row.status_enum,
                        total_hours=total,
                        project_count=len(projects),
                        category_hours=by_category,
                        projects=projects,
                        version=row.version,
                    )
                )

        aggregated.sort(key=lambda item: item.user_email)
        aggregated.sort(key=lambda item: item.work_date, reverse=True)

        logger.info(
            "pending_approvals_aggregated",
            extra={
                "approver_email": approver_email,
                "targets": len(emails_by_id),
                "pending_days": len(aggregated),
            },
        )
        return aggregated

    def _records_by_date(
        self, user_id: UUID, rows: Sequence[WorkRecordApprovalModel],
    ) -> dict[date, list[WorkRecordInfo]]:
        start = min(row.work_date for row in rows)
        end = max(row.work_date for row in rows)
        by_date: dict[date, list[WorkRecordInfo]] = defaultdict(list)
        for record in self._work_records.find_by_user_and_date_range(user_id, start, end):
            by_date[record.work_date].append(record)
        return by_date

    # ------------------------------------------------------------------
    # Evaluation and write
    # ------------------------------------------------------------------

    def _evaluate(
        self,
        action: ApprovalAction,
        target_user_id: UUID,
        work_date: date,
        approver_id: UUID,
        reason: str | None,
        expected_version: int | None,
    ) -> _Plan | TimesheetKernelError:
        """Run every check for a decision and return a plan or the error, without raising."""
        if target_user_id is None:
            return InvalidParameterError("target_user_id", "a target user is required")
        if not isinstance(work_date, date) or isinstance(work_date, datetime):
            return InvalidParameterError("work_date", "a calendar date is required")
        if approver_id is None:
            return InvalidParameterError("approver_id", "an approver is required")
        if action is ApprovalAction.REJECT and (not reason or not reason.strip()):
            return MissingRejectionReasonError()

        if not self._validator.validate_authority_for_date(approver_id, target_user_id, work_date):
            return NoApprovalAuthorityError(approver_id, target_user_id, work_date)

        row = self._approvals.find_by_user_and_date(target_user_id, work_date)
        if row is None:
            return WorkRecordApprovalNotFoundError(target_user_id, work_date)
        if expected_version is not None and row.version != expected_version:
            return OptimisticLockError(
                "WorkRecordApproval", _entity_id(target_user_id, work_date),
            )

        # A stored row can still fail state construction (rejected with no reason).
        try:
            current = row.to_state()
            target_status = ACTION_TARGETS[action]
            if not can_transition(current.status, target_status):
                return InvalidApprovalTransitionError(current.status.value, target_status.value)
            target = next_state(
                current, action, actor_id=approver_id, reason=reason, at=self._clock.now(),
            )
        except TimesheetKernelError as exc:
            return exc

        return _Plan(
            key=WorkDayKey(target_user_id, work_date),
            action=action,
            row=row,
            current=current,
            target=target,
        )

    def _write(self, plan: _Plan, actor_id: UUID | None) -> DailyApprovalResult:
        key = plan.key
        row = plan.row
        try:
            if isinstance(plan.target, NotEntered):
                self.session.delete(row)
                row = None
            else:
                if row is None:
                    row = WorkRecordApprovalModel(
                        user_id=key.user_id,
                        work_date=key.work_date,
                        created_by_id=actor_id,
                    )
                    self.session.add(row)
                row.apply_state(plan.target, actor_id)
            self._append_history(plan, actor_id)
            self.session.flush()
        except StaleDataError as exc:
            raise OptimisticLockError(
                "WorkRecordApproval", _entity_id(key.user_id, key.work_date),
            ) from exc

        logger.info(
            "daily_approval_recorded",
            extra={
                "action": plan.action.value,
                "target_user_id": str(key.user_id),
                "work_date": key.work_date,
                "actor_id": str(actor_id) if actor_id else None,
                "from_status": plan.current.status.value,
                "to_status": plan.target.status.value,
            },
        )
        return DailyApprovalResult(
            user_id=key.user_id,
            work_date=key.work_date,
            state=plan.target,
            version=row.version if row is not None else None,
        )

    def _append_history(self, plan: _Plan, actor_id: UUID | None) -> None:
        key = plan.key
        target = plan.target
        self.session.add(
            WorkRecordApprovalHistoryModel(
                user_id=key.user_id,
                work_date=key.work_date,
                action=plan.action.value,
                previous_status=plan.current.status.value,
                new_status=target.status.value,
                actor_id=actor_id,
                rejection_reason=getattr(target, "reason", None),
                occurred_at=self._clock.now(),
                sequence=self._approvals.count_history(key.user_id, key.work_date) + 1,
            )
        )


def _require_key(user_id: UUID, work_date: date) -> None:
    if user_id is None:
        raise InvalidParameterError("user_id", "a user is required")
    if not isinstance(work_date, date) or isinstance(work_date, datetime):
        raise InvalidParameterError("work_date", "a calendar date is required")


def _coerce_pair(pair: object) -> WorkDayKey | InvalidParameterError:
    if isinstance(pair, WorkDayKey):
        return pair
    if isinstance(pair, (tuple, list)) and len(pair) == 2:
        user_id, work_date = pair
        if user_id is None:
            return InvalidParameterError("target_user_id", "a target user is required")
        if not isinstance(work_date, date) or isinstance(work_date, datetime):
            return InvalidParameterError("work_date", "a calendar date is required")
        return WorkDayKey(user_id, work_date)
    return InvalidParameterError("pairs", f"expected a (user, date) pair, got {pair!r}")
