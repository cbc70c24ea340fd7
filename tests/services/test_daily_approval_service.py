"""
Tests for DailyApprovalService single-day operations.

Covers:
- approve_daily / reject_daily on PENDING, APPROVED and REJECTED days
- Check order: input, authority (as of the work date), existence, version
- Optimistic versioning: expected_version and a concurrent writer
- submit_daily / withdraw_daily entry lifecycle
- Append-only history and structured log events
"""

from datetime import date, datetime
from uuid import uuid4

import pytest
from sqlalchemy import update

from timesheet_kernel.domain.approval import (
    ApprovalAction,
    ApprovalStatus,
    Approved,
    NotEntered,
    Pending,
    Rejected,
)
from timesheet_kernel.exceptions import (
    InvalidApprovalTransitionError,
    InvalidParameterError,
    MissingRejectionReasonError,
    NoApprovalAuthorityError,
    OptimisticLockError,
    WorkRecordApprovalNotFoundError,
)
from timesheet_kernel.models.work_record_approval import WorkRecordApprovalModel
from timesheet_kernel.selectors.approval_selector import WorkRecordApprovalSelector

DAY = date(2024, 1, 10)


def bump_version(session, user_id, work_date):
    """Simulate another transaction updating the row behind the ORM's back."""
    session.connection().execute(
        update(WorkRecordApprovalModel.__table__)
        .where(WorkRecordApprovalModel.__table__.c.user_id == str(user_id))
        .where(WorkRecordApprovalModel.__table__.c.work_date == work_date)
        .values(version=WorkRecordApprovalModel.__table__.c.version + 1)
    )


# ---------------------------------------------------------------------------
# Approve / reject
# ---------------------------------------------------------------------------


class TestApproveDaily:

    def test_approve_pending_day(self, daily_service, team, pending_day):
        dev, mgr = team["dev1"], team["manager"]
        pending_day(dev.id, DAY)

        result = daily_service.approve_daily(dev.id, DAY, mgr.id)

        assert result.status is ApprovalStatus.APPROVED
        assert result.state == Approved(approver_id=mgr.id, decided_at=result.state.decided_at)
        assert result.version == 2
        assert isinstance(daily_service.get_state(dev.id, DAY), Approved)

    def test_reapprove_is_invalid_transition(self, daily_service, team, pending_day):
        dev, mgr = team["dev1"], team["manager"]
        pending_day(dev.id, DAY)
        daily_service.approve_daily(dev.id, DAY, mgr.id)

        with pytest.raises(InvalidApprovalTransitionError) as exc_info:
            daily_service.approve_daily(dev.id, DAY, mgr.id)
        assert exc_info.value.from_status == "approved"

    def test_approve_then_reject_keeps_reason(self, daily_service, team, pending_day):
        dev, mgr = team["dev1"], team["manager"]
        pending_day(dev.id, DAY)
        daily_service.approve_daily(dev.id, DAY, mgr.id)

        result = daily_service.reject_daily(dev.id, DAY, mgr.id, "hours exceed plan")

        assert result.status is ApprovalStatus.REJECTED
        state = daily_service.get_state(dev.id, DAY)
        assert isinstance(state, Rejected)
        assert state.reason == "hours exceed plan"
        assert state.approver_id == mgr.id

    def test_reject_then_approve_clears_reason(self, daily_service, team, pending_day, session):
        dev, mgr = team["dev1"], team["manager"]
        pending_day(dev.id, DAY)
        daily_service.reject_daily(dev.id, DAY, mgr.id, "missing project")
        daily_service.approve_daily(dev.id, DAY, mgr.id)

        row = WorkRecordApprovalSelector(session).find_by_user_and_date(dev.id, DAY)
        assert row.status == "approved"
        assert row.rejection_reason is None

    def test_not_entered_day_is_not_found(self, daily_service, team):
        with pytest.raises(WorkRecordApprovalNotFoundError) as exc_info:
            daily_service.approve_daily(team["dev1"].id, DAY, team["manager"].id)
        assert exc_info.value.code == "APPROVAL_NOT_FOUND"

    def test_outsider_has_no_authority(self, daily_service, team, pending_day):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        with pytest.raises(NoApprovalAuthorityError):
            daily_service.approve_daily(dev.id, DAY, team["outsider"].id)
        assert isinstance(daily_service.get_state(dev.id, DAY), Pending)

    def test_authority_checked_before_existence(self, daily_service, team):
        """An outsider learns nothing about whether the day exists."""
        with pytest.raises(NoApprovalAuthorityError):
            daily_service.approve_daily(team["dev1"].id, DAY, team["outsider"].id)

    def test_authority_is_evaluated_on_work_date(self, daily_service, team, pending_day):
        """The grant starts 2024-01-01; a December day is outside it."""
        dev = team["dev1"]
        december = date(2023, 12, 29)
        pending_day(dev.id, december)
        with pytest.raises(NoApprovalAuthorityError) as exc_info:
            daily_service.approve_daily(dev.id, december, team["manager"].id)
        assert exc_info.value.on_date == december

    def test_unknown_approver_has_no_authority(self, daily_service, team, pending_day):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        with pytest.raises(NoApprovalAuthorityError):
            daily_service.approve_daily(dev.id, DAY, uuid4())

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_reject_requires_reason(self, daily_service, team, pending_day, reason):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        with pytest.raises(MissingRejectionReasonError):
            daily_service.reject_daily(dev.id, DAY, team["manager"].id, reason)
        assert isinstance(daily_service.get_state(dev.id, DAY), Pending)

    def test_missing_inputs(self, daily_service, team):
        with pytest.raises(InvalidParameterError):
            daily_service.approve_daily(None, DAY, team["manager"].id)
        with pytest.raises(InvalidParameterError):
            daily_service.approve_daily(team["dev1"].id, None, team["manager"].id)
        with pytest.raises(InvalidParameterError):
            daily_service.approve_daily(team["dev1"].id, datetime(2024, 1, 10, 12), team["manager"].id)
        with pytest.raises(InvalidParameterError):
            daily_service.approve_daily(team["dev1"].id, DAY, None)


# ---------------------------------------------------------------------------
# Optimistic versioning
# ---------------------------------------------------------------------------


class TestOptimisticVersioning:

    def test_expected_version_match(self, daily_service, team, pending_day):
        dev = team["dev1"]
        submitted = pending_day(dev.id, DAY)
        result = daily_service.approve_daily(
            dev.id, DAY, team["manager"].id, expected_version=submitted.version,
        )
        assert result.version == submitted.version + 1

    def test_expected_version_mismatch(self, daily_service, team, pending_day):
        dev = team["dev1"]
        submitted = pending_day(dev.id, DAY)
        with pytest.raises(OptimisticLockError) as exc_info:
            daily_service.approve_daily(
                dev.id, DAY, team["manager"].id, expected_version=submitted.version + 5,
            )
        assert exc_info.value.code == "OPTIMISTIC_LOCK_CONFLICT"
        assert isinstance(daily_service.get_state(dev.id, DAY), Pending)

    def test_concurrent_writer_detected_on_flush(self, daily_service, team, pending_day, session):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        bump_version(session, dev.id, DAY)

        with pytest.raises(OptimisticLockError) as exc_info:
            daily_service.approve_daily(dev.id, DAY, team["manager"].id)
        assert exc_info.value.entity_type == "WorkRecordApproval"
        assert exc_info.value.entity_id == f"{dev.id}:2024-01-10"


# ---------------------------------------------------------------------------
# Submit / withdraw
# ---------------------------------------------------------------------------


class TestEntryLifecycle:

    def test_submit_creates_pending_row(self, daily_service, team):
        dev = team["dev1"]
        result = daily_service.submit_daily(dev.id, DAY, actor_id=dev.id)
        assert result.status is ApprovalStatus.PENDING
        assert result.version == 1

    def test_submit_twice_is_idempotent(self, daily_service, team):
        dev = team["dev1"]
        first = daily_service.submit_daily(dev.id, DAY)
        second = daily_service.submit_daily(dev.id, DAY)
        assert second.version == first.version
        assert len(daily_service.get_history(dev.id, DAY)) == 1

    def test_resubmit_after_rejection(self, daily_service, team, pending_day):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        daily_service.reject_daily(dev.id, DAY, team["manager"].id, "split by project")
        result = daily_service.submit_daily(dev.id, DAY, actor_id=dev.id)
        assert result.status is ApprovalStatus.PENDING

    def test_approved_day_cannot_be_resubmitted(self, daily_service, team, pending_day):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        daily_service.approve_daily(dev.id, DAY, team["manager"].id)
        with pytest.raises(InvalidApprovalTransitionError):
            daily_service.submit_daily(dev.id, DAY)

    def test_withdraw_returns_to_not_entered(self, daily_service, team, pending_day):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        result = daily_service.withdraw_daily(dev.id, DAY, actor_id=dev.id)
        assert result.state == NotEntered()
        assert result.version is None
        assert daily_service.get_state(dev.id, DAY) == NotEntered()

    def test_withdraw_without_row_is_noop(self, daily_service, team):
        result = daily_service.withdraw_daily(team["dev1"].id, DAY)
        assert result.status is ApprovalStatus.NOT_ENTERED
        assert daily_service.get_history(team["dev1"].id, DAY) == []

    def test_withdraw_approved_rejected(self, daily_service, team, pending_day):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        daily_service.approve_daily(dev.id, DAY, team["manager"].id)
        with pytest.raises(InvalidApprovalTransitionError):
            daily_service.withdraw_daily(dev.id, DAY)

    def test_withdraw_then_submit_again(self, daily_service, team, pending_day):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        daily_service.withdraw_daily(dev.id, DAY)
        result = daily_service.submit_daily(dev.id, DAY)
        assert result.status is ApprovalStatus.PENDING
        assert len(daily_service.get_history(dev.id, DAY)) == 3


# ---------------------------------------------------------------------------
# History and logging
# ---------------------------------------------------------------------------


class TestHistoryAndLogs:

    def test_history_records_each_change_in_order(self, daily_service, team, pending_day):
        dev, mgr = team["dev1"], team["manager"]
        pending_day(dev.id, DAY)
        daily_service.approve_daily(dev.id, DAY, mgr.id)
        daily_service.reject_daily(dev.id, DAY, mgr.id, "wrong cost center")

        history = daily_service.get_history(dev.id, DAY)
        assert [(h.action, h.previous_status, h.new_status) for h in history] == [
            (ApprovalAction.SUBMIT, ApprovalStatus.NOT_ENTERED, ApprovalStatus.PENDING),
            (ApprovalAction.APPROVE, ApprovalStatus.PENDING, ApprovalStatus.APPROVED),
            (ApprovalAction.REJECT, ApprovalStatus.APPROVED, ApprovalStatus.REJECTED),
        ]
        assert history[1].actor_id == mgr.id
        assert history[2].rejection_reason == "wrong cost center"

    def test_refused_decision_writes_no_history(self, daily_service, team, pending_day):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        with pytest.raises(NoApprovalAuthorityError):
            daily_service.approve_daily(dev.id, DAY, team["outsider"].id)
        assert len(daily_service.get_history(dev.id, DAY)) == 1

    def test_decision_logged(self, daily_service, team, pending_day, captured_logs):
        dev = team["dev1"]
        pending_day(dev.id, DAY)
        daily_service.approve_daily(dev.id, DAY, team["manager"].id)

        recorded = [r for r in captured_logs() if r["message"] == "daily_approval_recorded"]
        assert recorded[-1]["action"] == "approve"
        assert recorded[-1]["from_status"] == "pending"
        assert recorded[-1]["to_status"] == "approved"
        assert recorded[-1]["work_date"] == "2024-01-10"

    def test_refusal_logged_with_code(self, daily_service, team, captured_logs):
        with pytest.raises(WorkRecordApprovalNotFoundError):
            daily_service.approve_daily(team["dev1"].id, DAY, team["manager"].id)
        [refused] = [r for r in captured_logs() if r["message"] == "daily_decision_refused"]
        assert refused["error_code"] == "APPROVAL_NOT_FOUND"
        assert refused["level"] == "WARNING"
