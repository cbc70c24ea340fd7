"""
Pytest fixtures for the timesheet kernel test suite.

Provides:
- An isolated in-memory SQLite database per test (SAVEPOINT-enabled)
- A DeterministicClock pinned to 2024-01-15 09:00 UTC
- Factories for users, approver relationships, pending days and work records
- Structured log capture
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from timesheet_kernel.db.engine import build_engine, create_tables
from timesheet_kernel.domain.clock import DeterministicClock
from timesheet_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from timesheet_kernel.models.user import UserModel
from timesheet_kernel.models.work_record import WorkRecordModel
from timesheet_kernel.services.approver_service import ApproverService
from timesheet_kernel.services.authority_validator import AuthorityValidator
from timesheet_kernel.services.daily_approval_service import DailyApprovalService

TODAY = date(2024, 1, 15)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session", autouse=True)
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture timesheet_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, daily_service):
            daily_service.approve_daily(...)
            logs = captured_logs()
            assert any(r["message"] == "daily_approval_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("timesheet_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    session = Session(bind=engine, expire_on_commit=False)
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture
def approver_service(session, clock) -> ApproverService:
    return ApproverService(session, clock=clock)


@pytest.fixture
def validator(session, clock) -> AuthorityValidator:
    return AuthorityValidator.for_session(session, clock)


@pytest.fixture
def daily_service(session, validator) -> DailyApprovalService:
    return DailyApprovalService(session, validator)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def create_user(session):
    """Insert a user row and return it."""

    def _create(email: str, display_name: str | None = None) -> UserModel:
        user = UserModel(
            email=email,
            display_name=display_name or email.split("@")[0],
            is_active=True,
        )
        session.add(user)
        session.flush()
        return user

    return _create


@pytest.fixture
def grant(approver_service):
    """Grant ``approver`` authority over ``target`` (emails)."""

    def _grant(target: str, approver: str, effective_from=date(2024, 1, 1), effective_to=None):
        return approver_service.grant(target, approver, effective_from, effective_to)

    return _grant


@pytest.fixture
def pending_day(daily_service):
    """Put a (user, date) into PENDING through the workflow."""

    def _pending(user_id, work_date):
        return daily_service.submit_daily(user_id, work_date, actor_id=user_id)

    return _pending


@pytest.fixture
def create_work_record(session):
    """Insert an hour entry for (user, project, date)."""

    def _create(user_id, work_date, hours: dict[str, str], project_id=None):
        record = WorkRecordModel(
            user_id=user_id,
            project_id=project_id or uuid4(),
            work_date=work_date,
            category_hours={category: str(Decimal(value)) for category, value in hours.items()},
            created_by_id=user_id,
        )
        session.add(record)
        session.flush()
        return record

    return _create


@pytest.fixture
def team(create_user, grant):
    """
    A manager with authority over two developers from 2024-01-01, unbounded,
    plus an outsider with no relationships.
    """
    manager = create_user("mgr@x.com", "Manager")
    dev1 = create_user("dev1@x.com", "Developer One")
    dev2 = create_user("dev2@x.com", "Developer Two")
    outsider = create_user("outsider@x.com", "Outsider")
    grant(dev1.email, manager.email)
    grant(dev2.email, manager.email)
    return {"manager": manager, "dev1": dev1, "dev2": dev2, "outsider": outsider}
