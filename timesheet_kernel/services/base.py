"""
BaseService -- abstract base for kernel services that write.

Responsibility:
    Common constructor and session-handling contract.  Services receive a
    SQLAlchemy ``Session`` and persist via ``session.flush()``; they never
    call ``session.commit()`` or ``session.rollback()`` on the outer
    transaction.  The caller (``session_scope()`` or a test fixture) owns
    commit/rollback.  Per-item isolation inside a batch uses SAVEPOINTs
    (``session.begin_nested()``), which the service does manage.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from timesheet_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Abstract base class for all kernel services."""

    def __init__(self, session: Session):
        self.session = session
