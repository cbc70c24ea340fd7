"""
AuthorityValidator -- does one person hold approval authority over another?

Responsibility:
    Resolve the two opaque user ids to emails, then ask the relationship
    store whether a valid grant covers the date.

Architecture position:
    Kernel > Services.  Depends only on the IdentityResolver and
    ApproverRelationshipStore ports plus an injected Clock.

Invariants enforced:
    - Default deny: an id that cannot be resolved yields False, never an
      exception.
    - Both ends of the effective period are inclusive (store contract).
    - No side effects; safe to call repeatedly.

Failure modes:
    - ``require_authority_for_date`` raises NoApprovalAuthorityError.
    - Persistence errors from the store propagate unmodified.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from timesheet_kernel.domain.clock import Clock, SystemClock
from timesheet_kernel.domain.ports import ApproverRelationshipStore, IdentityResolver
from timesheet_kernel.exceptions import NoApprovalAuthorityError
from timesheet_kernel.logging_config import get_logger

logger = get_logger("services.authority_validator")


class AuthorityValidator:
    """
    Boolean authority check with a throwing companion.

    Contract:
        ``validate_authority_for_date(a, t, d)`` is True iff both ids
        resolve and the store has a non-deleted relationship with
        target=email(t), approver=email(a) and
        effective_from <= d <= effective_to (or open-ended).
    """

    def __init__(
        self,
        identity: IdentityResolver,
        store: ApproverRelationshipStore,
        clock: Clock | None = None,
    ):
        self._identity = identity
        self._store = store
        self._clock = clock or SystemClock()

    @classmethod
    def for_session(cls, session: Session, clock: Clock | None = None) -> AuthorityValidator:
        """Validator backed by the SQLAlchemy selectors on ``session``."""
        from timesheet_kernel.selectors.approver_selector import ApproverSelector
        from timesheet_kernel.selectors.user_selector import UserSelector

        return cls(UserSelector(session), ApproverSelector(session), clock)

    @property
    def identity(self) -> IdentityResolver:
        return self._identity

    @property
    def store(self) -> ApproverRelationshipStore:
        return self._store

    @property
    def clock(self) -> Clock:
        return self._clock

    def validate_authority(self, approver_id: UUID, target_id: UUID) -> bool:
        """Authority as of today."""
        return self.validate_authority_for_date(approver_id, target_id, self._clock.today())

    def validate_authority_for_date(
        self, approver_id: UUID, target_id: UUID, on_date: date,
    ) -> bool:
        approver_email = self._identity.resolve_email(approver_id) if approver_id else None
        target_email = self._identity.resolve_email(target_id) if target_id else None
        if approver_email is None or target_email is None:
            logger.info(
                "authority_identity_unresolved",
                extra={
                    "approver_id": str(approver_id),
                    "target_id": str(target_id),
                    "approver_resolved": approver_email is not None,
                    "target_resolved": target_email is not None,
                },
            )
            return False

        granted = self._store.is_valid_approver(target_email, approver_email, on_date)
        logger.debug(
            "authority_checked",
            extra={
                "approver_email": approver_email,
                "target_email": target_email,
                "on_date": on_date,
                "granted": granted,
            },
        )
        return granted

    def require_authority_for_date(
        self, approver_id: UUID, target_id: UUID, on_date: date,
    ) -> None:
        """
        Raises:
            NoApprovalAuthorityError: If ``validate_authority_for_date`` is False.
        """
        if not self.validate_authority_for_date(approver_id, target_id, on_date):
            raise NoApprovalAuthorityError(approver_id, target_id, on_date)

    def require_authority(self, approver_id: UUID, target_id: UUID) -> None:
        self.require_authority_for_date(approver_id, target_id, self._clock.today())
