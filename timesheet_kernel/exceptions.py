"""
Typed exception hierarchy for the timesheet kernel.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable, API-safe) and carries its context as
attributes rather than only inside the message string.

    TimesheetKernelError (base)
    |
    +-- InvalidParameterError
    |   +-- InvalidPositionError
    |   +-- InvalidEmployeeRecordError
    |   +-- MissingRejectionReasonError
    |   +-- InvalidEffectivePeriodError
    |   +-- SelfApprovalError
    |
    +-- AuthorityError
    |   +-- NoApprovalAuthorityError
    |
    +-- ApprovalError
    |   +-- WorkRecordApprovalNotFoundError
    |   +-- InvalidApprovalTransitionError
    |
    +-- ApproverRelationshipError
    |   +-- ApproverRelationshipNotFoundError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- DirectoryImportError
        +-- DirectoryFileError
        +-- ErrorRateExceededError

Handling pattern:

    try:
        service.approve_daily(user_id, work_date, approver_id)
    except NoApprovalAuthorityError as e:
        return {"error": e.code, "approver": e.approver_id, "target": e.target_id}
    except ApprovalError as e:
        log.warning("approval_failed", extra={"code": e.code})

Persistence failures (SQLAlchemy errors) are not wrapped here; they
propagate unmodified to the transaction owner.
"""

from datetime import date
from typing import Any


class TimesheetKernelError(Exception):
    """
    Base exception for all timesheet kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "TIMESHEET_KERNEL_ERROR"


# Parameter validation exceptions


class InvalidParameterError(TimesheetKernelError):
    """An argument failed validation before any state was touched."""

    code: str = "INVALID_PARAMETER"

    def __init__(self, parameter: str, reason: str):
        self.parameter = parameter
        self.reason = reason
        super().__init__(f"Invalid parameter '{parameter}': {reason}")


class InvalidPositionError(InvalidParameterError):
    """Position string is not one of the five known tiers."""

    code: str = "INVALID_POSITION"

    def __init__(self, value: Any):
        self.value = value
        super().__init__("position", f"unknown position {value!r}")


class InvalidEmployeeRecordError(InvalidParameterError):
    """Directory record violates a structural rule (email, name, org levels)."""

    code: str = "INVALID_EMPLOYEE_RECORD"

    def __init__(self, email: str | None, reason: str):
        self.email = email
        super().__init__("employee_record", f"{email or '<no email>'}: {reason}")


class MissingRejectionReasonError(InvalidParameterError):
    """Reject was requested with an empty or blank reason."""

    code: str = "MISSING_REJECTION_REASON"

    def __init__(self):
        super().__init__("reason", "a rejection reason is required")


class InvalidEffectivePeriodError(InvalidParameterError):
    """Relationship end date precedes its start date."""

    code: str = "INVALID_EFFECTIVE_PERIOD"

    def __init__(self, effective_from: date, effective_to: date):
        self.effective_from = effective_from
        self.effective_to = effective_to
        super().__init__(
            "effective_to",
            f"{effective_to} is before effective_from {effective_from}",
        )


class SelfApprovalError(InvalidParameterError):
    """A person cannot be registered as their own approver."""

    code: str = "SELF_APPROVAL"

    def __init__(self, email: str):
        self.email = email
        super().__init__("approver_email", f"{email} cannot approve themselves")


# Authority exceptions


class AuthorityError(TimesheetKernelError):
    """Base exception for approval authority errors."""

    code: str = "AUTHORITY_ERROR"


class NoApprovalAuthorityError(AuthorityError):
    """Approver holds no valid relationship over the target."""

    code: str = "NO_APPROVAL_AUTHORITY"

    def __init__(self, approver_id: Any, target_id: Any, on_date: date | None = None):
        self.approver_id = str(approver_id)
        self.target_id = str(target_id)
        self.on_date = on_date
        suffix = f" on {on_date}" if on_date is not None else ""
        super().__init__(
            f"User {approver_id} has no approval authority over {target_id}{suffix}"
        )


# Approval state exceptions


class ApprovalError(TimesheetKernelError):
    """Base exception for daily approval errors."""

    code: str = "APPROVAL_ERROR"


class WorkRecordApprovalNotFoundError(ApprovalError):
    """No approval record exists for the (user, date) key."""

    code: str = "APPROVAL_NOT_FOUND"

    def __init__(self, user_id: Any, work_date: date):
        self.user_id = str(user_id)
        self.work_date = work_date
        super().__init__(
            f"No work record approval for user {user_id} on {work_date}"
        )


class InvalidApprovalTransitionError(ApprovalError):
    """Requested status change is not allowed from the current status."""

    code: str = "INVALID_APPROVAL_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid approval transition: {from_status} -> {to_status}"
        )


# Approver relationship exceptions


class ApproverRelationshipError(TimesheetKernelError):
    """Base exception for approver relationship errors."""

    code: str = "APPROVER_RELATIONSHIP_ERROR"


class ApproverRelationshipNotFoundError(ApproverRelationshipError):
    """No live relationship exists for the (target, approver) pair."""

    code: str = "APPROVER_RELATIONSHIP_NOT_FOUND"

    def __init__(self, target_email: str, approver_email: str):
        self.target_email = target_email
        self.approver_email = approver_email
        super().__init__(
            f"No approver relationship {approver_email} -> {target_email}"
        )


# Concurrency exceptions


class ConcurrencyError(TimesheetKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability exceptions


class ImmutabilityError(TimesheetKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Directory import exceptions


class DirectoryImportError(TimesheetKernelError):
    """Base exception for employee directory import errors."""

    code: str = "DIRECTORY_IMPORT_ERROR"


class DirectoryFileError(DirectoryImportError):
    """Directory file is missing, empty, or has an unusable layout."""

    code: str = "DIRECTORY_FILE_ERROR"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot import directory {path}: {reason}")


class ErrorRateExceededError(DirectoryImportError):
    """Too many rows failed validation to trust the snapshot."""

    code: str = "ERROR_RATE_EXCEEDED"

    def __init__(self, error_count: int, total_rows: int, max_error_rate: float):
        self.error_count = error_count
        self.total_rows = total_rows
        self.max_error_rate = max_error_rate
        super().__init__(
            f"{error_count} of {total_rows} directory rows are invalid, "
            f"exceeding the allowed rate of {max_error_rate:.0%}"
        )
