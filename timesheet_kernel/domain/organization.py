"""
Organization domain types (``timesheet_kernel.domain.organization``).

Responsibility
--------------
Immutable value objects describing one snapshot of the employee
directory: the five position tiers, the four nested organizational
levels, and the ``EmployeeRecord`` that ties a person to both.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Positions are exactly the five tiers of ``Position``; any other string
  is rejected at construction with ``InvalidPositionError``.
* Organizational levels are contiguous: level *n* absent implies levels
  *n+1..4* absent.  ``EmployeeRecord.levels`` is a tuple of the present
  levels, outermost first, so a gap cannot be represented.
* Emails are trimmed and lower-cased; they are the identity of a record
  within a snapshot.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from timesheet_kernel.exceptions import (
    InvalidEmployeeRecordError,
    InvalidPositionError,
)

MAX_ORG_LEVELS = 4

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str | None) -> str:
    """Trim and lower-case an email address (``None`` becomes ``""``)."""
    if email is None:
        return ""
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.match(email))


class Position(str, Enum):
    """Position tiers, lowest first."""

    STAFF = "staff"
    MANAGER = "manager"
    DEPARTMENT_MANAGER = "department_manager"
    DIVISION_MANAGER = "division_manager"
    GENERAL_MANAGER = "general_manager"

    @property
    def rank(self) -> int:
        return _POSITION_RANKS[self]

    @property
    def has_approval_authority(self) -> bool:
        return self is not Position.STAFF

    @classmethod
    def parse(cls, value: Position | str | None) -> Position:
        """
        Parse a position from its enum value or member name.

        Matching is case-insensitive and ignores surrounding whitespace,
        so ``"Manager"``, ``"MANAGER"`` and ``" manager "`` all parse.

        Raises:
            InvalidPositionError: If the value is not one of the five tiers.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidPositionError(value)
        key = value.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise InvalidPositionError(value)


_POSITION_RANKS: dict[Position, int] = {
    position: rank for rank, position in enumerate(Position)
}


@dataclass(frozen=True)
class OrgUnit:
    """One organizational unit (code + display name)."""

    code: str
    name: str = ""

    def __post_init__(self) -> None:
        if not self.code or not self.code.strip():
            raise InvalidEmployeeRecordError(None, "organizational unit code is blank")
        object.__setattr__(self, "code", self.code.strip())
        object.__setattr__(self, "name", (self.name or "").strip())


@dataclass(frozen=True)
class EmployeeRecord:
    """
    One person in a directory snapshot.

    Contract:
        ``levels[0]`` is the outermost unit (headquarters), ``levels[3]``
        the innermost (group).  Fewer than four entries means the person
        sits higher in the structure; the missing levels are the inner ones.

    Guarantees:
        - ``email`` is normalized and well-formed.
        - ``name`` is non-blank.
        - ``position`` is a ``Position`` member (strings are parsed).
    """

    email: str
    name: str
    position: Position
    levels: tuple[OrgUnit, ...] = field(default=())

    def __post_init__(self) -> None:
        email = normalize_email(self.email)
        if not email:
            raise InvalidEmployeeRecordError(None, "email is required")
        if not is_valid_email(email):
            raise InvalidEmployeeRecordError(email, "email is not well-formed")
        object.__setattr__(self, "email", email)

        if not self.name or not self.name.strip():
            raise InvalidEmployeeRecordError(email, "name is required")
        object.__setattr__(self, "name", self.name.strip())

        object.__setattr__(self, "position", Position.parse(self.position))

        levels = tuple(self.levels)
        if len(levels) > MAX_ORG_LEVELS:
            raise InvalidEmployeeRecordError(
                email, f"at most {MAX_ORG_LEVELS} organizational levels are allowed"
            )
        if not all(isinstance(level, OrgUnit) for level in levels):
            raise InvalidEmployeeRecordError(email, "levels must be OrgUnit values")
        object.__setattr__(self, "levels", levels)

    @classmethod
    def from_columns(
        cls,
        email: str,
        name: str,
        position: Position | str,
        level1_code: str | None = None,
        level1_name: str | None = None,
        level2_code: str | None = None,
        level2_name: str | None = None,
        level3_code: str | None = None,
        level3_name: str | None = None,
        level4_code: str | None = None,
        level4_name: str | None = None,
    ) -> EmployeeRecord:
        """
        Build a record from flat directory columns.

        Blank codes count as absent.

        Raises:
            InvalidEmployeeRecordError: If a level is present below an
                absent one, or any other field is invalid.
            InvalidPositionError: If the position is unknown.
        """
        columns = (
            (level1_code, level1_name),
            (level2_code, level2_name),
            (level3_code, level3_name),
            (level4_code, level4_name),
        )
        levels: list[OrgUnit] = []
        gap_at: int | None = None
        for index, (code, unit_name) in enumerate(columns, start=1):
            if code is None or not code.strip():
                if gap_at is None:
                    gap_at = index
                continue
            if gap_at is not None:
                raise InvalidEmployeeRecordError(
                    normalize_email(email),
                    f"level {index} is set but level {gap_at} is empty",
                )
            levels.append(OrgUnit(code, unit_name or ""))
        return cls(email=email, name=name, position=position, levels=tuple(levels))

    def code_at(self, level: int) -> str | None:
        """Unit code at a 1-based level, or ``None`` when absent."""
        if level < 1 or level > len(self.levels):
            return None
        return self.levels[level - 1].code

    def scope_key(self, level: int) -> tuple[str, ...] | None:
        """
        Code prefix identifying this person's unit at ``level``.

        Two people share a scope at ``level`` iff their keys are equal.
        Returns ``None`` when the person has no unit at that level.
        """
        if level < 1 or level > len(self.levels):
            return None
        return tuple(unit.code for unit in self.levels[:level])

    @property
    def organization_path(self) -> str:
        return " > ".join(unit.name or unit.code for unit in self.levels)

    @property
    def has_approval_authority(self) -> bool:
        return self.position.has_approval_authority
