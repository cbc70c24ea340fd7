"""
Approver graph resolver (``timesheet_kernel.domain.approver_graph``).

Responsibility
--------------
Derive, from one directory snapshot, the set of people who may approve
each employee's timesheet.

Architecture position
---------------------
**Kernel domain layer** -- pure function over value objects.  ZERO I/O,
no clock, no persistence.  The relationship store is reconciled against
this output by ``services.approver_service``.

Algorithm
---------
``APPROVAL_LADDER`` lists every tier with the organizational level that
bounds its authority (its *home scope*).  For an employee at tier T the
resolver walks the ladder entries above T in order.  For each candidate
tier C with home level L it compares the employee's code prefix at L
with that of every holder of C.  The first candidate tier with at least
one matching holder is the answer, and all of its holders are included.
A candidate whose level the employee does not belong to is skipped, so a
missing intermediate tier widens the search instead of ending it.

Invariants enforced
-------------------
* GENERAL_MANAGER resolves to an empty set.
* Nearest scope wins: once a tier yields a hit, broader tiers are not
  consulted.
* An employee never appears in their own approver set.
* Deterministic: the same snapshot always yields the same mapping.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from timesheet_kernel.domain.organization import EmployeeRecord, Position


@dataclass(frozen=True)
class TierDescriptor:
    """A position tier and the organizational level its authority covers."""

    position: Position
    scope_level: int


APPROVAL_LADDER: tuple[TierDescriptor, ...] = (
    TierDescriptor(Position.STAFF, 4),
    TierDescriptor(Position.MANAGER, 4),
    TierDescriptor(Position.DEPARTMENT_MANAGER, 3),
    TierDescriptor(Position.DIVISION_MANAGER, 2),
    TierDescriptor(Position.GENERAL_MANAGER, 1),
)

_DESCRIPTORS: dict[Position, TierDescriptor] = {
    descriptor.position: descriptor for descriptor in APPROVAL_LADDER
}


def descriptor_for(position: Position) -> TierDescriptor:
    return _DESCRIPTORS[position]


def candidate_tiers(
    position: Position,
    ladder: tuple[TierDescriptor, ...] = APPROVAL_LADDER,
) -> tuple[TierDescriptor, ...]:
    """Ladder entries strictly above ``position``, nearest first."""
    rank = position.rank
    return tuple(d for d in ladder if d.position.rank > rank)


def _index_holders(
    records: Iterable[EmployeeRecord],
    ladder: tuple[TierDescriptor, ...],
) -> dict[tuple[Position, tuple[str, ...]], list[str]]:
    """Group holders of each tier by their code prefix at the tier's home level."""
    scope_by_position = {d.position: d.scope_level for d in ladder}
    holders: dict[tuple[Position, tuple[str, ...]], list[str]] = defaultdict(list)
    for record in records:
        level = scope_by_position.get(record.position)
        if level is None:
            continue
        key = record.scope_key(level)
        if key is None:
            continue
        holders[(record.position, key)].append(record.email)
    return holders


def resolve_approvers_for(
    record: EmployeeRecord,
    holders: Mapping[tuple[Position, tuple[str, ...]], list[str]],
    ladder: tuple[TierDescriptor, ...] = APPROVAL_LADDER,
) -> frozenset[str]:
    for candidate in candidate_tiers(record.position, ladder):
        scope = record.scope_key(candidate.scope_level)
        if scope is None:
            continue
        hits = holders.get((candidate.position, scope))
        if hits:
            found = frozenset(hits) - {record.email}
            if found:
                return found
    return frozenset()


def resolve_approvers(
    snapshot: Mapping[str, EmployeeRecord],
    ladder: tuple[TierDescriptor, ...] = APPROVAL_LADDER,
) -> dict[str, frozenset[str]]:
    """
    Map every employee email in ``snapshot`` to their approver emails.

    Preconditions:
        ``snapshot`` is keyed by normalized email; each value's ``email``
        equals its key.
    Postconditions:
        Every key of ``snapshot`` is present in the result.  Employees
        without a reachable approver (including GENERAL_MANAGER and people
        with no organizational levels) map to an empty frozenset.

    Runs in O(n * tiers): one pass builds the holder index, one pass
    walks the ladder per employee.
    """
    records = list(snapshot.values())
    holders = _index_holders(records, ladder)
    return {
        record.email: resolve_approvers_for(record, holders, ladder)
        for record in records
    }


def snapshot_from_records(records: Iterable[EmployeeRecord]) -> dict[str, EmployeeRecord]:
    """Key records by email; a later record with the same email wins."""
    return {record.email: record for record in records}


def invert(approvers: Mapping[str, frozenset[str]]) -> dict[str, frozenset[str]]:
    """Turn target -> approvers into approver -> targets."""
    targets: dict[str, set[str]] = defaultdict(set)
    for target, approver_set in approvers.items():
        for approver in approver_set:
            targets[approver].add(target)
    return {approver: frozenset(found) for approver, found in targets.items()}
