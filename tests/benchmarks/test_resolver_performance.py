"""
Resolver scaling benchmark.

A 1,000-person directory (one general manager, 4 divisions x 5
departments x 5 groups, managers and staff in each group) must resolve
in well under a second.  The bound is generous; it exists to catch an
accidental quadratic scan, not to measure the machine.
"""

import time

from timesheet_kernel.domain.approver_graph import resolve_approvers
from timesheet_kernel.domain.organization import EmployeeRecord, OrgUnit, Position


def build_directory(size: int = 1000) -> dict[str, EmployeeRecord]:
    records: list[EmployeeRecord] = [
        EmployeeRecord("gm@corp.example", "GM", Position.GENERAL_MANAGER, (OrgUnit("HQ"),)),
    ]
    groups = []
    for d in range(4):
        division = (OrgUnit("HQ"), OrgUnit(f"D{d}"))
        records.append(EmployeeRecord(
            f"div{d}@corp.example", f"Div {d}", Position.DIVISION_MANAGER, division,
        ))
        for p in range(5):
            department = division + (OrgUnit(f"P{p}"),)
            records.append(EmployeeRecord(
                f"dept{d}-{p}@corp.example", f"Dept {d}-{p}",
                Position.DEPARTMENT_MANAGER, department,
            ))
            for g in range(5):
                group = department + (OrgUnit(f"G{g}"),)
                groups.append(group)
                records.append(EmployeeRecord(
                    f"mgr{d}-{p}-{g}@corp.example", f"Mgr {d}-{p}-{g}",
                    Position.MANAGER, group,
                ))
    i = 0
    while len(records) < size:
        group = groups[i % len(groups)]
        records.append(EmployeeRecord(
            f"staff{i}@corp.example", f"Staff {i}", Position.STAFF, group,
        ))
        i += 1
    return {record.email: record for record in records}


class TestResolverPerformance:

    def test_thousand_people_under_one_second(self):
        directory = build_directory(1000)
        assert len(directory) == 1000

        started = time.perf_counter()
        graph = resolve_approvers(directory)
        elapsed = time.perf_counter() - started

        assert len(graph) == 1000
        assert elapsed < 1.0
        assert graph["staff0@corp.example"] == frozenset({"mgr0-0-0@corp.example"})
        assert graph["mgr0-0-0@corp.example"] == frozenset({"dept0-0@corp.example"})
        assert graph["div3@corp.example"] == frozenset({"gm@corp.example"})
