"""
Tests for ApproverSelector (the approver relationship store).

Covers:
- Effective period boundaries: both endpoints inclusive
- Unbounded relationships valid into the far future
- Soft-deleted rows never valid
- find_valid_approvers / find_targets / find_current_grouped_by_target
- Email normalization on lookup
"""

from datetime import date

import pytest

from timesheet_kernel.domain.ports import ApproverRelationshipStore
from timesheet_kernel.models.approver import ApproverModel
from timesheet_kernel.selectors.approver_selector import ApproverSelector


@pytest.fixture
def selector(session):
    return ApproverSelector(session)


@pytest.fixture
def january(grant):
    """mgr@x.com approves dev@x.com for January 2024 only."""
    return grant("dev@x.com", "mgr@x.com", date(2024, 1, 1), date(2024, 1, 31))


def test_selector_satisfies_store_port(selector):
    assert isinstance(selector, ApproverRelationshipStore)


class TestEffectivePeriod:

    @pytest.mark.parametrize("on_date,expected", [
        (date(2023, 12, 31), False),
        (date(2024, 1, 1), True),
        (date(2024, 1, 15), True),
        (date(2024, 1, 31), True),
        (date(2024, 2, 1), False),
    ])
    def test_bounded_relationship(self, selector, january, on_date, expected):
        assert selector.is_valid_approver("dev@x.com", "mgr@x.com", on_date) is expected

    def test_dto_agrees_with_query(self, selector, january):
        for day in (date(2023, 12, 31), date(2024, 1, 1), date(2024, 1, 31), date(2024, 2, 1)):
            assert january.is_valid_for(day) is selector.is_valid_approver(
                "dev@x.com", "mgr@x.com", day,
            )

    def test_unbounded_relationship_valid_far_future(self, selector, grant):
        grant("dev@x.com", "mgr@x.com", date(2024, 1, 1))
        assert selector.is_valid_approver("dev@x.com", "mgr@x.com", date(2099, 12, 31))
        assert not selector.is_valid_approver("dev@x.com", "mgr@x.com", date(2023, 12, 31))

    def test_soft_deleted_never_valid(self, selector, session, january):
        row = session.get(ApproverModel, january.id)
        row.is_deleted = True
        session.flush()
        assert not selector.is_valid_approver("dev@x.com", "mgr@x.com", date(2024, 1, 15))
        assert selector.find_by_target("dev@x.com") == []
        assert len(selector.find_by_target("dev@x.com", include_deleted=True)) == 1

    def test_direction_matters(self, selector, january):
        assert not selector.is_valid_approver("mgr@x.com", "dev@x.com", date(2024, 1, 15))

    def test_lookup_normalizes_email(self, selector, january):
        assert selector.is_valid_approver(" DEV@x.com", "Mgr@X.com ", date(2024, 1, 15))

    def test_blank_email_is_false(self, selector, january):
        assert not selector.is_valid_approver("", "mgr@x.com", date(2024, 1, 15))


class TestLookups:

    def test_find_valid_approvers_sorted_and_distinct(self, selector, grant):
        grant("dev@x.com", "b@x.com")
        grant("dev@x.com", "a@x.com")
        grant("dev@x.com", "a@x.com", date(2024, 1, 10))
        grant("dev@x.com", "late@x.com", date(2024, 2, 1))
        assert selector.find_valid_approvers("dev@x.com", date(2024, 1, 15)) == [
            "a@x.com",
            "b@x.com",
        ]

    def test_find_targets(self, selector, grant):
        grant("dev2@x.com", "mgr@x.com")
        grant("dev1@x.com", "mgr@x.com")
        grant("dev3@x.com", "mgr@x.com", date(2023, 1, 1), date(2023, 12, 31))
        assert selector.find_targets("mgr@x.com", date(2024, 1, 15)) == [
            "dev1@x.com",
            "dev2@x.com",
        ]

    def test_find_targets_unknown_approver(self, selector):
        assert selector.find_targets("nobody@x.com", date(2024, 1, 15)) == []

    def test_grouped_by_target(self, selector, grant):
        grant("dev@x.com", "mgr@x.com")
        grant("dev@x.com", "dept@x.com")
        grant("mgr@x.com", "dept@x.com")
        assert selector.find_current_grouped_by_target(date(2024, 1, 15)) == {
            "dev@x.com": frozenset({"mgr@x.com", "dept@x.com"}),
            "mgr@x.com": frozenset({"dept@x.com"}),
        }

    def test_find_live_models_open_on_date(self, selector, january):
        assert len(selector.find_live_models("dev@x.com", "mgr@x.com")) == 1
        assert len(selector.find_live_models(
            "dev@x.com", "mgr@x.com", on_or_after=date(2024, 1, 31),
        )) == 1
        assert selector.find_live_models(
            "dev@x.com", "mgr@x.com", on_or_after=date(2024, 2, 1),
        ) == []
