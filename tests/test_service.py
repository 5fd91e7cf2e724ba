"""Tests for the LedgerService facade, including end-to-end ledger scenarios."""

from decimal import Decimal

import pytest

from splitledger import ledger
from splitledger.errors import (
    DuplicateMemberError,
    InvalidInputError,
    NotAMemberError,
    NotFoundError,
    OutstandingBalanceError,
)
from splitledger.group import Group
from splitledger.models import SplitType
from splitledger.notifications import NotificationOutbox
from splitledger.service import LedgerService


class TestRegistry:
    """Tests for user and group registration."""

    def test_create_user_assigns_sequential_ids(self, service: LedgerService) -> None:
        first = service.create_user("Aditya", "aditya@gmail.com")
        second = service.create_user("Rohit", "rohit@gmail.com")
        assert (first.id, second.id) == ("user1", "user2")
        assert service.get_user("user1").email == "aditya@gmail.com"
        assert service.user_names() == {"user1": "Aditya", "user2": "Rohit"}

    def test_blank_names_rejected(self, service: LedgerService) -> None:
        with pytest.raises(InvalidInputError):
            service.create_user("  ")
        with pytest.raises(InvalidInputError):
            service.create_group("")

    def test_non_text_names_rejected(self, service: LedgerService) -> None:
        with pytest.raises(InvalidInputError, match="User name must be text"):
            service.create_user(None)
        with pytest.raises(InvalidInputError, match="Email must be text"):
            service.create_user("Aditya", 42)
        with pytest.raises(InvalidInputError, match="Group name must be text"):
            service.create_group(7)
        assert service.list_users() == []

    def test_unknown_ids(self, service: LedgerService) -> None:
        with pytest.raises(NotFoundError, match="User user9 not found"):
            service.get_user("user9")
        with pytest.raises(NotFoundError, match="Group group9 not found"):
            service.get_group("group9")

    def test_add_user_to_unknown_group(self, service: LedgerService) -> None:
        user = service.create_user("Aditya")
        with pytest.raises(NotFoundError):
            service.add_user_to_group(user.id, "group9")

    def test_add_unknown_user_to_group(self, service: LedgerService, hostel: Group) -> None:
        with pytest.raises(NotFoundError):
            service.add_user_to_group("user9", hostel.id)

    def test_add_user_twice(self, service: LedgerService, hostel: Group) -> None:
        with pytest.raises(DuplicateMemberError):
            service.add_user_to_group("user1", hostel.id)

    def test_list(self, service: LedgerService, hostel: Group) -> None:
        assert [u.name for u in service.list_users()] == ["Aditya", "Rohit", "Manish", "Saurav"]
        assert service.list_groups() == [hostel]

    def test_groups_are_disjoint(self, service: LedgerService, hostel: Group) -> None:
        other = service.create_group("Office")
        service.add_user_to_group("user1", other.id)
        service.add_user_to_group("user2", other.id)
        service.add_expense_to_group(other.id, "Cake", 100, "user1", ["user1", "user2"])
        assert service.get_group_balances(hostel.id)["user1"] == {}
        assert service.get_group_balances(other.id)["user1"] == {"user2": Decimal("50")}


class TestScenarios:
    """End-to-end ledger scenarios."""

    def test_equal_split(self, service: LedgerService, hostel: Group) -> None:
        """Scenario A: 800 among 4 → payer is owed 200 by each of the other three."""
        everyone = ["user1", "user2", "user3", "user4"]
        expense = service.add_expense_to_group(
            hostel.id, "Lunch", 800, "user1", everyone, SplitType.EQUAL
        )

        assert [s.amount for s in expense.splits] == [Decimal("200")] * 4
        balances = service.get_group_balances(hostel.id)
        assert balances["user1"] == {
            "user2": Decimal("200"),
            "user3": Decimal("200"),
            "user4": Decimal("200"),
        }
        for other in ("user2", "user3", "user4"):
            assert balances[other] == {"user1": Decimal("-200")}

    def test_exact_split(self, service: LedgerService, hostel: Group) -> None:
        """Scenario B: 700 as [200, 300, 200] with the payer among the three."""
        service.add_expense_to_group(
            hostel.id,
            "Dinner",
            700,
            "user3",
            ["user1", "user3", "user4"],
            SplitType.EXACT,
            [200, 300, 200],
        )
        balances = service.get_group_balances(hostel.id)
        assert balances["user3"] == {"user1": Decimal("200"), "user4": Decimal("200")}

    def test_exact_split_must_sum(self, service: LedgerService, hostel: Group) -> None:
        """Scenario B: shares that do not sum to 700 are rejected."""
        with pytest.raises(InvalidInputError):
            service.add_expense_to_group(
                hostel.id,
                "Dinner",
                700,
                "user3",
                ["user1", "user3", "user4"],
                SplitType.EXACT,
                [200, 300, 100],
            )
        assert hostel.expenses == []

    def test_chain_simplification(self, service: LedgerService, hostel: Group) -> None:
        """Scenario C: A owes B 100, B owes C 100 → A owes C 100, nets unchanged."""
        a, b, c = "user1", "user2", "user3"
        service.add_expense_to_group(hostel.id, "Tickets", 100, b, [a])
        service.add_expense_to_group(hostel.id, "Hotel", 100, c, [b])
        before = ledger.net_positions(service.get_group_balances(hostel.id))

        simplified = service.simplify_group_debts(hostel.id)

        assert simplified[a] == {c: Decimal("-100")}
        assert simplified[b] == {}
        assert simplified[c] == {a: Decimal("100")}
        after = ledger.net_positions(simplified)
        assert after == before
        assert (after[a], after[b], after[c]) == (Decimal("-100"), Decimal("0"), Decimal("100"))

    def test_settlement_then_removal(self, service: LedgerService, hostel: Group) -> None:
        """Scenario D: settling the exact debt clears the pair and allows leaving."""
        service.add_expense_to_group(hostel.id, "Snacks", 60, "user1", ["user1", "user2"])
        with pytest.raises(OutstandingBalanceError):
            service.remove_user_from_group("user2", hostel.id)

        service.settle_payment_in_group(hostel.id, "user2", "user1", 30)

        assert service.get_group_balances(hostel.id)["user1"] == {}
        assert service.remove_user_from_group("user2", hostel.id) is True
        assert "user2" not in service.get_group_balances(hostel.id)

    def test_bad_percentage_mutates_nothing(self, service: LedgerService, hostel: Group) -> None:
        """Scenario E: percentages not summing to 100 fail with no balance change."""
        service.add_expense_to_group(hostel.id, "Lunch", 800, "user1", ["user1", "user2"])
        before = service.get_group_balances(hostel.id)

        with pytest.raises(InvalidInputError):
            service.add_expense_to_group(
                hostel.id,
                "Rent",
                1000,
                "user2",
                ["user1", "user2", "user3"],
                SplitType.PERCENTAGE,
                [40, 40, 10],
            )

        assert service.get_group_balances(hostel.id) == before

    def test_hostel_walkthrough(self, service: LedgerService, hostel: Group) -> None:
        """Test lunch + dinner + simplification leaves Rohit owing Manish 200."""
        everyone = ["user1", "user2", "user3", "user4"]
        service.add_expense_to_group(hostel.id, "Lunch", 800, "user1", everyone)
        service.add_expense_to_group(
            hostel.id, "Dinner", 700, "user3", ["user1", "user3", "user4"], "exact", [200, 300, 200]
        )
        simplified = service.simplify_group_debts(hostel.id)

        assert simplified["user2"] == {"user3": Decimal("-200")}
        assert simplified["user4"] == {"user1": Decimal("-400")}
        assert ledger.edge_count(simplified) == 2

        service.settle_payment_in_group(hostel.id, "user2", "user3", 200)
        assert service.remove_user_from_group("user2", hostel.id)

    def test_anti_symmetry_after_every_operation(
        self, service: LedgerService, hostel: Group
    ) -> None:
        everyone = ["user1", "user2", "user3", "user4"]
        steps = [
            lambda: service.add_expense_to_group(hostel.id, "Lunch", 800, "user1", everyone),
            lambda: service.add_expense_to_group(
                hostel.id, "Cab", "123.45", "user2", everyone, SplitType.PERCENTAGE, [10, 20, 30, 40]
            ),
            lambda: service.settle_payment_in_group(hostel.id, "user3", "user1", 150),
            lambda: service.simplify_group_debts(hostel.id),
            lambda: service.settle_payment_in_group(hostel.id, "user4", "user2", 999),
        ]
        for step in steps:
            step()
            assert ledger.is_antisymmetric(service.get_group_balances(hostel.id))


class TestGroupRouting:
    """Tests for facade validation on group operations."""

    def test_expense_to_unknown_group(self, service: LedgerService) -> None:
        with pytest.raises(NotFoundError):
            service.add_expense_to_group("group9", "Lunch", 10, "user1", ["user1"])

    def test_expense_with_non_member(self, service: LedgerService, hostel: Group) -> None:
        outsider = service.create_user("Outsider")
        with pytest.raises(NotAMemberError):
            service.add_expense_to_group(hostel.id, "Lunch", 10, "user1", ["user1", outsider.id])

    def test_settle_in_unknown_group(self, service: LedgerService) -> None:
        with pytest.raises(NotFoundError):
            service.settle_payment_in_group("group9", "user1", "user2", 10)

    def test_settle_with_non_member(self, service: LedgerService, hostel: Group) -> None:
        with pytest.raises(NotFoundError):
            service.settle_payment_in_group(hostel.id, "user1", "user9", 10)

    def test_simplify_unknown_group(self, service: LedgerService) -> None:
        with pytest.raises(NotFoundError):
            service.simplify_group_debts("group9")

    def test_remove_unknown_user(self, service: LedgerService, hostel: Group) -> None:
        with pytest.raises(NotFoundError):
            service.remove_user_from_group("user9", hostel.id)

    def test_balances_snapshot_is_detached(self, service: LedgerService, hostel: Group) -> None:
        service.add_expense_to_group(hostel.id, "Lunch", 20, "user1", ["user1", "user2"])
        snapshot = service.get_group_balances(hostel.id)
        snapshot["user1"]["user2"] = Decimal("999")
        assert service.get_group_balances(hostel.id)["user1"]["user2"] == Decimal("10")


class TestIndividualExpenses:
    """Tests for two-party expenses outside groups."""

    def test_equal_individual_expense(
        self, service: LedgerService, hostel: Group, outbox: NotificationOutbox
    ) -> None:
        """Test Rohit pays 40 coffee split equally → Saurav owes Rohit 20."""
        outbox.clear()
        expense = service.add_individual_expense("Coffee", 40, "user2", "user4", SplitType.EQUAL)

        assert expense.group_id is None
        assert service.get_user("user2").balances == {"user4": Decimal("20")}
        assert service.get_user("user4").balances == {"user2": Decimal("-20")}
        assert service.individual_expenses == [expense]
        assert [user for user, _ in outbox.messages] == ["user2", "user4"]
        # Group balances are untouched
        assert service.get_group_balances(hostel.id)["user2"] == {}

    def test_exact_individual_expense(self, service: LedgerService, hostel: Group) -> None:
        service.add_individual_expense("Tickets", 100, "user1", "user3", "exact", [30, 70])
        assert service.get_user("user1").balances == {"user3": Decimal("70")}

    def test_invalid_split_mutates_nothing(self, service: LedgerService, hostel: Group) -> None:
        with pytest.raises(InvalidInputError):
            service.add_individual_expense("Tickets", 100, "user1", "user3", "exact", [30])
        assert service.get_user("user1").balances == {}
        assert service.individual_expenses == []

    def test_non_text_description(self, service: LedgerService, hostel: Group) -> None:
        with pytest.raises(InvalidInputError, match="Description must be text"):
            service.add_individual_expense(5, 40, "user2", "user4")
        assert service.get_user("user2").balances == {}

    def test_same_user(self, service: LedgerService, hostel: Group) -> None:
        with pytest.raises(InvalidInputError):
            service.add_individual_expense("Coffee", 40, "user1", "user1")

    def test_unknown_user(self, service: LedgerService, hostel: Group) -> None:
        with pytest.raises(NotFoundError):
            service.add_individual_expense("Coffee", 40, "user1", "user9")

    def test_individual_settlement_clears(self, service: LedgerService, hostel: Group) -> None:
        service.add_individual_expense("Coffee", 40, "user2", "user4")
        settlement = service.settle_individual_payment("user4", "user2", 20)

        assert settlement.group_id is None
        assert service.get_user("user2").balances == {}
        assert service.get_user("user4").balances == {}
        assert service.individual_settlements == [settlement]

    def test_individual_settlement_validation(self, service: LedgerService, hostel: Group) -> None:
        with pytest.raises(InvalidInputError):
            service.settle_individual_payment("user4", "user2", 0)
        with pytest.raises(InvalidInputError):
            service.settle_individual_payment("user4", "user4", 10)
        with pytest.raises(NotFoundError):
            service.settle_individual_payment("user4", "user9", 10)


class TestUserBalances:
    """Tests for cross-group aggregation."""

    def test_aggregates_individual_and_groups(
        self, service: LedgerService, hostel: Group
    ) -> None:
        office = service.create_group("Office")
        service.add_user_to_group("user2", office.id)
        service.add_user_to_group("user3", office.id)

        everyone = ["user1", "user2", "user3", "user4"]
        service.add_expense_to_group(hostel.id, "Lunch", 800, "user1", everyone)
        service.add_expense_to_group(office.id, "Cake", 100, "user2", ["user2", "user3"])
        service.add_individual_expense("Coffee", 40, "user2", "user4")

        summary = service.get_user_balances("user2")

        assert summary.individual == {"user4": Decimal("20")}
        assert summary.groups == {
            hostel.id: {"user1": Decimal("-200")},
            office.id: {"user3": Decimal("50")},
        }
        assert summary.total_owed == Decimal("200")
        assert summary.total_owing == Decimal("70")

    def test_only_member_groups_listed(self, service: LedgerService, hostel: Group) -> None:
        service.create_group("Office")
        assert list(service.get_user_balances("user1").groups) == [hostel.id]

    def test_stale_membership_answer(
        self, service: LedgerService, hostel: Group, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a user who left a group between listing and reading is skipped."""
        outsider = service.create_user("Outsider")
        monkeypatch.setattr(hostel, "is_member", lambda user_id: True)
        assert service.get_user_balances(outsider.id).groups == {}

    def test_unknown_user(self, service: LedgerService) -> None:
        with pytest.raises(NotFoundError):
            service.get_user_balances("user9")


class TestNotifierRegistration:
    """Tests for notifiers added after groups exist."""

    def test_late_notifier_reaches_existing_groups(
        self, service: LedgerService, hostel: Group
    ) -> None:
        late = NotificationOutbox()
        service.add_notifier(late)
        service.add_expense_to_group(hostel.id, "Lunch", 40, "user1", ["user1", "user2"])
        assert len(late.for_user("user3")) == 1
