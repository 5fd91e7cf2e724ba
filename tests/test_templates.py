"""Tests for Splitledger templates."""

from decimal import Decimal

from splitledger.models import UserBalanceSummary
from splitledger.templates import (
    ALL_SETTLED,
    format_currency,
    format_debts_list,
    format_group_balances,
    format_member_balances,
    format_user_summary,
)

NAMES = {"user1": "Aditya", "user2": "Rohit", "user3": "Manish"}


class TestFormatCurrency:
    """Tests for format_currency."""

    def test_inr_currency(self) -> None:
        assert format_currency(Decimal("100"), "INR") == "₹100.00"

    def test_usd_currency(self) -> None:
        assert format_currency(Decimal("50.5"), "usd") == "$50.50"

    def test_rounds_half_up(self) -> None:
        assert format_currency(Decimal("33.335"), "EUR") == "€33.34"

    def test_unknown_currency(self) -> None:
        """Test unknown currency uses code."""
        assert format_currency(Decimal("100"), "CHF") == "CHF100.00"


class TestFormatDebtsList:
    """Tests for format_debts_list."""

    def test_empty(self) -> None:
        assert format_debts_list([], "INR") == ALL_SETTLED

    def test_uses_names(self) -> None:
        debts = [("user2", "user3", Decimal("200"))]
        assert format_debts_list(debts, "INR", NAMES) == "• Rohit → Manish: ₹200.00"

    def test_falls_back_to_ids(self) -> None:
        debts = [("user9", "user1", Decimal("5"))]
        assert format_debts_list(debts, "INR", NAMES) == "• user9 → Aditya: ₹5.00"


class TestFormatBalances:
    """Tests for balance sheets."""

    def test_member_balances(self) -> None:
        lines = format_member_balances(
            {"user2": Decimal("200"), "user3": Decimal("-50")}, "INR", NAMES
        )
        assert lines == ["Rohit owes: ₹200.00", "Owes Manish: ₹50.00"]

    def test_member_without_balances(self) -> None:
        assert format_member_balances({}, "INR", NAMES) == ["No outstanding balances"]

    def test_group_balances(self) -> None:
        graph = {
            "user1": {"user2": Decimal("200")},
            "user2": {"user1": Decimal("-200")},
            "user3": {},
        }
        text = format_group_balances("Hostel", graph, "INR", NAMES)
        assert text.splitlines() == [
            "=== Group Balances for Hostel ===",
            "Aditya:",
            "  Rohit owes: ₹200.00",
            "Rohit:",
            "  Owes Aditya: ₹200.00",
            "Manish:",
            "  No outstanding balances",
        ]

    def test_user_summary(self) -> None:
        summary = UserBalanceSummary(
            user_id="user2",
            individual={"user3": Decimal("20")},
            groups={"group1": {"user1": Decimal("-200")}, "group2": {}},
        )
        text = format_user_summary(summary, "INR", NAMES, {"group1": "Hostel"})
        assert text.splitlines() == [
            "=== Balance for Rohit ===",
            "Total you owe: ₹200.00",
            "Total others owe you: ₹20.00",
            "Individual:",
            "  Manish owes: ₹20.00",
            "In Hostel:",
            "  Owes Aditya: ₹200.00",
        ]
