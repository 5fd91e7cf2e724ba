"""Response message templates - all user-facing text lives here.

Notification messages, balance displays and error text. The ledger core
formats through this module and never builds strings of its own.
"""

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal

from .models import UserBalanceSummary

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "ILS": "₪",
    "JPY": "¥",
}


def get_currency_symbol(currency: str) -> str:
    """Symbol for a currency code, or the code itself if unknown."""
    return CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())


def format_currency(amount: Decimal, currency: str) -> str:
    """Format amount with currency symbol, rounded to cents."""
    symbol = get_currency_symbol(currency)
    return f"{symbol}{amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}"


def _name(names: Mapping[str, str], user_id: str) -> str:
    return names.get(user_id, user_id)


def format_debts_list(
    debts: list[tuple[str, str, Decimal]],
    currency: str,
    names: Mapping[str, str] | None = None,
) -> str:
    """Format list of (debtor, creditor, amount) debts for display."""
    if not debts:
        return ALL_SETTLED

    names = names or {}
    lines = []
    for debtor, creditor, amount in debts:
        lines.append(
            f"• {_name(names, debtor)} → {_name(names, creditor)}: {format_currency(amount, currency)}"
        )
    return "\n".join(lines)


def format_member_balances(
    balances: Mapping[str, Decimal],
    currency: str,
    names: Mapping[str, str],
) -> list[str]:
    """One line per counterpart: who owes this member, or whom this member owes."""
    if not balances:
        return [NO_OUTSTANDING]

    lines = []
    for other_id, amount in balances.items():
        other = _name(names, other_id)
        if amount > 0:
            lines.append(OWES_YOU.format(name=other, amount_display=format_currency(amount, currency)))
        else:
            lines.append(YOU_OWE.format(name=other, amount_display=format_currency(-amount, currency)))
    return lines


def format_group_balances(
    group_name: str,
    graph: Mapping[str, Mapping[str, Decimal]],
    currency: str,
    names: Mapping[str, str],
) -> str:
    """Per-member balance sheet for a group."""
    lines = [GROUP_BALANCES_HEADER.format(group_name=group_name)]
    for member_id, row in graph.items():
        lines.append(f"{_name(names, member_id)}:")
        lines.extend(f"  {line}" for line in format_member_balances(row, currency, names))
    return "\n".join(lines)


def format_user_summary(
    summary: UserBalanceSummary,
    currency: str,
    names: Mapping[str, str],
    group_names: Mapping[str, str] | None = None,
) -> str:
    """A user's totals plus individual and per-group details."""
    group_names = group_names or {}
    lines = [
        USER_BALANCE_HEADER.format(name=_name(names, summary.user_id)),
        f"Total you owe: {format_currency(summary.total_owed, currency)}",
        f"Total others owe you: {format_currency(summary.total_owing, currency)}",
    ]
    if summary.individual:
        lines.append("Individual:")
        lines.extend(
            f"  {line}" for line in format_member_balances(summary.individual, currency, names)
        )
    for group_id, balances in summary.groups.items():
        if balances:
            lines.append(f"In {group_names.get(group_id, group_id)}:")
            lines.extend(f"  {line}" for line in format_member_balances(balances, currency, names))
    return "\n".join(lines)


# === NOTIFICATION TEMPLATES (sent to members) ===

EXPENSE_ADDED = "New expense added: {description} ({amount_display}) paid by {paid_by}"

SETTLEMENT_RECORDED = "Settlement: {from_name} paid {to_name} {amount_display}"

DEBTS_SIMPLIFIED = "Debts have been simplified for group: {group_name}"

MEMBER_JOINED = "{name} added to group {group_name}"

MEMBER_LEFT = "{name} left group {group_name}"

INDIVIDUAL_EXPENSE = (
    "Individual expense added: {description} ({amount_display}) paid by {paid_by} for {to_name}"
)

INDIVIDUAL_SETTLEMENT = "{from_name} settled {amount_display} with {to_name}"


# === DISPLAY TEMPLATES ===

GROUP_BALANCES_HEADER = "=== Group Balances for {group_name} ==="

USER_BALANCE_HEADER = "=== Balance for {name} ==="

OWES_YOU = "{name} owes: {amount_display}"

YOU_OWE = "Owes {name}: {amount_display}"

NO_OUTSTANDING = "No outstanding balances"

ALL_SETTLED = "✨ All settled up!"

NOTIFICATION = "[NOTIFICATION to {name}]: {message}"


# === ERROR TEMPLATES ===

ERROR_LEDGER = "⚠️ {kind}: {message}"

ERROR_SCRIPT = "⚠️ Script error at step {step}: {message}"
