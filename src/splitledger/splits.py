"""Split strategies: turn an expense total into per-participant shares.

Each strategy is a plain function with the same signature; `get_split_strategy`
resolves one from a SplitType. No I/O, no side effects.
"""

import logging
from collections.abc import Callable, Sequence
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Any

from .errors import InvalidInputError
from .models import EPSILON, Split, SplitType, to_decimal

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

SplitStrategy = Callable[[Decimal, Sequence[str], Sequence[Decimal] | None], list[Split]]


def _allocate(total: Decimal, participants: Sequence[str], shares: Sequence[Decimal]) -> list[Split]:
    """
    Round shares to cents by largest remainder.

    Every share is floored to the cent, then the leftover cents go one at a
    time to the participants with the largest fractional remainder (earlier
    participants first on ties). Shares stay non-negative, equal shares differ
    by at most one cent, and the splits sum to total.
    """
    floored = [share.quantize(CENT, rounding=ROUND_DOWN) for share in shares]
    leftover = total - sum(floored, Decimal("0"))
    cents = int((leftover / CENT).to_integral_value(rounding=ROUND_HALF_UP))

    by_remainder = sorted(
        range(len(shares)), key=lambda i: (-(shares[i] - floored[i]), i)
    )
    for i in by_remainder[:cents]:
        floored[i] += CENT
    return [Split(user_id=user_id, amount=amount) for user_id, amount in zip(participants, floored)]


def _require_aligned_values(
    participants: Sequence[str], values: Sequence[Decimal] | None, label: str
) -> list[Decimal]:
    if values is None or len(values) != len(participants):
        got = 0 if values is None else len(values)
        raise InvalidInputError(
            f"{label} split needs one value per participant "
            f"({len(participants)} participants, {got} values)"
        )
    return [to_decimal(v) for v in values]


def equal_split(
    total: Decimal,
    participants: Sequence[str],
    values: Sequence[Decimal] | None = None,
) -> list[Split]:
    """
    Split total equally among participants.

    ₹100 three ways → ₹33.34, ₹33.33, ₹33.33. Any values are ignored.
    """
    n = len(participants)
    return _allocate(total, participants, [total / n] * n)


def exact_split(
    total: Decimal,
    participants: Sequence[str],
    values: Sequence[Decimal] | None = None,
) -> list[Split]:
    """Each participant owes the literal amount at the same index in values."""
    amounts = _require_aligned_values(participants, values, "Exact")

    negative = [str(a) for a in amounts if a < 0]
    if negative:
        raise InvalidInputError(f"Exact amounts cannot be negative: {', '.join(negative)}")

    amounts_sum = sum(amounts, Decimal("0"))
    if abs(amounts_sum - total) > EPSILON:
        raise InvalidInputError(
            f"Exact amounts sum to {amounts_sum} but expense total is {total}",
            details={"sum": amounts_sum, "total": total},
        )

    return [Split(user_id=user_id, amount=amount) for user_id, amount in zip(participants, amounts)]


def percentage_split(
    total: Decimal,
    participants: Sequence[str],
    values: Sequence[Decimal] | None = None,
) -> list[Split]:
    """Each participant owes values[i] percent of total."""
    percentages = _require_aligned_values(participants, values, "Percentage")

    out_of_range = [str(p) for p in percentages if p < 0 or p > HUNDRED]
    if out_of_range:
        raise InvalidInputError(
            f"Percentages must be between 0 and 100: {', '.join(out_of_range)}"
        )

    pct_sum = sum(percentages, Decimal("0"))
    if abs(pct_sum - HUNDRED) > EPSILON:
        raise InvalidInputError(
            f"Percentages sum to {pct_sum}, expected 100",
            details={"sum": pct_sum},
        )

    # Scale by the actual sum so shares add up to total even when it is 100 ± 0.01
    return _allocate(total, participants, [total * p / pct_sum for p in percentages])


_STRATEGIES: dict[SplitType, SplitStrategy] = {
    SplitType.EQUAL: equal_split,
    SplitType.EXACT: exact_split,
    SplitType.PERCENTAGE: percentage_split,
}


def get_split_strategy(split_type: SplitType | str) -> SplitStrategy:
    """Resolve the strategy for a split type (enum or its case-insensitive name)."""
    try:
        return _STRATEGIES[SplitType(split_type)]
    except ValueError as e:
        raise InvalidInputError(f"Unknown split type: {split_type!r}") from e


def calculate_splits(
    split_type: SplitType | str,
    total_amount: Any,
    participants: Sequence[str],
    values: Sequence[Any] | None = None,
) -> list[Split]:
    """
    Compute per-participant shares of an expense.

    Args:
        split_type: EQUAL, EXACT or PERCENTAGE
        total_amount: Expense total (must be positive)
        participants: Ordered participant ids, no duplicates
        values: Per-participant amounts (EXACT) or percentages (PERCENTAGE)

    Returns:
        One Split per participant, in participant order, summing to total_amount

    Raises:
        InvalidInputError: If the inputs cannot produce a valid split
    """
    strategy = get_split_strategy(split_type)
    total = to_decimal(total_amount)

    if total <= 0:
        raise InvalidInputError(f"Expense amount must be positive, got {total}")
    if not participants:
        raise InvalidInputError("Cannot split among zero participants")
    if len(set(participants)) != len(participants):
        raise InvalidInputError("Participants must not repeat")

    decimal_values = None if values is None else [to_decimal(v) for v in values]
    splits = strategy(total, participants, decimal_values)
    logger.debug("%s split of %s among %d participants", SplitType(split_type).value, total, len(splits))
    return splits
