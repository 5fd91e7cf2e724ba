"""Pydantic models for Splitledger."""

import threading
from collections import defaultdict
from collections.abc import Iterator
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from itertools import count
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from .errors import InvalidInputError

# Balances and split sums within this of each other are considered equal.
EPSILON = Decimal("0.01")

BalanceGraph = dict[str, dict[str, Decimal]]


def to_decimal(value: Any) -> Decimal:
    """
    Coerce an int, float, str or Decimal amount to a finite Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.

    Raises:
        InvalidInputError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise InvalidInputError(f"Not a valid amount: {value!r}")
    else:
        try:
            result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise InvalidInputError(f"Not a valid amount: {value!r}") from e
    if not result.is_finite():
        raise InvalidInputError(f"Not a valid amount: {value!r}")
    return result


def to_text(value: Any, field: str) -> str:
    """Return value unchanged if it is a str, else raise InvalidInputError naming field."""
    if not isinstance(value, str):
        raise InvalidInputError(f"{field} must be text, got {value!r}")
    return value


def is_zero(amount: Decimal) -> bool:
    """True when an amount is within EPSILON of zero."""
    return abs(amount) < EPSILON


class IdGenerator:
    """Thread-safe sequential ids: user1, user2, group1, expense1, ..."""

    def __init__(self) -> None:
        self._counters: dict[str, Iterator[int]] = defaultdict(lambda: count(1))
        self._lock = threading.Lock()

    def next(self, prefix: str) -> str:
        with self._lock:
            return f"{prefix}{next(self._counters[prefix])}"


class SplitType(str, Enum):
    """How an expense is split."""

    EQUAL = "equal"
    EXACT = "exact"  # Literal amount per participant
    PERCENTAGE = "percentage"  # Percentage per participant, summing to 100

    @classmethod
    def _missing_(cls, value: object) -> "SplitType | None":
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None


class Split(BaseModel):
    """A single participant's share of an expense."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    amount: Decimal

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @field_validator("amount")
    @classmethod
    def non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError(f"Split amount cannot be negative: {v}")
        return v

    @field_serializer("amount")
    def serialize_amount(self, v: Decimal) -> str:
        return str(v)


class Expense(BaseModel):
    """A single spend event. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    id: str
    description: str
    amount: Decimal
    paid_by: str
    splits: tuple[Split, ...]
    split_type: SplitType = SplitType.EQUAL
    group_id: str | None = None  # None for individual expenses
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @field_serializer("amount")
    def serialize_amount(self, v: Decimal) -> str:
        return str(v)

    @model_validator(mode="after")
    def splits_match_total(self) -> "Expense":
        splits_sum = sum((s.amount for s in self.splits), Decimal("0"))
        if abs(splits_sum - self.amount) > EPSILON:
            raise ValueError(
                f"Splits sum to {splits_sum} but expense total is {self.amount}"
            )
        return self

    def share_of(self, user_id: str) -> Decimal:
        """Total owed by user_id under this expense (0 if not a participant)."""
        return sum((s.amount for s in self.splits if s.user_id == user_id), Decimal("0"))


class Settlement(BaseModel):
    """A payment from one user to another that reduces debt."""

    model_config = ConfigDict(frozen=True)

    id: str
    from_user: str
    to_user: str
    amount: Decimal
    group_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @field_serializer("amount")
    def serialize_amount(self, v: Decimal) -> str:
        return str(v)


class User(BaseModel):
    """
    A registered user.

    `balances` holds individual (non-group) balances keyed by counterpart id.
    Positive = counterpart owes this user, negative = this user owes them.
    """

    id: str
    name: str
    email: str = ""
    balances: dict[str, Decimal] = Field(default_factory=dict)

    @field_serializer("balances")
    def serialize_balances(self, v: dict[str, Decimal]) -> dict[str, str]:
        return {k: str(val) for k, val in v.items()}

    def total_owed(self) -> Decimal:
        """Total this user owes others individually."""
        return sum((-b for b in self.balances.values() if b < 0), Decimal("0"))

    def total_owing(self) -> Decimal:
        """Total others owe this user individually."""
        return sum((b for b in self.balances.values() if b > 0), Decimal("0"))


class UserBalanceSummary(BaseModel):
    """A user's individual and per-group balances, aggregated for display."""

    user_id: str
    individual: dict[str, Decimal] = Field(default_factory=dict)
    groups: dict[str, dict[str, Decimal]] = Field(default_factory=dict)

    @property
    def total_owed(self) -> Decimal:
        """Everything the user owes, individually and across groups."""
        return sum((-b for b in self._all_balances() if b < 0), Decimal("0"))

    @property
    def total_owing(self) -> Decimal:
        """Everything owed to the user, individually and across groups."""
        return sum((b for b in self._all_balances() if b > 0), Decimal("0"))

    @property
    def net(self) -> Decimal:
        return self.total_owing - self.total_owed

    def _all_balances(self) -> list[Decimal]:
        values = list(self.individual.values())
        for group_balances in self.groups.values():
            values.extend(group_balances.values())
        return values
