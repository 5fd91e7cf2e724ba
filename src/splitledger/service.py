"""LedgerService - registry of users and groups, and the entry point for clients.

Every operation resolves ids, validates, then delegates to a Group or to the
individual-balance logic here. The service is constructed explicitly and owned
by whatever composes the application; there is no global instance.
"""

import logging
import threading
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any

from . import config, ledger, templates
from .errors import InvalidInputError, NotAMemberError, NotFoundError
from .group import Group
from .models import (
    BalanceGraph,
    Expense,
    IdGenerator,
    Settlement,
    SplitType,
    User,
    UserBalanceSummary,
    to_decimal,
    to_text,
)
from .notifications import Notifier, notify_all
from .splits import calculate_splits

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Manages users, groups and individual (non-group) balances.

    Groups serialize their own state. The service lock guards the registries
    and every user's individual balance map.
    """

    def __init__(
        self,
        notifiers: Iterable[Notifier] = (),
        currency: str | None = None,
    ):
        """
        Initialize LedgerService.

        Args:
            notifiers: Callables receiving (user_id, message), shared by all groups
            currency: Currency code for message text (default: SPLITLEDGER_CURRENCY or INR)
        """
        self.currency = (currency or config.get_currency()).upper()

        self._notifiers: list[Notifier] = list(notifiers)
        self._ids = IdGenerator()
        self._users: dict[str, User] = {}
        self._groups: dict[str, Group] = {}
        self._expenses: dict[str, Expense] = {}  # individual expenses
        self._settlements: list[Settlement] = []  # individual settlements
        self._lock = threading.RLock()

    def add_notifier(self, notifier: Notifier) -> None:
        """Register a notifier with the service and every existing group."""
        with self._lock:
            self._notifiers.append(notifier)
            groups = list(self._groups.values())
        for group in groups:
            group.add_notifier(notifier)

    # === Users ===

    def create_user(self, name: str, email: str = "") -> User:
        """Register a new user."""
        if not to_text(name, "User name").strip():
            raise InvalidInputError("User name cannot be blank")
        to_text(email, "Email")
        with self._lock:
            user = User(id=self._ids.next("user"), name=name.strip(), email=email)
            self._users[user.id] = user
        logger.info("Created user %s (%s)", user.id, user.name)
        return user

    def get_user(self, user_id: str) -> User:
        """
        Get a user by id.

        Raises:
            NotFoundError: If no such user exists
        """
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
        return user

    def list_users(self) -> list[User]:
        with self._lock:
            return list(self._users.values())

    def user_names(self) -> dict[str, str]:
        """User id -> display name, for formatting."""
        with self._lock:
            return {user_id: user.name for user_id, user in self._users.items()}

    # === Groups ===

    def create_group(self, name: str) -> Group:
        """Create an empty group."""
        if not to_text(name, "Group name").strip():
            raise InvalidInputError("Group name cannot be blank")
        with self._lock:
            group = Group(
                self._ids.next("group"),
                name.strip(),
                notifiers=self._notifiers,
                currency=self.currency,
                ids=self._ids,
            )
            self._groups[group.id] = group
        logger.info("Created group %s (%s)", group.id, group.name)
        return group

    def get_group(self, group_id: str) -> Group:
        """
        Get a group by id.

        Raises:
            NotFoundError: If no such group exists
        """
        with self._lock:
            group = self._groups.get(group_id)
        if group is None:
            raise NotFoundError(f"Group {group_id} not found", details={"group_id": group_id})
        return group

    def list_groups(self) -> list[Group]:
        with self._lock:
            return list(self._groups.values())

    def add_user_to_group(self, user_id: str, group_id: str) -> None:
        """
        Raises:
            NotFoundError: If the user or group does not exist
            DuplicateMemberError: If the user is already a member
        """
        user = self.get_user(user_id)
        self.get_group(group_id).add_member(user)

    def remove_user_from_group(self, user_id: str, group_id: str) -> bool:
        """
        Remove a user from a group once their group balances are clear.

        Raises:
            NotFoundError: If the user or group does not exist, or the user is not a member
            OutstandingBalanceError: If the user still has balances in the group
        """
        group = self.get_group(group_id)
        self.get_user(user_id)
        return group.remove_member(user_id)

    def add_expense_to_group(
        self,
        group_id: str,
        description: str,
        amount: Any,
        paid_by: str,
        participants: Sequence[str],
        split_type: SplitType | str = SplitType.EQUAL,
        values: Sequence[Any] | None = None,
    ) -> Expense:
        """
        Raises:
            NotFoundError: If the group does not exist
            NotAMemberError: If the payer or a participant is not a member
            InvalidInputError: If the split cannot be computed
        """
        return self.get_group(group_id).add_expense(
            description, amount, paid_by, participants, split_type, values
        )

    def settle_payment_in_group(
        self, group_id: str, from_id: str, to_id: str, amount: Any
    ) -> Settlement:
        """
        Raises:
            NotFoundError: If the group does not exist or either user is not a member
            InvalidInputError: If amount is not positive
        """
        return self.get_group(group_id).settle_payment(from_id, to_id, amount)

    def simplify_group_debts(self, group_id: str) -> BalanceGraph:
        """Simplify a group's debts and return the new balance graph."""
        return self.get_group(group_id).simplify_debts()

    def get_group_balances(self, group_id: str) -> BalanceGraph:
        """Snapshot of a group's balance graph."""
        return self.get_group(group_id).balances()

    # === Individual (non-group) balances ===

    def add_individual_expense(
        self,
        description: str,
        amount: Any,
        paid_by: str,
        to_id: str,
        split_type: SplitType | str = SplitType.EQUAL,
        values: Sequence[Any] | None = None,
    ) -> Expense:
        """
        Record a two-party expense outside any group.

        The split is computed over [paid_by, to_id]; to_id's share becomes debt
        owed to paid_by.

        Raises:
            NotFoundError: If either user does not exist
            InvalidInputError: If the description is not text, the split cannot be
                computed or paid_by == to_id
        """
        description = to_text(description, "Description")
        payer = self.get_user(paid_by)
        other = self.get_user(to_id)
        if payer.id == other.id:
            raise InvalidInputError("An individual expense needs two different users")

        splits = calculate_splits(split_type, amount, [payer.id, other.id], values)
        share = next(s.amount for s in splits if s.user_id == other.id)

        with self._lock:
            expense = Expense(
                id=self._ids.next("expense"),
                description=description,
                amount=to_decimal(amount),
                paid_by=payer.id,
                splits=splits,
                split_type=SplitType(split_type),
            )
            ledger.adjust_balance(
                {payer.id: payer.balances, other.id: other.balances}, payer.id, other.id, share
            )
            self._expenses[expense.id] = expense

        logger.info("Individual %s: %s paid %s for %s", expense.id, payer.id, expense.amount, other.id)
        notify_all(
            self._notifiers,
            [payer.id, other.id],
            templates.INDIVIDUAL_EXPENSE.format(
                description=description,
                amount_display=templates.format_currency(expense.amount, self.currency),
                paid_by=payer.name,
                to_name=other.name,
            ),
        )
        return expense

    def settle_individual_payment(self, from_id: str, to_id: str, amount: Any) -> Settlement:
        """
        Record a payment between two users outside any group.

        Raises:
            NotFoundError: If either user does not exist
            InvalidInputError: If amount is not positive or from_id == to_id
        """
        payer = self.get_user(from_id)
        payee = self.get_user(to_id)
        value = to_decimal(amount)
        if value <= 0:
            raise InvalidInputError(f"Settlement amount must be positive, got {value}")
        if payer.id == payee.id:
            raise InvalidInputError("Cannot settle a payment with yourself")

        with self._lock:
            ledger.adjust_balance(
                {payer.id: payer.balances, payee.id: payee.balances}, payer.id, payee.id, value
            )
            settlement = Settlement(
                id=self._ids.next("settlement"), from_user=payer.id, to_user=payee.id, amount=value
            )
            self._settlements.append(settlement)

        logger.info("Individual settlement: %s paid %s %s", payer.id, payee.id, value)
        notify_all(
            self._notifiers,
            [payer.id, payee.id],
            templates.INDIVIDUAL_SETTLEMENT.format(
                from_name=payer.name,
                to_name=payee.name,
                amount_display=templates.format_currency(value, self.currency),
            ),
        )
        return settlement

    @property
    def individual_expenses(self) -> list[Expense]:
        with self._lock:
            return list(self._expenses.values())

    @property
    def individual_settlements(self) -> list[Settlement]:
        with self._lock:
            return list(self._settlements)

    def get_user_balances(self, user_id: str) -> UserBalanceSummary:
        """
        Aggregate a user's individual balances and balances in every group they belong to.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self.get_user(user_id)
        with self._lock:
            individual: dict[str, Decimal] = dict(user.balances)
            groups = list(self._groups.values())

        per_group: dict[str, dict[str, Decimal]] = {}
        for group in groups:
            # Membership can change between listing groups and reading one
            try:
                per_group[group.id] = group.get_user_group_balances(user.id)
            except NotAMemberError:
                continue
        return UserBalanceSummary(user_id=user.id, individual=individual, groups=per_group)
