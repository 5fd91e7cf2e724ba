"""Group ledger - membership, pairwise balances and expense history for one group.

A Group is the unit of consistency: every read and write of its state happens
under the group's own lock, and each mutation is validated in full before the
balance graph is touched. Members are notified after the change is committed.
"""

import logging
import threading
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any

from . import ledger, templates
from .errors import DuplicateMemberError, InvalidInputError, NotAMemberError, OutstandingBalanceError
from .models import (
    EPSILON,
    BalanceGraph,
    Expense,
    IdGenerator,
    Settlement,
    SplitType,
    User,
    to_decimal,
    to_text,
)
from .notifications import Notifier, notify_all
from .splits import calculate_splits

logger = logging.getLogger(__name__)


class Group:
    """
    A named set of members sharing a balance graph.

    Members are kept in insertion order, which is also notification order.
    """

    def __init__(
        self,
        group_id: str,
        name: str,
        notifiers: Iterable[Notifier] = (),
        currency: str = "INR",
        ids: IdGenerator | None = None,
    ):
        """
        Initialize a Group.

        Args:
            group_id: Unique group id
            name: Display name
            notifiers: Callables receiving (user_id, message) for each event
            currency: Currency code used in notification text
            ids: Id source for expenses and settlements (shared with the service)
        """
        self.id = group_id
        self.name = name
        self.currency = currency

        self._ids = ids or IdGenerator()
        self._notifiers: list[Notifier] = list(notifiers)
        self._members: dict[str, User] = {}
        self._balances: BalanceGraph = {}
        self._expenses: dict[str, Expense] = {}
        self._settlements: list[Settlement] = []
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"Group(id={self.id!r}, name={self.name!r}, members={len(self._members)})"

    # === Membership ===

    def add_notifier(self, notifier: Notifier) -> None:
        with self._lock:
            self._notifiers.append(notifier)

    @property
    def members(self) -> list[User]:
        with self._lock:
            return list(self._members.values())

    @property
    def member_ids(self) -> list[str]:
        with self._lock:
            return list(self._members)

    def is_member(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._members

    def _require_member(self, user_id: str) -> None:
        if user_id not in self._members:
            raise NotAMemberError(
                f"User {user_id} is not a member of group {self.name}",
                details={"user_id": user_id, "group_id": self.id},
            )

    def add_member(self, user: User) -> None:
        """
        Add a user with an empty balance row.

        Raises:
            DuplicateMemberError: If the user is already a member
        """
        with self._lock:
            if user.id in self._members:
                raise DuplicateMemberError(
                    f"User {user.id} is already a member of group {self.name}",
                    details={"user_id": user.id, "group_id": self.id},
                )
            self._members[user.id] = user
            self._balances[user.id] = {}
            recipients = list(self._members)

        logger.info("Added %s to group %s", user.id, self.id)
        self._notify(
            recipients, templates.MEMBER_JOINED.format(name=user.name, group_name=self.name)
        )

    def can_user_leave_group(self, user_id: str) -> bool:
        """
        True if no balance of the member exceeds EPSILON in magnitude.

        Raises:
            NotAMemberError: If user_id is not a member
        """
        with self._lock:
            self._require_member(user_id)
            return all(abs(amount) <= EPSILON for amount in self._balances[user_id].values())

    def remove_member(self, user_id: str) -> bool:
        """
        Remove a member whose balances are all settled.

        Clears the member's row and their column in every other row.

        Raises:
            NotAMemberError: If user_id is not a member
            OutstandingBalanceError: If the member still owes or is owed money
        """
        with self._lock:
            if not self.can_user_leave_group(user_id):
                raise OutstandingBalanceError(
                    f"User {user_id} cannot leave group {self.name} without clearing balances",
                    details=dict(self._balances[user_id]),
                )
            user = self._members.pop(user_id)
            del self._balances[user_id]
            for row in self._balances.values():
                row.pop(user_id, None)
            recipients = [user_id, *self._members]

        logger.info("Removed %s from group %s", user_id, self.id)
        self._notify(recipients, templates.MEMBER_LEFT.format(name=user.name, group_name=self.name))
        return True

    # === Reads ===

    def get_user_group_balances(self, user_id: str) -> dict[str, Decimal]:
        """
        Copy of one member's balances within the group.

        Raises:
            NotAMemberError: If user_id is not a member
        """
        with self._lock:
            self._require_member(user_id)
            return dict(self._balances[user_id])

    def balances(self) -> BalanceGraph:
        """Snapshot of the whole balance graph."""
        with self._lock:
            return ledger.snapshot(self._balances)

    def net_positions(self) -> dict[str, Decimal]:
        with self._lock:
            return ledger.net_positions(self._balances)

    @property
    def expenses(self) -> list[Expense]:
        """Expense history, oldest first."""
        with self._lock:
            return list(self._expenses.values())

    def get_expense(self, expense_id: str) -> Expense | None:
        with self._lock:
            return self._expenses.get(expense_id)

    @property
    def settlements(self) -> list[Settlement]:
        with self._lock:
            return list(self._settlements)

    # === Mutations ===

    def add_expense(
        self,
        description: str,
        amount: Any,
        paid_by: str,
        participants: Sequence[str],
        split_type: SplitType | str = SplitType.EQUAL,
        values: Sequence[Any] | None = None,
    ) -> Expense:
        """
        Record an expense and update balances.

        For every split not owned by the payer, the payer's claim on that
        participant grows by the split amount.

        Args:
            description: What the expense was for
            amount: Total amount
            paid_by: Member who paid
            participants: Members sharing the expense (may include the payer)
            split_type: EQUAL, EXACT or PERCENTAGE
            values: Per-participant amounts or percentages

        Returns:
            The recorded Expense

        Raises:
            NotAMemberError: If the payer or a participant is not a member
            InvalidInputError: If the description is not text or the split cannot be computed
        """
        description = to_text(description, "Description")
        with self._lock:
            self._require_member(paid_by)
            for user_id in participants:
                self._require_member(user_id)

            splits = calculate_splits(split_type, amount, participants, values)
            expense = Expense(
                id=self._ids.next("expense"),
                description=description,
                amount=to_decimal(amount),
                paid_by=paid_by,
                splits=splits,
                split_type=SplitType(split_type),
                group_id=self.id,
            )

            for split in splits:
                if split.user_id != paid_by:
                    ledger.adjust_balance(self._balances, paid_by, split.user_id, split.amount)
            self._expenses[expense.id] = expense

            recipients = list(self._members)
            payer_name = self._members[paid_by].name

        logger.info(
            "Group %s: %s %s paid by %s (%s)",
            self.id, expense.id, expense.amount, paid_by, expense.split_type.value,
        )
        self._notify(
            recipients,
            templates.EXPENSE_ADDED.format(
                description=description,
                amount_display=templates.format_currency(expense.amount, self.currency),
                paid_by=payer_name,
            ),
        )
        return expense

    def settle_payment(self, from_id: str, to_id: str, amount: Any) -> Settlement:
        """
        Record a payment from one member to another.

        Paying more than is owed is allowed and flips the direction of the debt.

        Raises:
            NotAMemberError: If either user is not a member
            InvalidInputError: If amount is not positive or from_id == to_id
        """
        value = to_decimal(amount)
        if value <= 0:
            raise InvalidInputError(f"Settlement amount must be positive, got {value}")
        if from_id == to_id:
            raise InvalidInputError("Cannot settle a payment with yourself")

        with self._lock:
            self._require_member(from_id)
            self._require_member(to_id)

            ledger.adjust_balance(self._balances, from_id, to_id, value)
            settlement = Settlement(
                id=self._ids.next("settlement"),
                from_user=from_id,
                to_user=to_id,
                amount=value,
                group_id=self.id,
            )
            self._settlements.append(settlement)

            recipients = list(self._members)
            from_name = self._members[from_id].name
            to_name = self._members[to_id].name

        logger.info("Group %s: %s paid %s %s", self.id, from_id, to_id, value)
        self._notify(
            recipients,
            templates.SETTLEMENT_RECORDED.format(
                from_name=from_name,
                to_name=to_name,
                amount_display=templates.format_currency(value, self.currency),
            ),
        )
        return settlement

    def simplify_debts(self) -> BalanceGraph:
        """
        Replace the balance graph with its simplified equivalent.

        Every member's net position is unchanged.

        Returns:
            Snapshot of the new balance graph
        """
        with self._lock:
            before = ledger.edge_count(self._balances)
            simplified = ledger.simplify_debts(self._balances)
            for member_id in self._members:
                simplified.setdefault(member_id, {})
            self._balances = simplified
            after = ledger.edge_count(simplified)
            result = ledger.snapshot(simplified)
            recipients = list(self._members)

        logger.info("Group %s: simplified %d debts to %d", self.id, before, after)
        self._notify(recipients, templates.DEBTS_SIMPLIFIED.format(group_name=self.name))
        return result

    def _notify(self, recipients: list[str], message: str) -> None:
        with self._lock:
            notifiers = list(self._notifiers)
        notify_all(notifiers, recipients, message)
