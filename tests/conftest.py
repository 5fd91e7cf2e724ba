"""Shared test fixtures for Splitledger tests."""

from decimal import Decimal

import pytest

from splitledger.group import Group
from splitledger.models import BalanceGraph, User
from splitledger.notifications import NotificationOutbox
from splitledger.service import LedgerService


@pytest.fixture
def outbox() -> NotificationOutbox:
    """In-memory notifier that records every delivery."""
    return NotificationOutbox()


@pytest.fixture
def service(outbox: NotificationOutbox) -> LedgerService:
    """A fresh ledger service wired to the outbox."""
    return LedgerService(notifiers=[outbox], currency="INR")


@pytest.fixture
def hostel(service: LedgerService) -> Group:
    """A group with four members: user1..user4 (Aditya, Rohit, Manish, Saurav)."""
    group = service.create_group("Hostel Expenses")
    for name in ("Aditya", "Rohit", "Manish", "Saurav"):
        user = service.create_user(name, f"{name.lower()}@gmail.com")
        service.add_user_to_group(user.id, group.id)
    return group


@pytest.fixture
def group(outbox: NotificationOutbox) -> Group:
    """A standalone group with members A, B and C."""
    g = Group("group1", "Trip", notifiers=[outbox])
    for user_id in ("A", "B", "C"):
        g.add_member(User(id=user_id, name=user_id))
    return g


@pytest.fixture
def chain_graph() -> BalanceGraph:
    """A owes B 100, B owes C 100."""
    return {
        "A": {"B": Decimal("-100")},
        "B": {"A": Decimal("100"), "C": Decimal("-100")},
        "C": {"B": Decimal("100")},
    }
