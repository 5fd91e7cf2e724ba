"""Member notifications - fire-and-forget fan-out to pluggable notifiers.

A notifier is any callable taking (user_id, message). Delivery is best-effort:
a failing notifier is logged and skipped, it never undoes a ledger change.
"""

import logging
from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]


def notify_all(notifiers: Iterable[Notifier], recipients: Iterable[str], message: str) -> int:
    """
    Deliver message to every recipient through every notifier.

    Args:
        notifiers: Notifier callables
        recipients: User ids, in delivery order
        message: Human-readable text

    Returns:
        Number of deliveries that failed
    """
    notifiers = list(notifiers)
    failures = 0
    for user_id in recipients:
        for notifier in notifiers:
            try:
                notifier(user_id, message)
            except Exception:
                failures += 1
                logger.warning("Notification to %s failed: %s", user_id, message, exc_info=True)
    return failures


def log_notifier(user_id: str, message: str) -> None:
    """Notifier that writes to the module logger."""
    logger.info("[notify %s] %s", user_id, message)


class NotificationOutbox:
    """Notifier that keeps every delivered message in memory, in order."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def __call__(self, user_id: str, message: str) -> None:
        self.messages.append((user_id, message))

    def for_user(self, user_id: str) -> list[str]:
        """Messages delivered to one user."""
        return [message for recipient, message in self.messages if recipient == user_id]

    def clear(self) -> None:
        self.messages.clear()
