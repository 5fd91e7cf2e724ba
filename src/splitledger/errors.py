"""Ledger error taxonomy.

Every error is raised while validating input, before any balance is touched,
so a caller that catches one can rely on the ledger being unchanged.
"""

from typing import Any


class LedgerError(Exception):
    """Base class for all ledger failures."""

    kind = "LedgerError"

    def __init__(self, message: str, details: Any | None = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class InvalidInputError(LedgerError):
    """Malformed split parameters, amounts or names."""

    kind = "InvalidInput"


class NotFoundError(LedgerError):
    """An unknown user or group id was referenced."""

    kind = "NotFound"


class NotAMemberError(NotFoundError):
    """A user id was referenced that is not a member of the group."""

    kind = "NotAMember"


class OutstandingBalanceError(LedgerError):
    """A member tried to leave a group while holding a nonzero balance."""

    kind = "OutstandingBalance"


class DuplicateMemberError(LedgerError):
    """A user was added to a group they already belong to."""

    kind = "DuplicateMember"
