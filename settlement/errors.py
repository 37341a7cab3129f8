"""
Settlement outcomes surfaced as exceptions.

All derive from ValueError so callers that already treat ValueError as a
rejected request keep working.
"""


class SettlementError(ValueError):
    """Base class for rejected settlement and debt operations."""

    retryable = False


class NothingToPayError(SettlementError):
    """Settlement requested with a total due of zero or less."""


class AlreadySettledError(SettlementError):
    """The period is already covered by a recorded Payment; refresh, don't retry."""


class TransactionConflictError(SettlementError):
    """State changed under the caller; recompute and try again."""

    retryable = True


class DebtAlreadyResolvedError(SettlementError):
    pass


class UnknownEntityError(SettlementError):
    pass
