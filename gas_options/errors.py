"""Exception hierarchy for gas option instances.

Every failure is an immediate, atomic rejection of the triggering call and
carries a short ``reason`` string that callers (UI, keeper) can match on.
"""


class GasOptionError(Exception):
    """Base exception for all gas option failures."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class DomainError(GasOptionError, ValueError):
    """Numeric input outside a function's or parameter's valid range."""


class AuthorizationError(GasOptionError):
    """Caller is not allowed to perform a writer-only operation."""


class StateError(GasOptionError):
    """Operation is not valid in the current position or instance state."""


class FundsError(GasOptionError):
    """Insufficient payment, or insufficient collateral for a payout.

    Raised from ``batch_settle`` it signals insolvency of the instance and
    needs operator attention rather than a retry.
    """
