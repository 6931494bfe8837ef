"""Writer collateral bookkeeping for one option instance."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import FundsError, StateError


@dataclass(frozen=True)
class CollateralSnapshot:
    balance: int
    reserved: int
    total_deposited: int
    total_disbursed: int


class CollateralAccount:
    """
    Collateral held by an instance.

    ``balance`` is everything the instance holds (writer deposits plus
    premiums); ``reserved`` is the sum of maximum liabilities of active
    positions. ``free = balance - reserved`` never goes negative: payouts and
    withdrawals are drawn from free collateral only.

    Parameters
    ----------
    initial_deposit : int
        Collateral posted by the writer at creation (wei)
    """

    def __init__(self, initial_deposit: int = 0):
        if initial_deposit < 0:
            raise FundsError("negative deposit")
        self._balance = initial_deposit
        self._reserved = 0
        self._total_deposited = initial_deposit
        self._total_disbursed = 0

    @property
    def balance(self) -> int:
        """Total value held by the instance."""
        return self._balance

    @property
    def reserved(self) -> int:
        """Collateral set aside for active positions."""
        return self._reserved

    @property
    def free(self) -> int:
        """Collateral not backing any active position."""
        return self._balance - self._reserved

    @property
    def total_deposited(self) -> int:
        return self._total_deposited

    @property
    def total_disbursed(self) -> int:
        return self._total_disbursed

    def deposit(self, amount: int):
        """Add writer top-ups or premiums to the balance."""
        if amount < 0:
            raise FundsError("negative deposit")
        self._balance += amount
        self._total_deposited += amount

    def reserve(self, amount: int):
        """
        Set aside ``amount`` for a new position.

        Raises
        ------
        FundsError
            If free collateral cannot cover ``amount``
        """
        if amount < 0:
            raise FundsError("negative reservation")
        if amount > self.free:
            raise FundsError("insufficient collateral")
        self._reserved += amount

    def release(self, amount: int):
        """Return a position's reservation to free collateral."""
        if amount < 0 or amount > self._reserved:
            raise StateError("release exceeds reservation")
        self._reserved -= amount

    def disburse(self, amount: int) -> int:
        """
        Remove ``amount`` of free collateral for a payout or withdrawal.

        Raises
        ------
        FundsError
            If ``amount`` exceeds free collateral
        """
        if amount < 0:
            raise FundsError("negative payout")
        if amount > self.free:
            raise FundsError("insufficient collateral")
        self._balance -= amount
        self._total_disbursed += amount
        return amount

    def capped_payout(self, amount: int) -> int:
        """``amount`` limited to what free collateral can pay."""
        return min(max(amount, 0), self.free)

    def snapshot(self) -> CollateralSnapshot:
        return CollateralSnapshot(
            self._balance, self._reserved, self._total_deposited, self._total_disbursed
        )

    def restore(self, snapshot: CollateralSnapshot):
        self._balance = snapshot.balance
        self._reserved = snapshot.reserved
        self._total_deposited = snapshot.total_deposited
        self._total_disbursed = snapshot.total_disbursed
