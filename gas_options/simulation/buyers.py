"""Configurable buyer demand simulation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np

from ..pricing.fixed_point import GWEI


@dataclass
class BuyerOrder:
    """A buyer's intent to open one position."""
    buyer: str
    strike: int  # Wei per gas
    duration: int  # Blocks
    contracts: int


class BuyerFlow:
    """
    Random order flow from a fixed pool of buyer identities.

    Each block a Poisson number of orders arrives. Every order comes from a
    buyer without an open position, picks a strike as an offset above the
    current base fee, a duration and a contract count.

    Parameters
    ----------
    n_buyers : int
        Size of the buyer pool
    orders_per_block : float
        Average number of orders per block
    strike_offsets_gwei : sequence of float
        Candidate strike offsets above the current base fee, in gwei
    durations : sequence of int
        Candidate durations in blocks
    max_contracts : int
        Upper bound on contracts per order
    self_settle_prob : float
        Chance a holder settles their own position once it expires
    random_seed : int, optional
        Random seed
    """

    def __init__(
        self,
        n_buyers: int = 20,
        orders_per_block: float = 0.5,
        strike_offsets_gwei: Sequence[float] = (0.0, 2.0, 5.0, 10.0),
        durations: Sequence[int] = (10, 50, 100),
        max_contracts: int = 3,
        self_settle_prob: float = 0.5,
        random_seed: Optional[int] = None,
    ):
        if n_buyers <= 0:
            raise ValueError(f"n_buyers must be positive: {n_buyers}")
        if not durations or min(durations) < 1:
            raise ValueError("durations must be non-empty and at least one block")
        if max_contracts < 1:
            raise ValueError(f"max_contracts must be >= 1: {max_contracts}")

        self.buyers = [f"buyer-{i}" for i in range(n_buyers)]
        self.orders_per_block = orders_per_block
        self.strike_offsets_gwei = tuple(strike_offsets_gwei)
        self.durations = tuple(durations)
        self.max_contracts = max_contracts
        self.self_settle_prob = self_settle_prob

        self._rng = np.random.default_rng(random_seed)

    def generate_orders(self, base_fee: int, busy: Iterable[str] = ()) -> List[BuyerOrder]:
        """
        Generate orders for the current block.

        Parameters
        ----------
        base_fee : int
            Current reference base fee (wei per gas)
        busy : iterable of str
            Buyers that already hold an active position

        Returns
        -------
        list[BuyerOrder]
            At most one order per idle buyer
        """
        n_orders = self._rng.poisson(self.orders_per_block)
        if n_orders == 0:
            return []

        busy = set(busy)
        idle = [b for b in self.buyers if b not in busy]
        if not idle:
            return []
        n_orders = min(n_orders, len(idle))

        orders = []
        for buyer in self._rng.choice(idle, size=n_orders, replace=False):
            offset = float(self._rng.choice(self.strike_offsets_gwei))
            strike = max(base_fee + int(round(offset * GWEI)), 1)
            orders.append(BuyerOrder(
                buyer=str(buyer),
                strike=strike,
                duration=int(self._rng.choice(self.durations)),
                contracts=int(self._rng.integers(1, self.max_contracts + 1)),
            ))
        return orders

    def wants_to_settle(self) -> bool:
        """Whether a holder with an expired position settles it this block."""
        return bool(self._rng.random() < self.self_settle_prob)

    def set_seed(self, seed: int):
        """Set random seed."""
        self._rng = np.random.default_rng(seed)
