"""Keeper that batch-settles instances whose positions expire now."""

from __future__ import annotations

import logging
from typing import List

from ..errors import GasOptionError
from ..market import BatchSettlement, OptionFactory

logger = logging.getLogger(__name__)


class Keeper:
    """
    Sweeps every instance of a factory once per reference block.

    Parameters
    ----------
    factory : OptionFactory
        Registry whose instances are checked
    address : str
        Keeper address that receives settlement rewards
    """

    def __init__(self, factory: OptionFactory, address: str = "keeper"):
        self.factory = factory
        self.address = address
        self.settlements: List[BatchSettlement] = []
        self.failures = 0

    @property
    def total_rewards(self) -> int:
        return sum(s.keeper_reward for s in self.settlements)

    def check_expiry(self) -> List[BatchSettlement]:
        """
        Batch-settle every instance with positions expiring at the current block.

        A failing instance is logged and skipped; the rest of the sweep
        continues.

        Returns
        -------
        list[BatchSettlement]
            Settlements made during this sweep
        """
        current = self.factory.oracle.number
        settled = []
        for option in self.factory.get_all_options():
            if option.get_first_to_expire() != current:
                continue
            try:
                result = option.batch_settle(self.address)
            except GasOptionError as e:
                self.failures += 1
                logger.error("keeper failed to settle %s at block %d: %s", option.address, current, e)
                continue
            settled.append(result)

        self.settlements.extend(settled)
        return settled
