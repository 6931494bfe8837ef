"""Reference-chain block attribute oracles.

Option instances never read ambient state: the current reference block and
its base fee come from one of these read-only views.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

import numpy as np

from ..errors import StateError

logger = logging.getLogger(__name__)


class L1BlockOracle:
    """
    Latest reference-chain (L1) block attributes as seen from an L2.

    Mirrors the L1 attributes predeploy: readers get ``number``, ``basefee``
    and the related fee scalars; only the sequencer writes them through
    ``set_l1_block_values``. Block numbers never move backwards.

    Parameters
    ----------
    number : int
        Initial reference block number
    basefee : int
        Initial base fee (wei per gas)
    """

    def __init__(
        self,
        number: int = 0,
        basefee: int = 0,
        blob_basefee: int = 1,
        base_fee_scalar: int = 0,
        blob_base_fee_scalar: int = 0,
        timestamp: int = 0,
    ):
        self._number = number
        self._basefee = basefee
        self._blob_basefee = blob_basefee
        self._base_fee_scalar = base_fee_scalar
        self._blob_base_fee_scalar = blob_base_fee_scalar
        self._sequence_number = 0
        self._timestamp = timestamp

    @property
    def number(self) -> int:
        """Current reference block number."""
        return self._number

    @property
    def basefee(self) -> int:
        """Base fee of the current reference block."""
        return self._basefee

    @property
    def blob_basefee(self) -> int:
        return self._blob_basefee

    @property
    def base_fee_scalar(self) -> int:
        return self._base_fee_scalar

    @property
    def blob_base_fee_scalar(self) -> int:
        return self._blob_base_fee_scalar

    @property
    def sequence_number(self) -> int:
        return self._sequence_number

    @property
    def timestamp(self) -> int:
        return self._timestamp

    def set_l1_block_values(
        self,
        number: Optional[int] = None,
        basefee: Optional[int] = None,
        blob_basefee: Optional[int] = None,
        timestamp: Optional[int] = None,
    ):
        """
        Publish new reference block attributes.

        Omitted fields keep their previous value. Every update bumps the
        sequence number.

        Raises
        ------
        StateError
            If ``number`` is lower than the current block
        """
        if number is not None:
            if number < self._number:
                raise StateError(f"block number cannot decrease: {number} < {self._number}")
            self._number = number
        if basefee is not None:
            if basefee < 0:
                raise StateError("basefee must be non-negative")
            self._basefee = basefee
        if blob_basefee is not None:
            self._blob_basefee = blob_basefee
        if timestamp is not None:
            self._timestamp = timestamp
        self._sequence_number += 1
        logger.debug("L1 block %d basefee=%d", self._number, self._basefee)

    def mine(self, blocks: int, basefee: Optional[int] = None):
        """Move the reference chain forward by ``blocks`` blocks."""
        self.set_l1_block_values(number=self._number + blocks, basefee=basefee)

    def mine_until(self, block: int, basefee: Optional[int] = None):
        """Move the reference chain to ``block``."""
        self.set_l1_block_values(number=block, basefee=basefee)


class PriceOracle(L1BlockOracle):
    """
    Block oracle that replays a precomputed base fee path.

    Step ``i`` of the path is reference block ``start_block + i``.

    Parameters
    ----------
    price_path : array-like
        Base fees (wei per gas) indexed by step
    start_block : int
        Reference block number of step 0
    """

    def __init__(self, price_path: Union[np.ndarray, List[int]], start_block: int = 0):
        self._prices = np.asarray(price_path, dtype=np.int64)
        if len(self._prices) == 0:
            raise ValueError("price_path must not be empty")
        self.start_block = start_block
        self._current_step = 0
        super().__init__(number=start_block, basefee=int(self._prices[0]))

    def __len__(self) -> int:
        return len(self._prices)

    @property
    def current_step(self) -> int:
        return self._current_step

    @property
    def last_block(self) -> int:
        return self.start_block + len(self._prices) - 1

    def get_price(self, step: Optional[int] = None) -> int:
        """
        Get base fee at a specific step.

        Parameters
        ----------
        step : int, optional
            Step to query (defaults to current)

        Returns
        -------
        int
            Base fee at the given step
        """
        if step is None:
            step = self._current_step

        if step < 0 or step >= len(self._prices):
            raise IndexError(f"Step {step} out of range [0, {len(self._prices)})")

        return int(self._prices[step])

    def get_history(self, up_to_step: Optional[int] = None) -> np.ndarray:
        """Base fees from step 0 up to ``up_to_step`` (defaults to current)."""
        if up_to_step is None:
            up_to_step = self._current_step

        return self._prices[: up_to_step + 1].copy()

    def advance(self) -> int:
        """
        Advance to the next block.

        Returns
        -------
        int
            New current base fee
        """
        if self._current_step < len(self._prices) - 1:
            self.set_step(self._current_step + 1)
        return self.basefee

    def set_step(self, step: int):
        """Jump forward to ``step`` of the path."""
        if step < 0 or step >= len(self._prices):
            raise IndexError(f"Step {step} out of range [0, {len(self._prices)})")
        self._current_step = step
        self.set_l1_block_values(
            number=self.start_block + step,
            basefee=int(self._prices[step]),
        )

    def set_block(self, block: int):
        """Jump forward to reference block ``block``."""
        self.set_step(block - self.start_block)

    @property
    def all_prices(self) -> np.ndarray:
        """Get full base fee path."""
        return self._prices.copy()
