"""Creation and listing of gas option instances."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..config import ModelParameters, OptionConfig
from ..errors import DomainError
from .gas_option import GasOption
from .oracle import L1BlockOracle
from .wallets import ValueLedger

logger = logging.getLogger(__name__)


class OptionFactory:
    """
    Registry of option instances sharing one oracle and one value ledger.

    Parameters
    ----------
    oracle : L1BlockOracle
        Reference block source handed to every instance
    wallets : ValueLedger, optional
        Ledger receiving refunds, payouts and rewards
    config : OptionConfig, optional
        Settlement rules applied to every instance
    """

    def __init__(
        self,
        oracle: L1BlockOracle,
        wallets: Optional[ValueLedger] = None,
        config: Optional[OptionConfig] = None,
    ):
        self.oracle = oracle
        self.wallets = wallets if wallets is not None else ValueLedger()
        self.config = config or OptionConfig()
        self._options: List[GasOption] = []

    def __len__(self) -> int:
        return len(self._options)

    def create_option(
        self,
        writer: str,
        params: ModelParameters,
        available_blocks: int,
        collateral: int,
    ) -> GasOption:
        """
        Deploy a new instance owned by ``writer``.

        The instance is open for ``available_blocks`` blocks from the current
        reference block and starts with ``collateral`` wei posted.
        """
        if available_blocks <= 0:
            raise DomainError("available_blocks must be positive")
        option = GasOption(
            writer=writer,
            params=params,
            available_until_block=self.oracle.number + available_blocks,
            oracle=self.oracle,
            wallets=self.wallets,
            config=self.config,
            collateral=collateral,
            address=f"gas-option-{len(self._options)}",
        )
        self._options.append(option)
        logger.info(
            "created %s for writer %s: collateral %d, available until %d",
            option.address, writer, collateral, option.available_until_block,
        )
        return option

    def get_all_options(self) -> Tuple[GasOption, ...]:
        return tuple(self._options)
