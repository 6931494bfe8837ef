"""Main simulation engine for gas option instances."""

from __future__ import annotations

import logging
from typing import Optional, List

import numpy as np

from ..config import SimulationConfig, SimState, SimulationResult
from ..errors import FundsError, StateError
from ..market import GasOption, OptionFactory, PriceOracle, ValueLedger
from .buyers import BuyerFlow
from .keeper import Keeper
from .price_paths import MeanRevertingBaseFeeSimulator

logger = logging.getLogger(__name__)


class GasOptionSimulator:
    """
    Block-by-block simulation of one writer's gas option instance.

    Each block the base fee moves along a mean-reverting path, holders with
    expired positions may settle them, the keeper (when online) batch-settles
    positions expiring exactly now, stale positions are cleared and new buyer
    orders arrive.

    Parameters
    ----------
    config : SimulationConfig
        Complete simulation configuration
    """

    def __init__(self, config: SimulationConfig):
        self.config = config
        self._history: List[SimState] = []
        self._current_step = 0
        self._initialized = False

        # Components (initialized in setup)
        self._oracle: Optional[PriceOracle] = None
        self._wallets: Optional[ValueLedger] = None
        self._factory: Optional[OptionFactory] = None
        self._option: Optional[GasOption] = None
        self._buyers: Optional[BuyerFlow] = None
        self._keeper: Optional[Keeper] = None
        self._keeper_rng: Optional[np.random.Generator] = None

    def setup(self):
        """Initialize all simulation components."""
        cfg = self.config

        path = self._generate_price_path(cfg)
        self._oracle = PriceOracle(path, start_block=cfg.start_block)
        self._wallets = ValueLedger()
        self._factory = OptionFactory(self._oracle, self._wallets, cfg.option)
        self._option = self._factory.create_option(
            writer=cfg.writer,
            params=cfg.parameters,
            available_blocks=cfg.available_blocks,
            collateral=cfg.collateral,
        )

        seed = cfg.random_seed + 1 if cfg.random_seed is not None else None
        self._buyers = BuyerFlow(
            n_buyers=cfg.buyers.n_buyers,
            orders_per_block=cfg.buyers.orders_per_block,
            strike_offsets_gwei=cfg.buyers.strike_offsets_gwei,
            durations=cfg.buyers.durations,
            max_contracts=cfg.buyers.max_contracts,
            self_settle_prob=cfg.buyers.self_settle_prob,
            random_seed=seed,
        )
        self._keeper = Keeper(self._factory, cfg.keeper.address)
        self._keeper_rng = np.random.default_rng(
            cfg.random_seed + 2 if cfg.random_seed is not None else None
        )

        self._history = []
        self._current_step = 0
        self._initialized = True
        logger.info(
            "simulation set up: blocks %d..%d, collateral %d wei",
            cfg.start_block, cfg.end_block, cfg.collateral,
        )

    def _generate_price_path(self, cfg: SimulationConfig) -> np.ndarray:
        """Generate the base fee path in wei per gas."""
        model = cfg.price_model
        simulator = MeanRevertingBaseFeeSimulator(
            initial_base_fee=model.initial_base_fee_gwei,
            mean_base_fee=model.mean_base_fee_gwei,
            mean_reversion_speed=model.mean_reversion_speed,
            volatility=model.volatility,
            min_base_fee=model.min_base_fee_gwei,
            random_seed=cfg.random_seed,
        )
        return simulator.simulate_wei(cfg.n_blocks)

    @property
    def option(self) -> Optional[GasOption]:
        return self._option

    @property
    def wallets(self) -> Optional[ValueLedger]:
        return self._wallets

    @property
    def keeper(self) -> Optional[Keeper]:
        return self._keeper

    def run(self) -> SimulationResult:
        """
        Run the complete simulation.

        Returns
        -------
        SimulationResult
            Complete simulation results with history
        """
        if not self._initialized:
            self.setup()

        while not self.is_complete:
            self.run_step()

        return SimulationResult(
            config=self.config,
            history=self._history,
        )

    def run_step(self) -> SimState:
        """
        Run a single simulation block.

        Returns
        -------
        SimState
            State after this block
        """
        if not self._initialized:
            self.setup()

        step = self._current_step
        if step > 0:
            self._oracle.advance()

        option = self._option
        current = self._oracle.number
        grace = self.config.option.settlement_grace_blocks
        prev = self._history[-1] if self._history else None

        premiums = prev.premiums if prev else 0
        payouts = prev.payouts if prev else 0
        keeper_rewards = prev.keeper_rewards if prev else 0
        bought = prev.bought if prev else 0
        settled_by_holder = prev.settled_by_holder if prev else 0
        settled_by_keeper = prev.settled_by_keeper if prev else 0
        cleared = prev.cleared if prev else 0
        rejected = prev.rejected_orders if prev else 0

        # Holders settle their own expired positions
        for holder in self._active_holders():
            position = option.get_position(holder)
            if position.expiration_block <= current <= position.expiration_block + grace:
                if self._buyers.wants_to_settle():
                    payouts += option.settle(holder)
                    settled_by_holder += 1

        # Keeper sweep
        if self._keeper_rng.random() < self.config.keeper.uptime:
            for settlement in self._keeper.check_expiry():
                payouts += settlement.total_payout
                keeper_rewards += settlement.keeper_reward
                settled_by_keeper += settlement.settled

        # Stale positions
        if self.config.buyers.clear_stale:
            for holder in self._active_holders():
                if current > option.get_position(holder).expiration_block + grace:
                    option.clear(holder)
                    cleared += 1

        # New orders
        orders = self._buyers.generate_orders(self._oracle.basefee, busy=self._active_holders())
        for order in orders:
            try:
                premium = option.quote(order.strike, order.duration, order.contracts)
                option.buy(order.buyer, order.strike, order.duration, order.contracts, premium)
            except (StateError, FundsError) as e:
                rejected += 1
                logger.debug("order from %s rejected at block %d: %s", order.buyer, current, e)
                continue
            premiums += premium
            bought += 1

        writer_pnl = premiums - payouts - keeper_rewards
        state = SimState(
            block=current,
            base_fee=self._oracle.basefee,
            collateral=option.collateral,
            reserved=option.reserved_collateral,
            active_positions=option.active_positions,
            bought=bought,
            settled_by_holder=settled_by_holder,
            settled_by_keeper=settled_by_keeper,
            cleared=cleared,
            rejected_orders=rejected,
            premiums=premiums,
            payouts=payouts,
            keeper_rewards=keeper_rewards,
            writer_pnl=writer_pnl,
            block_pnl=writer_pnl - (prev.writer_pnl if prev else 0),
        )

        self._history.append(state)
        self._current_step += 1

        return state

    def _active_holders(self) -> List[str]:
        positions = [self._option.get_position(b) for b in self._buyers.buyers]
        return [p.holder for p in positions if p is not None and p.is_active]

    def get_history(self) -> List[SimState]:
        """Get full simulation history."""
        return self._history.copy()

    def get_state(self, step: int) -> Optional[SimState]:
        """Get state at a specific step."""
        if 0 <= step < len(self._history):
            return self._history[step]
        return None

    def reset(self):
        """Reset simulation to initial state."""
        self._history = []
        self._current_step = 0
        self._initialized = False

    @property
    def is_complete(self) -> bool:
        """Check if simulation is complete."""
        return self._current_step > self.config.n_blocks
