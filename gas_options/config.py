"""Model parameters, instance settings and simulation configuration dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import DomainError
from .pricing.engine import CONTRACT_SIZE
from .pricing.fixed_point import GWEI, PRECISION, parse_units

SETTLEMENT_GRACE_BLOCKS = 1
BPS_DENOM = 10_000


@dataclass(frozen=True)
class ModelParameters:
    """
    Price process model for one option instance.

    Dimensionless fields are fixed point (1e18 = 1.0); prices are wei per
    gas unit and ``min_premium`` is wei. The whole set is validated on
    construction and replaced as one value, never field by field.
    """
    hurst_exponent: int  # H in (0, 1)
    mean_reversion_speed: int  # kappa, per block
    volatility: int  # sigma, per block
    mean_gas_price: int  # mu, long-run anchor price
    min_premium: int  # Floor on any quoted premium
    max_price: int  # Upper clamp for the probability weighting

    def __post_init__(self) -> None:
        for name in (
            "hurst_exponent", "mean_reversion_speed", "volatility",
            "mean_gas_price", "min_premium", "max_price",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise DomainError(f"{name} must be an integer in fixed-point units")
        if not 0 < self.hurst_exponent < PRECISION:
            raise DomainError(f"hurst_exponent must be in (0, 1): {self.hurst_exponent}")
        if self.mean_reversion_speed < 0:
            raise DomainError(f"mean_reversion_speed must be >= 0: {self.mean_reversion_speed}")
        if self.volatility < 0:
            raise DomainError(f"volatility must be >= 0: {self.volatility}")
        if self.mean_gas_price <= 0:
            raise DomainError(f"mean_gas_price must be > 0: {self.mean_gas_price}")
        if self.min_premium < 0:
            raise DomainError(f"min_premium must be >= 0: {self.min_premium}")
        if self.max_price <= 0:
            raise DomainError(f"max_price must be > 0: {self.max_price}")

    @classmethod
    def from_decimal(
        cls,
        hurst_exponent,
        mean_reversion_speed,
        volatility,
        mean_gas_price_gwei,
        min_premium_gwei,
        max_price_gwei,
    ) -> "ModelParameters":
        """Build parameters from human-readable decimals (gwei for prices)."""
        return cls(
            hurst_exponent=parse_units(hurst_exponent, 18),
            mean_reversion_speed=parse_units(mean_reversion_speed, 18),
            volatility=parse_units(volatility, 18),
            mean_gas_price=parse_units(mean_gas_price_gwei, 9),
            min_premium=parse_units(min_premium_gwei, 9),
            max_price=parse_units(max_price_gwei, 9),
        )


@dataclass(frozen=True)
class OptionConfig:
    """Settlement rules shared by every instance a factory creates."""
    contract_size: int = CONTRACT_SIZE
    settlement_grace_blocks: int = SETTLEMENT_GRACE_BLOCKS
    keeper_reward: int = 100_000 * GWEI  # 0.0001 ETH per batch
    keeper_reward_bps: int = 0  # Extra share of the batch's payouts

    def __post_init__(self) -> None:
        if self.contract_size <= 0:
            raise DomainError(f"contract_size must be positive: {self.contract_size}")
        if self.settlement_grace_blocks < 0:
            raise DomainError(
                f"settlement_grace_blocks must be >= 0: {self.settlement_grace_blocks}"
            )
        if self.keeper_reward < 0:
            raise DomainError(f"keeper_reward must be >= 0: {self.keeper_reward}")
        if not 0 <= self.keeper_reward_bps <= BPS_DENOM:
            raise DomainError(f"keeper_reward_bps must be in [0, {BPS_DENOM}]")


@dataclass
class PriceModelConfig:
    """Configuration for the simulated reference-chain base fee."""
    initial_base_fee_gwei: float = 20.0
    mean_base_fee_gwei: float = 22.0
    mean_reversion_speed: float = 0.0079  # Per block, on log base fee
    volatility: float = 0.0886  # Per block, on log base fee
    min_base_fee_gwei: float = 0.01


@dataclass
class BuyerFlowConfig:
    """Configuration for simulated buyer demand."""
    n_buyers: int = 20
    orders_per_block: float = 0.5  # Poisson arrival rate
    strike_offsets_gwei: Tuple[float, ...] = (0.0, 2.0, 5.0, 10.0)
    durations: Tuple[int, ...] = (10, 50, 100)
    max_contracts: int = 3
    self_settle_prob: float = 0.5  # Chance a holder settles at expiry themselves
    clear_stale: bool = True  # Holders clear positions they missed


@dataclass
class KeeperConfig:
    """Configuration for the simulated keeper."""
    address: str = "keeper"
    uptime: float = 0.9  # Chance the keeper checks in any given block


@dataclass
class SimulationConfig:
    """Complete simulation configuration."""
    start_block: int = 20_000_000
    n_blocks: int = 1_000
    available_blocks: int = 2_000
    writer: str = "writer"
    collateral_ether: str = "1"
    random_seed: Optional[int] = None

    parameters: ModelParameters = field(
        default_factory=lambda: ModelParameters.from_decimal(
            hurst_exponent="0.38",
            mean_reversion_speed="0.0079",
            volatility="0.0886",
            mean_gas_price_gwei="22",
            min_premium_gwei="0.0001",
            max_price_gwei="100",
        )
    )
    option: OptionConfig = field(default_factory=OptionConfig)
    price_model: PriceModelConfig = field(default_factory=PriceModelConfig)
    buyers: BuyerFlowConfig = field(default_factory=BuyerFlowConfig)
    keeper: KeeperConfig = field(default_factory=KeeperConfig)

    @property
    def collateral(self) -> int:
        """Initial writer collateral in wei."""
        return parse_units(self.collateral_ether, 18)

    @property
    def end_block(self) -> int:
        return self.start_block + self.n_blocks


@dataclass
class SimState:
    """State at a single simulated reference block."""
    block: int
    base_fee: int

    # Collateral
    collateral: int
    reserved: int

    # Positions
    active_positions: int
    bought: int
    settled_by_holder: int
    settled_by_keeper: int
    cleared: int
    rejected_orders: int

    # Cash flows, cumulative
    premiums: int
    payouts: int
    keeper_rewards: int

    # Writer totals
    writer_pnl: int
    block_pnl: int


@dataclass
class SimulationResult:
    """Complete simulation results."""
    config: SimulationConfig
    history: List[SimState]

    @property
    def final_state(self) -> SimState:
        return self.history[-1]

    @property
    def total_pnl(self) -> int:
        return self.final_state.writer_pnl

    @property
    def total_return(self) -> float:
        return self.total_pnl / self.config.collateral

    @property
    def equity_curve(self) -> List[int]:
        return [s.collateral for s in self.history]

    @property
    def block_pnls(self) -> List[int]:
        return [s.block_pnl for s in self.history]
