"""Base fee path simulation."""

import numpy as np
from typing import Optional

from ..pricing.fixed_point import GWEI


class MeanRevertingBaseFeeSimulator:
    """
    Mean-reverting (Ornstein-Uhlenbeck) simulator for the reference-chain base fee.

    The log base fee reverts to the log of the long-run mean, one step per block:

        x[t+1] = x[t] + kappa * (log(mu) - x[t]) + sigma * eps,   eps ~ N(0, 1)
        fee[t] = max(exp(x[t]), floor)

    Parameters
    ----------
    initial_base_fee : float
        Starting base fee in gwei
    mean_base_fee : float
        Long-run mean base fee in gwei (mu)
    mean_reversion_speed : float
        Per-block reversion speed (kappa)
    volatility : float
        Per-block volatility of the log base fee (sigma)
    min_base_fee : float
        Floor on simulated base fees in gwei
    random_seed : int, optional
        Random seed for reproducibility
    """

    def __init__(
        self,
        initial_base_fee: float,
        mean_base_fee: float = 22.0,
        mean_reversion_speed: float = 0.0079,
        volatility: float = 0.0886,
        min_base_fee: float = 0.01,
        random_seed: Optional[int] = None,
    ):
        if initial_base_fee <= 0 or mean_base_fee <= 0:
            raise ValueError("base fees must be positive")
        if not 0 <= mean_reversion_speed <= 1:
            raise ValueError(f"mean_reversion_speed must be in [0, 1]: {mean_reversion_speed}")
        if volatility < 0:
            raise ValueError(f"volatility must be >= 0: {volatility}")

        self.initial_base_fee = initial_base_fee
        self.mean_base_fee = mean_base_fee
        self.mean_reversion_speed = mean_reversion_speed
        self.volatility = volatility
        self.min_base_fee = min_base_fee
        self._rng = np.random.default_rng(random_seed)

    def simulate(self, n_blocks: int, n_paths: int = 1) -> np.ndarray:
        """
        Simulate base fee paths.

        Parameters
        ----------
        n_blocks : int
            Number of blocks to simulate
        n_paths : int
            Number of paths to simulate

        Returns
        -------
        np.ndarray
            Base fees in gwei, shape (n_blocks+1, n_paths); first row is the
            initial base fee
        """
        log_mean = np.log(self.mean_base_fee)
        log_fees = np.zeros((n_blocks + 1, n_paths))
        log_fees[0, :] = np.log(self.initial_base_fee)

        for i in range(n_blocks):
            shocks = self._rng.normal(0.0, 1.0, n_paths)
            log_fees[i + 1, :] = (
                log_fees[i, :]
                + self.mean_reversion_speed * (log_mean - log_fees[i, :])
                + self.volatility * shocks
            )

        return np.maximum(np.exp(log_fees), self.min_base_fee)

    def simulate_single_path(self, n_blocks: int) -> np.ndarray:
        """Simulate one path of base fees in gwei, shape (n_blocks+1,)."""
        return self.simulate(n_blocks, n_paths=1)[:, 0]

    def simulate_wei(self, n_blocks: int) -> np.ndarray:
        """Simulate one path of base fees in wei per gas (int64)."""
        return np.round(self.simulate_single_path(n_blocks) * GWEI).astype(np.int64)

    def set_seed(self, seed: int):
        """Set random seed."""
        self._rng = np.random.default_rng(seed)

    def get_params(self) -> dict:
        """Get model parameters."""
        return {
            "initial_base_fee": self.initial_base_fee,
            "mean_base_fee": self.mean_base_fee,
            "mean_reversion_speed": self.mean_reversion_speed,
            "volatility": self.volatility,
            "min_base_fee": self.min_base_fee,
        }
