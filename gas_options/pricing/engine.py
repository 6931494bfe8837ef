"""Gas option pricing under a fractional mean-reverting base fee model.

The base fee is modelled as an Ornstein-Uhlenbeck process whose variance
grows with fractional-Brownian-motion scaling:

    E[P_t]   = mu + (P_0 - mu) * exp(-kappa * t)
    Var[P_t] = sigma^2 * (1 - exp(-2 * kappa * t)) / (2 * kappa) * t^(2H)

with ``t`` measured in reference-chain blocks. For ``kappa = 0`` the variance
takes its limit ``sigma^2 * t^(1 + 2H)``.

Reference: Meister & Prince, "Gas Fees on the Ethereum Blockchain: From
Foundations to Derivatives Valuations" (2024).

All arithmetic is integer fixed point (see ``fixed_point``): prices are wei
per gas unit, premiums and payouts are wei.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import fixed_point as fp
from .fixed_point import GWEI, PRECISION

if TYPE_CHECKING:
    from ..config import ModelParameters

CONTRACT_SIZE = 100_000  # Gas units per contract


class GasOptionPricing:
    """
    Premium quotes for call options on the reference-chain base fee.

    Stateless apart from the parameters it is built with; every method is
    read-only and can be called by anyone before committing funds.

    Parameters
    ----------
    params : ModelParameters
        Price process model
    contract_size : int
        Gas units covered by one contract
    """

    def __init__(self, params: "ModelParameters", contract_size: int = CONTRACT_SIZE):
        self.params = params
        self.contract_size = contract_size

    def _decay(self, rate: int, duration: int) -> int:
        """``exp(-rate * duration)``, taken as its zero limit past the exp domain."""
        exponent = rate * duration
        if exponent >= fp.EXP_UPPER_BOUND:
            return 0
        return fp.exp(-exponent)

    def expected_price(self, current: int, duration: int) -> int:
        """
        Expected base fee after ``duration`` blocks of mean reversion.

        Parameters
        ----------
        current : int
            Current base fee (wei per gas)
        duration : int
            Blocks until expiry, ``>= 0``

        Returns
        -------
        int
            ``mu + (current - mu) * exp(-kappa * duration)``
        """
        mu = self.params.mean_gas_price
        factor = self._decay(self.params.mean_reversion_speed, duration)
        return mu + (current - mu) * factor // PRECISION

    def variance(self, duration: int) -> int:
        """
        Fixed-point variance of the log-memory OU process over ``duration`` blocks.
        """
        if duration <= 0:
            return 0
        kappa = self.params.mean_reversion_speed
        sigma_squared = fp.mul(self.params.volatility, self.params.volatility)
        hurst_term = fp.pow_int(duration, 2 * self.params.hurst_exponent)

        if kappa == 0:
            # sigma^2 * d * d^(2H); d^(1+2H) would leave the exp domain sooner
            return sigma_squared * duration * hurst_term // PRECISION

        decay = self._decay(2 * kappa, duration)
        reversion_term = (PRECISION - decay) * PRECISION // (2 * kappa)
        return fp.mul(fp.mul(sigma_squared, reversion_term), hurst_term)

    def volatility_adjusted_quote(
        self,
        expected: int,
        min_price: int,
        max_price: int,
        duration: int,
    ) -> int:
        """
        Per-gas-unit price estimate combining the forecast with its spread.

        The spread ``sqrt(variance)`` is read in gwei per gas, the unit the
        model is calibrated in, and damped by the mean-reversion factor
        ``exp(-kappa * duration)``. It is capped at the forecast itself and
        then clamped into ``[min_price, max_price]``. Never fails.

        Parameters
        ----------
        expected : int
            Expected base fee at expiry
        min_price : int
            Lower clamp
        max_price : int
            Upper clamp
        duration : int
            Blocks until expiry

        Returns
        -------
        int
            Clamped per-unit estimate (wei per gas)
        """
        if max_price < min_price:
            max_price = min_price
        decay = self._decay(self.params.mean_reversion_speed, duration)
        spread = fp.sqrt(self.variance(duration)) * decay // PRECISION * GWEI // PRECISION
        spread = min(spread, max(expected, 0))
        return max(min_price, min(spread, max_price))

    def probability_factor(self, current: int, strike: int) -> int:
        """
        Fixed-point weight for the chance of the base fee reaching ``strike``.

        One at or below the current price, zero at or above ``max_price``,
        linear in between.
        """
        max_price = self.params.max_price
        if strike >= max_price:
            return 0
        if strike <= current:
            return PRECISION
        return (max_price - strike) * PRECISION // (max_price - current)

    def per_unit_premium(self, current: int, strike: int, duration: int) -> int:
        """
        Premium per gas unit, before contract sizing and the premium floor.

        Out of the money the volatility-adjusted quote is weighted by the
        probability factor; in the money the forecast intrinsic value
        ``expected - strike`` is added on top, so the price is continuous at
        the money and never increases with the strike.
        """
        expected = self.expected_price(current, duration)
        quote = self.volatility_adjusted_quote(expected, 0, self.params.max_price, duration)
        time_value = quote * self.probability_factor(current, strike) // PRECISION
        if expected > strike:
            return (expected - strike) + time_value
        return time_value

    def calculate_premium(
        self,
        current: int,
        strike: int,
        duration: int,
        contracts: int = 1,
    ) -> int:
        """
        Total premium for ``contracts`` options, floored at ``min_premium``.

        Parameters
        ----------
        current : int
            Current base fee (wei per gas)
        strike : int
            Strike base fee (wei per gas)
        duration : int
            Blocks until expiry
        contracts : int
            Number of contracts

        Returns
        -------
        int
            Premium in wei
        """
        per_unit = self.per_unit_premium(current, strike, duration)
        premium = per_unit * self.contract_size * contracts
        return max(premium, self.params.min_premium)

    def max_liability(self, strike: int, contracts: int) -> int:
        """Largest payout a position can claim while prices stay below ``max_price``."""
        return max(self.params.max_price - strike, 0) * self.contract_size * contracts

    def intrinsic_value(self, observed: int, strike: int, contracts: int) -> int:
        """
        Settlement payoff at an observed base fee.

        Parameters
        ----------
        observed : int
            Base fee observed at settlement (wei per gas)
        strike : int
            Strike base fee
        contracts : int
            Number of contracts

        Returns
        -------
        int
            ``max(observed - strike, 0) * contract_size * contracts`` in wei
        """
        return max(observed - strike, 0) * self.contract_size * contracts

    def break_even_price(self, strike: int, premium: int, contracts: int) -> int:
        """Base fee at which the payoff repays the premium (rounded up)."""
        gas_units = self.contract_size * contracts
        return strike + -(-premium // gas_units)
