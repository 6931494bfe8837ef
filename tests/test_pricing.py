"""Tests for premium pricing and model parameters."""

import math

import pytest

from gas_options.config import ModelParameters, OptionConfig
from gas_options.errors import DomainError
from gas_options.pricing import CONTRACT_SIZE, GWEI, PRECISION, GasOptionPricing
from gas_options.pricing import fixed_point as fp


@pytest.fixture
def params():
    return ModelParameters.from_decimal(
        hurst_exponent="0.38",
        mean_reversion_speed="0.0079",
        volatility="0.0886",
        mean_gas_price_gwei="22",
        min_premium_gwei="0.0001",
        max_price_gwei="100",
    )


@pytest.fixture
def pricing(params):
    return GasOptionPricing(params)


def float_variance(kappa, sigma, hurst, duration):
    if kappa == 0:
        return sigma**2 * duration * duration ** (2 * hurst)
    return sigma**2 * (1 - math.exp(-2 * kappa * duration)) / (2 * kappa) * duration ** (2 * hurst)


class TestModelParameters:
    """Tests for parameter validation."""

    def test_from_decimal(self, params):
        assert params.hurst_exponent == 380_000_000_000_000_000
        assert params.mean_reversion_speed == 7_900_000_000_000_000
        assert params.mean_gas_price == 22 * GWEI
        assert params.min_premium == 100_000
        assert params.max_price == 100 * GWEI

    @pytest.mark.parametrize("hurst", ["0", "1", "1.5"])
    def test_hurst_out_of_range(self, hurst):
        with pytest.raises(DomainError):
            ModelParameters.from_decimal(hurst, "0.0079", "0.0886", "22", "0", "100")

    def test_negative_mean_reversion(self):
        with pytest.raises(DomainError):
            ModelParameters.from_decimal("0.38", "-0.1", "0.0886", "22", "0", "100")

    def test_non_positive_mean(self):
        with pytest.raises(DomainError):
            ModelParameters.from_decimal("0.38", "0.0079", "0.0886", "0", "0", "100")

    def test_float_fields_rejected(self):
        with pytest.raises(DomainError):
            ModelParameters(0.38, 0.0079, 0.0886, 22, 0, 100)

    def test_bool_fields_rejected(self):
        with pytest.raises(DomainError):
            ModelParameters(380 * 10**15, True, 886 * 10**14, 22 * GWEI, 0, 100 * GWEI)

    def test_parameters_are_immutable(self, params):
        with pytest.raises(AttributeError):
            params.volatility = 0

    def test_option_config_validation(self):
        with pytest.raises(DomainError):
            OptionConfig(contract_size=0)
        with pytest.raises(DomainError):
            OptionConfig(keeper_reward_bps=20_000)
        assert OptionConfig().contract_size == CONTRACT_SIZE


class TestExpectedPrice:
    """Tests for the mean-reverting forecast."""

    def test_zero_duration_is_current(self, pricing):
        assert pricing.expected_price(20 * GWEI, 0) == 20 * GWEI

    def test_reverts_up_towards_mean(self, pricing):
        expected = pricing.expected_price(20 * GWEI, 100)
        assert 20 * GWEI < expected < 22 * GWEI
        assert expected / GWEI == pytest.approx(22 - 2 * math.exp(-0.79), rel=1e-9)

    def test_reverts_down_towards_mean(self, pricing):
        expected = pricing.expected_price(40 * GWEI, 60)
        assert 22 * GWEI < expected < 40 * GWEI

    def test_long_horizon_is_mean(self, pricing):
        """Past the exp domain the decay factor is zero."""
        assert pricing.expected_price(5 * GWEI, 20_000) == 22 * GWEI

    def test_reference_forecast(self, pricing):
        """20 gwei now, 60 blocks out, mean 22 gwei: about 20.75 gwei."""
        assert pricing.expected_price(20 * GWEI, 60) == pytest.approx(20.75 * GWEI, abs=0.01 * GWEI)

    def test_reference_decay_factor(self, params):
        decay = fp.exp(-params.mean_reversion_speed * 60)
        assert decay == pytest.approx(0.6225073 * PRECISION, abs=10**12)


class TestVariance:
    """Tests for the fractional OU variance."""

    def test_zero_duration(self, pricing):
        assert pricing.variance(0) == 0

    @pytest.mark.parametrize("duration", [1, 10, 100, 1_000])
    def test_matches_closed_form(self, pricing, duration):
        expected = float_variance(0.0079, 0.0886, 0.38, duration)
        assert pricing.variance(duration) / PRECISION == pytest.approx(expected, rel=1e-9)

    def test_increasing_in_duration(self, pricing):
        values = [pricing.variance(d) for d in (1, 5, 50, 500, 5_000)]
        assert values == sorted(values)

    def test_zero_mean_reversion(self):
        params = ModelParameters.from_decimal("0.38", "0", "0.0886", "22", "0", "100")
        pricing = GasOptionPricing(params)
        expected = float_variance(0, 0.0886, 0.38, 100)
        assert pricing.variance(100) / PRECISION == pytest.approx(expected, rel=1e-9)


class TestQuote:
    """Tests for the volatility-adjusted quote and probability factor."""

    def test_quote_clamped_to_max(self, pricing):
        assert pricing.volatility_adjusted_quote(21 * GWEI, 0, GWEI, 100) == GWEI

    def test_quote_clamped_to_min(self, pricing):
        assert pricing.volatility_adjusted_quote(GWEI, 90 * GWEI, 100 * GWEI, 1) == 90 * GWEI

    def test_quote_inverted_bounds_never_fail(self, pricing):
        assert pricing.volatility_adjusted_quote(GWEI, 5, 1, 10) == 5

    def test_quote_in_price_units(self, pricing):
        """The spread is a few gwei, well below the forecast."""
        expected = pricing.expected_price(20 * GWEI, 60)
        quote = pricing.volatility_adjusted_quote(expected, 0, 100 * GWEI, 60)
        spread = math.sqrt(float_variance(0.0079, 0.0886, 0.38, 60)) * math.exp(-0.0079 * 60)
        assert quote / GWEI == pytest.approx(spread, rel=1e-8)
        assert 1.457 * GWEI <= quote <= 1.725 * GWEI

    def test_quote_capped_at_forecast(self, pricing):
        assert pricing.volatility_adjusted_quote(GWEI // 2, 0, 100 * GWEI, 60) == GWEI // 2
        assert pricing.volatility_adjusted_quote(0, 0, 100 * GWEI, 60) == 0

    def test_probability_factor_in_the_money(self, pricing):
        assert pricing.probability_factor(20 * GWEI, 15 * GWEI) == PRECISION
        assert pricing.probability_factor(20 * GWEI, 20 * GWEI) == PRECISION

    def test_probability_factor_at_max(self, pricing):
        assert pricing.probability_factor(20 * GWEI, 100 * GWEI) == 0
        assert pricing.probability_factor(20 * GWEI, 150 * GWEI) == 0

    def test_probability_factor_linear(self, pricing):
        assert pricing.probability_factor(20 * GWEI, 60 * GWEI) == PRECISION // 2


class TestPremium:
    """Tests for premium calculation."""

    def test_reference_premium(self, pricing):
        """One contract, 20 gwei now, strike 30 gwei, 60 blocks: about 0.00015 ETH."""
        premium = pricing.calculate_premium(20 * GWEI, 30 * GWEI, 60)
        assert premium == pytest.approx(15 * 10**13, abs=225 * 10**11)

    def test_reference_per_unit_premium(self, pricing):
        per_unit = pricing.per_unit_premium(20 * GWEI, 30 * GWEI, 60)
        assert per_unit == pytest.approx(1.5 * GWEI, abs=0.225 * GWEI)

    def test_premium_below_forecast_value(self, pricing):
        """An out-of-the-money contract costs less than the gas it covers at the forecast."""
        expected = pricing.expected_price(20 * GWEI, 60)
        for strike in (21, 25, 30, 50):
            premium = pricing.calculate_premium(20 * GWEI, strike * GWEI, 60)
            assert premium < expected * CONTRACT_SIZE

    def test_higher_strike_is_cheaper(self, pricing):
        """Strike 25 costs less than strike 20 at current price 20, duration 100."""
        at_25 = pricing.calculate_premium(20 * GWEI, 25 * GWEI, 100)
        at_20 = pricing.calculate_premium(20 * GWEI, 20 * GWEI, 100)
        assert 0 < at_25 < at_20

    @pytest.mark.parametrize("duration", [1, 10, 100, 2_000])
    def test_monotone_in_strike(self, pricing, duration):
        strikes = [s * GWEI // 2 for s in range(1, 240)]
        premiums = [pricing.calculate_premium(20 * GWEI, k, duration) for k in strikes]
        assert all(a >= b for a, b in zip(premiums, premiums[1:]))

    def test_monotone_in_strike_above_mean(self, pricing):
        strikes = [s * GWEI for s in range(1, 120)]
        premiums = [pricing.calculate_premium(45 * GWEI, k, 50) for k in strikes]
        assert all(a >= b for a, b in zip(premiums, premiums[1:]))

    def test_floor_at_min_premium(self, pricing, params):
        assert pricing.calculate_premium(20 * GWEI, 100 * GWEI, 100) == params.min_premium

    def test_scales_with_contracts(self, pricing):
        one = pricing.calculate_premium(20 * GWEI, 25 * GWEI, 100)
        assert pricing.calculate_premium(20 * GWEI, 25 * GWEI, 100, contracts=3) == 3 * one

    def test_in_the_money_includes_forecast_intrinsic(self, pricing):
        current, strike, duration = 20 * GWEI, 10 * GWEI, 100
        expected = pricing.expected_price(current, duration)
        premium = pricing.calculate_premium(current, strike, duration)
        assert premium >= (expected - strike) * CONTRACT_SIZE


class TestPayoff:
    """Tests for settlement amounts."""

    def test_intrinsic_value(self, pricing):
        assert pricing.intrinsic_value(30 * GWEI, 25 * GWEI, 2) == 5 * GWEI * CONTRACT_SIZE * 2
        assert pricing.intrinsic_value(20 * GWEI, 25 * GWEI, 2) == 0

    def test_max_liability(self, pricing):
        assert pricing.max_liability(25 * GWEI, 1) == 75 * GWEI * CONTRACT_SIZE
        assert pricing.max_liability(150 * GWEI, 1) == 0

    def test_break_even_rounds_up(self, pricing):
        assert pricing.break_even_price(25 * GWEI, CONTRACT_SIZE * 3 + 1, 1) == 25 * GWEI + 4
        assert pricing.break_even_price(25 * GWEI, CONTRACT_SIZE * 3, 1) == 25 * GWEI + 3
