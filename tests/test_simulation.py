"""Tests for simulation components."""

import pytest
import numpy as np

from gas_options.analysis import SettlementMetrics, SimulationReport
from gas_options.config import (
    BuyerFlowConfig,
    KeeperConfig,
    ModelParameters,
    OptionConfig,
    SimulationConfig,
)
from gas_options.market import L1BlockOracle, OptionFactory, ValueLedger
from gas_options.pricing import ETHER, GWEI
from gas_options.simulation import (
    BuyerFlow,
    GasOptionSimulator,
    Keeper,
    MeanRevertingBaseFeeSimulator,
)


@pytest.fixture
def params():
    return ModelParameters.from_decimal("0.38", "0.0079", "0.0886", "22", "0.0001", "100")


class TestMeanRevertingBaseFeeSimulator:
    """Tests for base fee path simulation."""

    def test_initial_base_fee(self):
        sim = MeanRevertingBaseFeeSimulator(initial_base_fee=20, random_seed=42)
        path = sim.simulate_single_path(100)
        assert path[0] == pytest.approx(20)

    def test_path_shape(self):
        sim = MeanRevertingBaseFeeSimulator(initial_base_fee=20, random_seed=42)
        assert sim.simulate(50, n_paths=3).shape == (51, 3)

    def test_floor(self):
        sim = MeanRevertingBaseFeeSimulator(
            initial_base_fee=1, mean_base_fee=0.02, volatility=0.5,
            min_base_fee=0.01, random_seed=1,
        )
        assert np.all(sim.simulate_single_path(500) >= 0.01)

    def test_reproducible(self):
        a = MeanRevertingBaseFeeSimulator(20, random_seed=7).simulate_wei(200)
        b = MeanRevertingBaseFeeSimulator(20, random_seed=7).simulate_wei(200)
        np.testing.assert_array_equal(a, b)

    def test_wei_path(self):
        path = MeanRevertingBaseFeeSimulator(20, random_seed=3).simulate_wei(10)
        assert path.dtype == np.int64
        assert path[0] == 20 * GWEI

    def test_reverts_to_mean(self):
        """Without noise the path converges to the mean."""
        sim = MeanRevertingBaseFeeSimulator(
            initial_base_fee=80, mean_base_fee=22, mean_reversion_speed=0.05,
            volatility=0.0, random_seed=0,
        )
        path = sim.simulate_single_path(1_000)
        assert path[-1] == pytest.approx(22, rel=1e-6)
        assert np.all(np.diff(path) <= 0)

    def test_invalid_params(self):
        with pytest.raises(ValueError):
            MeanRevertingBaseFeeSimulator(initial_base_fee=0)
        with pytest.raises(ValueError):
            MeanRevertingBaseFeeSimulator(initial_base_fee=20, mean_reversion_speed=2)


class TestBuyerFlow:
    """Tests for buyer order generation."""

    def test_orders_use_idle_buyers(self):
        flow = BuyerFlow(n_buyers=5, orders_per_block=50, random_seed=1)
        busy = ["buyer-0", "buyer-1"]
        orders = flow.generate_orders(20 * GWEI, busy=busy)
        assert len(orders) == 3
        assert {o.buyer for o in orders} == {"buyer-2", "buyer-3", "buyer-4"}

    def test_order_fields(self):
        flow = BuyerFlow(
            n_buyers=10, orders_per_block=5, strike_offsets_gwei=(2.0,),
            durations=(7,), max_contracts=2, random_seed=2,
        )
        for _ in range(20):
            for order in flow.generate_orders(20 * GWEI):
                assert order.strike == 22 * GWEI
                assert order.duration == 7
                assert 1 <= order.contracts <= 2

    def test_all_busy(self):
        flow = BuyerFlow(n_buyers=2, orders_per_block=10, random_seed=1)
        assert flow.generate_orders(20 * GWEI, busy=flow.buyers) == []

    def test_settle_probability_extremes(self):
        assert BuyerFlow(self_settle_prob=1.0, random_seed=1).wants_to_settle()
        assert not BuyerFlow(self_settle_prob=0.0, random_seed=1).wants_to_settle()

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            BuyerFlow(n_buyers=0)
        with pytest.raises(ValueError):
            BuyerFlow(durations=(0,))


class TestKeeper:
    """Tests for the keeper sweep."""

    @pytest.fixture
    def market(self, params):
        oracle = L1BlockOracle(number=1_000, basefee=20 * GWEI)
        factory = OptionFactory(oracle, ValueLedger())
        return oracle, factory

    def _buy(self, option, holder, duration):
        premium = option.quote(25 * GWEI, duration)
        option.buy(holder, 25 * GWEI, duration, 1, premium)

    def test_settles_only_due_instances(self, market, params):
        oracle, factory = market
        first = factory.create_option("w1", params, 500, ETHER)
        second = factory.create_option("w2", params, 500, ETHER)
        self._buy(first, "alice", 10)
        self._buy(second, "bob", 20)
        keeper = Keeper(factory)

        assert keeper.check_expiry() == []
        oracle.mine_until(1_010, basefee=30 * GWEI)
        settled = keeper.check_expiry()

        assert [s.settled for s in settled] == [1]
        assert not first.get_position("alice").is_active
        assert second.get_position("bob").is_active
        assert keeper.total_rewards == OptionConfig().keeper_reward
        assert factory.wallets.balance_of("keeper") == keeper.total_rewards

    def test_failure_does_not_stop_sweep(self, params):
        oracle = L1BlockOracle(number=1_000, basefee=20 * GWEI)
        wallets = ValueLedger()
        factory = OptionFactory(oracle, wallets, OptionConfig(keeper_reward=ETHER // 10))
        poor = factory.create_option("w1", params, 500, 10**16)
        rich = factory.create_option("w2", params, 500, ETHER)
        self._buy(poor, "alice", 10)
        self._buy(rich, "bob", 10)
        keeper = Keeper(factory, address="k")

        oracle.mine_until(1_010, basefee=30 * GWEI)
        settled = keeper.check_expiry()

        assert len(settled) == 1
        assert keeper.failures == 1
        assert poor.get_position("alice").is_active
        assert not rich.get_position("bob").is_active


def small_config(**overrides):
    fields = dict(
        n_blocks=300,
        available_blocks=400,
        random_seed=7,
        buyers=BuyerFlowConfig(n_buyers=10, orders_per_block=1.0, durations=(5, 10)),
    )
    fields.update(overrides)
    return SimulationConfig(**fields)


class TestGasOptionSimulator:
    """Tests for the full simulation loop."""

    @pytest.fixture
    def result(self):
        return GasOptionSimulator(small_config()).run()

    def test_history_length(self, result):
        assert len(result.history) == 301
        assert result.history[0].block == result.config.start_block
        assert result.final_state.block == result.config.end_block

    def test_positions_are_sold(self, result):
        assert result.final_state.bought > 0
        assert result.final_state.premiums > 0

    def test_collateral_accounting(self, result):
        initial = result.config.collateral
        for state in result.history:
            assert state.collateral >= state.reserved
            assert state.writer_pnl == state.premiums - state.payouts - state.keeper_rewards
            assert state.collateral == initial + state.writer_pnl

    def test_every_position_accounted_for(self, result):
        final = result.final_state
        terminated = final.settled_by_holder + final.settled_by_keeper + final.cleared
        assert final.bought == terminated + final.active_positions

    def test_block_pnl_sums_to_total(self, result):
        assert sum(result.block_pnls) == result.total_pnl

    def test_reproducible(self):
        a = GasOptionSimulator(small_config()).run().final_state
        b = GasOptionSimulator(small_config()).run().final_state
        assert a == b

    def test_keeper_only(self):
        config = small_config(
            buyers=BuyerFlowConfig(
                n_buyers=10, orders_per_block=1.0, durations=(5, 10), self_settle_prob=0.0
            ),
            keeper=KeeperConfig(uptime=1.0),
        )
        final = GasOptionSimulator(config).run().final_state
        assert final.settled_by_holder == 0
        assert final.cleared == 0
        assert final.settled_by_keeper > 0

    def test_no_settlement_means_clearing(self):
        config = small_config(
            buyers=BuyerFlowConfig(
                n_buyers=10, orders_per_block=1.0, durations=(5, 10), self_settle_prob=0.0
            ),
            keeper=KeeperConfig(uptime=0.0),
        )
        final = GasOptionSimulator(config).run().final_state
        assert final.settled_by_keeper == 0
        assert final.payouts == 0
        assert final.cleared > 0

    def test_orders_rejected_after_close(self):
        config = small_config(available_blocks=100)
        final = GasOptionSimulator(config).run().final_state
        assert final.rejected_orders > 0

    def test_run_step(self):
        sim = GasOptionSimulator(small_config(n_blocks=5))
        state = sim.run_step()
        assert state.block == 20_000_000
        assert sim.get_state(0) == state
        assert sim.get_state(5) is None
        sim.reset()
        assert sim.get_history() == []


class TestSettlementMetrics:
    """Tests for writer metrics."""

    def test_loss_ratio(self):
        assert SettlementMetrics.loss_ratio(100, 25) == 0.25
        assert SettlementMetrics.loss_ratio(0, 25) == 0.0

    def test_max_drawdown(self):
        assert SettlementMetrics.max_drawdown([100, 120, 90, 130]) == pytest.approx(0.25)
        assert SettlementMetrics.max_drawdown([100]) == 0.0

    def test_max_drawdown_duration(self):
        assert SettlementMetrics.max_drawdown_duration([100, 90, 95, 101, 99]) == 2

    def test_win_rate_ignores_flat_blocks(self):
        assert SettlementMetrics.win_rate([0, 5, -1, 0, 3]) == pytest.approx(2 / 3)

    def test_settlement_breakdown(self):
        breakdown = SettlementMetrics.settlement_breakdown(2, 1, 1)
        assert breakdown["terminated"] == 4
        assert breakdown["holder_share"] == 0.5
        assert SettlementMetrics.settlement_breakdown(0, 0, 0)["cleared_share"] == 0.0

    def test_utilization(self):
        assert SettlementMetrics.utilization([1, 3], [4, 4]) == pytest.approx(0.5)


class TestSimulationReport:
    """Tests for reporting."""

    @pytest.fixture
    def report(self):
        return SimulationReport(GasOptionSimulator(small_config(n_blocks=100)).run())

    def test_history_df(self, report):
        df = report.history_df
        assert len(df) == 101
        assert {"block", "base_fee_gwei", "writer_pnl_eth", "active_positions"} <= set(df.columns)

    def test_summary(self, report):
        summary = report.get_summary()
        assert set(summary) == {"config", "performance", "settlement", "position_stats"}
        assert summary["config"]["collateral_eth"] == "1"
        assert summary["performance"]["total_pnl"] == report.result.total_pnl

    def test_to_csv(self, report, tmp_path):
        path = tmp_path / "history.csv"
        report.to_csv(str(path))
        assert path.read_text().splitlines()[0].startswith("block,")

    def test_print_summary(self, report, capsys):
        report.print_summary()
        assert "GAS OPTION SIMULATION RESULTS" in capsys.readouterr().out
