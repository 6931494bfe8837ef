"""Simulation reporting."""

from typing import Optional

import numpy as np
import pandas as pd

from ..config import SimulationResult
from ..pricing.fixed_point import ETHER, GWEI, format_units
from .metrics import SettlementMetrics


class SimulationReport:
    """
    Generate reports and summaries from simulation results.

    Parameters
    ----------
    result : SimulationResult
        Completed simulation result
    """

    def __init__(self, result: SimulationResult):
        self.result = result
        self._metrics: Optional[dict] = None

    @property
    def history_df(self) -> pd.DataFrame:
        """Convert history to DataFrame."""
        records = []
        for state in self.result.history:
            records.append({
                "block": state.block,
                "base_fee_gwei": state.base_fee / GWEI,
                "collateral_eth": state.collateral / ETHER,
                "reserved_eth": state.reserved / ETHER,
                "active_positions": state.active_positions,
                "bought": state.bought,
                "settled_by_holder": state.settled_by_holder,
                "settled_by_keeper": state.settled_by_keeper,
                "cleared": state.cleared,
                "rejected_orders": state.rejected_orders,
                "premiums_eth": state.premiums / ETHER,
                "payouts_eth": state.payouts / ETHER,
                "keeper_rewards_eth": state.keeper_rewards / ETHER,
                "writer_pnl_eth": state.writer_pnl / ETHER,
                "block_pnl_eth": state.block_pnl / ETHER,
            })
        return pd.DataFrame(records)

    @property
    def metrics(self) -> dict:
        """Calculate and cache writer metrics."""
        if self._metrics is None:
            final = self.result.final_state
            self._metrics = SettlementMetrics.calculate_all(
                equity_curve=self.result.equity_curve,
                block_pnl=self.result.block_pnls,
                initial_collateral=self.result.config.collateral,
                premiums=final.premiums,
                payouts=final.payouts,
                keeper_rewards=final.keeper_rewards,
            )
        return self._metrics

    def get_settlement_breakdown(self) -> dict:
        final = self.result.final_state
        return SettlementMetrics.settlement_breakdown(
            final.settled_by_holder, final.settled_by_keeper, final.cleared
        )

    def get_position_stats(self) -> dict:
        """
        Get position-related statistics.

        Returns
        -------
        dict
            Position statistics
        """
        df = self.history_df
        final = self.result.final_state

        return {
            "positions_bought": final.bought,
            "rejected_orders": final.rejected_orders,
            "avg_active_positions": float(np.mean(df["active_positions"].values)),
            "max_active_positions": int(np.max(df["active_positions"].values)),
            "avg_utilization": SettlementMetrics.utilization(
                df["reserved_eth"].values, df["collateral_eth"].values
            ),
            "avg_base_fee_gwei": float(np.mean(df["base_fee_gwei"].values)),
            "max_base_fee_gwei": float(np.max(df["base_fee_gwei"].values)),
        }

    def get_summary(self) -> dict:
        """
        Get complete summary report.

        Returns
        -------
        dict
            Summary containing metrics, settlement breakdown and position stats
        """
        cfg = self.result.config
        return {
            "config": {
                "start_block": cfg.start_block,
                "end_block": cfg.end_block,
                "n_blocks": cfg.n_blocks,
                "collateral_eth": format_units(cfg.collateral, 18),
                "mean_gas_price_gwei": format_units(cfg.parameters.mean_gas_price, 9),
                "max_price_gwei": format_units(cfg.parameters.max_price, 9),
                "keeper_uptime": cfg.keeper.uptime,
            },
            "performance": self.metrics,
            "settlement": self.get_settlement_breakdown(),
            "position_stats": self.get_position_stats(),
        }

    def to_csv(self, filepath: str):
        """Export history to CSV."""
        self.history_df.to_csv(filepath, index=False)

    def print_summary(self):
        """Print formatted summary to console."""
        summary = self.get_summary()

        print("\n" + "=" * 60)
        print("GAS OPTION SIMULATION RESULTS")
        print("=" * 60)

        print("\nConfiguration:")
        print(f"  Blocks: {summary['config']['start_block']} to {summary['config']['end_block']}")
        print(f"  Collateral: {summary['config']['collateral_eth']} ETH")
        print(f"  Mean Gas Price: {summary['config']['mean_gas_price_gwei']} gwei")
        print(f"  Max Price: {summary['config']['max_price_gwei']} gwei")
        print(f"  Keeper Uptime: {summary['config']['keeper_uptime']*100:.0f}%")

        print("\nWriter Performance:")
        perf = summary["performance"]
        print(f"  Total PnL: {perf['total_pnl'] / ETHER:.6f} ETH")
        print(f"  Total Return: {perf['total_return_pct']:.2f}%")
        print(f"  Loss Ratio: {perf['loss_ratio']:.2f}")
        print(f"  Keeper Cost Ratio: {perf['keeper_cost_ratio']:.2f}")
        print(f"  Max Drawdown: {perf['max_drawdown_pct']:.2f}%")

        print("\nSettlement:")
        stl = summary["settlement"]
        print(f"  By Holder: {stl['settled_by_holder']}")
        print(f"  By Keeper: {stl['settled_by_keeper']}")
        print(f"  Cleared: {stl['cleared']}")

        print("\nPosition Statistics:")
        pos = summary["position_stats"]
        print(f"  Positions Bought: {pos['positions_bought']}")
        print(f"  Rejected Orders: {pos['rejected_orders']}")
        print(f"  Max Active Positions: {pos['max_active_positions']}")
        print(f"  Avg Collateral Utilization: {pos['avg_utilization']*100:.1f}%")

        print("\n" + "=" * 60)
