"""Writer and settlement metrics."""

import numpy as np
from typing import Sequence


class SettlementMetrics:
    """
    Metrics calculator for gas option simulation results.

    All methods are static and can be used independently. Amounts are in
    wei unless stated otherwise.
    """

    @staticmethod
    def loss_ratio(premiums: int, payouts: int) -> float:
        """
        Payouts per unit of premium collected.

        Parameters
        ----------
        premiums : int
            Total premiums collected
        payouts : int
            Total payouts to holders

        Returns
        -------
        float
            ``payouts / premiums`` (0 when nothing was sold)
        """
        if premiums <= 0:
            return 0.0
        return payouts / premiums

    @staticmethod
    def max_drawdown(equity_curve: Sequence[float]) -> float:
        """
        Calculate maximum drawdown.

        Parameters
        ----------
        equity_curve : Sequence[float]
            Equity values over time

        Returns
        -------
        float
            Maximum drawdown as a positive fraction (e.g., 0.15 = 15%)
        """
        equity = np.array(equity_curve, dtype=float)
        if len(equity) < 2:
            return 0.0

        running_max = np.maximum.accumulate(equity)
        running_max[running_max == 0] = np.nan
        drawdown = (running_max - equity) / running_max

        if np.all(np.isnan(drawdown)):
            return 0.0
        return float(np.nanmax(drawdown))

    @staticmethod
    def max_drawdown_duration(equity_curve: Sequence[float]) -> int:
        """Maximum number of consecutive blocks spent below a previous peak."""
        equity = np.array(equity_curve, dtype=float)
        if len(equity) < 2:
            return 0

        running_max = np.maximum.accumulate(equity)
        in_drawdown = equity < running_max

        max_duration = 0
        current_duration = 0

        for is_dd in in_drawdown:
            if is_dd:
                current_duration += 1
                max_duration = max(max_duration, current_duration)
            else:
                current_duration = 0

        return max_duration

    @staticmethod
    def win_rate(block_pnl: Sequence[float]) -> float:
        """Fraction of blocks with a non-zero PnL change that were positive."""
        pnl = np.array(block_pnl, dtype=float)
        moved = pnl[pnl != 0]
        if len(moved) == 0:
            return 0.0
        return float(np.mean(moved > 0))

    @staticmethod
    def utilization(reserved: Sequence[float], collateral: Sequence[float]) -> float:
        """Average share of collateral reserved for active positions."""
        reserved = np.array(reserved, dtype=float)
        collateral = np.array(collateral, dtype=float)
        mask = collateral > 0
        if not np.any(mask):
            return 0.0
        return float(np.mean(reserved[mask] / collateral[mask]))

    @staticmethod
    def settlement_breakdown(by_holder: int, by_keeper: int, cleared: int) -> dict:
        """
        Split of terminated positions by how they ended.

        Returns
        -------
        dict
            Counts and fractions for holder settlement, keeper settlement and
            clearing
        """
        total = by_holder + by_keeper + cleared
        return {
            "settled_by_holder": by_holder,
            "settled_by_keeper": by_keeper,
            "cleared": cleared,
            "terminated": total,
            "holder_share": by_holder / total if total else 0.0,
            "keeper_share": by_keeper / total if total else 0.0,
            "cleared_share": cleared / total if total else 0.0,
        }

    @staticmethod
    def calculate_all(
        equity_curve: Sequence[float],
        block_pnl: Sequence[float],
        initial_collateral: int,
        premiums: int,
        payouts: int,
        keeper_rewards: int,
    ) -> dict:
        """
        Calculate all writer metrics.

        Parameters
        ----------
        equity_curve : Sequence[float]
            Instance collateral over time
        block_pnl : Sequence[float]
            Writer PnL change per block
        initial_collateral : int
            Collateral posted at creation
        premiums, payouts, keeper_rewards : int
            Cumulative cash flows at the end of the run

        Returns
        -------
        dict
            Dictionary of all metrics
        """
        total_pnl = premiums - payouts - keeper_rewards
        total_return = total_pnl / initial_collateral if initial_collateral > 0 else 0.0

        return {
            "total_pnl": total_pnl,
            "total_return": total_return,
            "total_return_pct": total_return * 100,
            "loss_ratio": SettlementMetrics.loss_ratio(premiums, payouts),
            "keeper_cost_ratio": keeper_rewards / premiums if premiums > 0 else 0.0,
            "max_drawdown": SettlementMetrics.max_drawdown(equity_curve),
            "max_drawdown_pct": SettlementMetrics.max_drawdown(equity_curve) * 100,
            "max_drawdown_duration": SettlementMetrics.max_drawdown_duration(equity_curve),
            "win_rate": SettlementMetrics.win_rate(block_pnl),
            "win_rate_pct": SettlementMetrics.win_rate(block_pnl) * 100,
        }
