#!/usr/bin/env python3
"""Example script demonstrating CLI usage of the gas option simulator."""

import sys
from pathlib import Path

# Add the project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gas_options.config import (
    SimulationConfig,
    PriceModelConfig,
    BuyerFlowConfig,
    KeeperConfig,
    ModelParameters,
)
from gas_options.logging_setup import configure_logging
from gas_options.simulation import GasOptionSimulator
from gas_options.analysis.reporting import SimulationReport


def main():
    """Run a sample simulation and print results."""
    print("=" * 60)
    print("Gas Option Simulator - CLI Example")
    print("=" * 60)

    config = SimulationConfig(
        start_block=20_000_000,
        n_blocks=2_000,
        available_blocks=2_500,
        collateral_ether="2",
        random_seed=42,
        parameters=ModelParameters.from_decimal(
            hurst_exponent="0.38",
            mean_reversion_speed="0.0079",
            volatility="0.0886",
            mean_gas_price_gwei="22",
            min_premium_gwei="0.0001",
            max_price_gwei="100",
        ),
        price_model=PriceModelConfig(
            initial_base_fee_gwei=20.0,
            mean_base_fee_gwei=22.0,
        ),
        buyers=BuyerFlowConfig(
            n_buyers=30,
            orders_per_block=0.5,
            strike_offsets_gwei=(0.0, 2.0, 5.0, 10.0),
            durations=(10, 50, 100),
        ),
        keeper=KeeperConfig(uptime=0.9),
    )

    print(f"\nBlocks: {config.start_block} to {config.end_block}")
    print(f"Collateral: {config.collateral_ether} ETH")

    print("\nRunning simulation...")
    simulator = GasOptionSimulator(config)
    result = simulator.run()

    report = SimulationReport(result)
    report.print_summary()

    output_path = Path(__file__).parent / "simulation_results.csv"
    report.to_csv(str(output_path))
    print(f"\nResults saved to: {output_path}")

    return result


def run_comparison():
    """Compare writer outcomes across keeper uptimes."""
    print("\n" + "=" * 60)
    print("Keeper Comparison: 0% vs 50% vs 100% Uptime")
    print("=" * 60)

    results = {}

    for uptime in [0.0, 0.5, 1.0]:
        config = SimulationConfig(
            n_blocks=1_000,
            random_seed=42,  # Same seed for comparison
            buyers=BuyerFlowConfig(self_settle_prob=0.2),
            keeper=KeeperConfig(uptime=uptime),
        )

        result = GasOptionSimulator(config).run()
        report = SimulationReport(result)
        metrics = report.metrics
        settlement = report.get_settlement_breakdown()

        results[uptime] = {
            "return": metrics["total_return_pct"],
            "loss_ratio": metrics["loss_ratio"],
            "cleared": settlement["cleared"],
        }

        print(f"\nKeeper Uptime: {uptime * 100:.0f}%")
        print(f"  Return: {metrics['total_return_pct']:.4f}%")
        print(f"  Loss Ratio: {metrics['loss_ratio']:.2f}")
        print(f"  Cleared Unsettled: {settlement['cleared']}")

    return results


if __name__ == "__main__":
    configure_logging("WARNING")
    main()
    run_comparison()
