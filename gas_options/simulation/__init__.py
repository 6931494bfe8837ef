"""Simulation components."""

from .price_paths import MeanRevertingBaseFeeSimulator
from .buyers import BuyerFlow, BuyerOrder
from .keeper import Keeper
from .simulator import GasOptionSimulator

__all__ = [
    "MeanRevertingBaseFeeSimulator",
    "BuyerFlow",
    "BuyerOrder",
    "Keeper",
    "GasOptionSimulator",
]
