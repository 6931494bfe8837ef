"""Fixed-point math and premium pricing."""

from .fixed_point import (
    ETHER,
    GWEI,
    PRECISION,
    exp,
    ln,
    format_units,
    parse_units,
)
from .engine import CONTRACT_SIZE, GasOptionPricing

__all__ = [
    "ETHER",
    "GWEI",
    "PRECISION",
    "exp",
    "ln",
    "format_units",
    "parse_units",
    "CONTRACT_SIZE",
    "GasOptionPricing",
]
