"""Market infrastructure components."""

from .collateral import CollateralAccount
from .expiry_index import ExpiryIndex
from .factory import OptionFactory
from .gas_option import BatchSettlement, GasOption, OptionEvent, OptionEventType
from .ledger import Position, PositionLedger, PositionStatus
from .oracle import L1BlockOracle, PriceOracle
from .wallets import ValueLedger

__all__ = [
    "BatchSettlement",
    "CollateralAccount",
    "ExpiryIndex",
    "GasOption",
    "L1BlockOracle",
    "OptionEvent",
    "OptionEventType",
    "OptionFactory",
    "Position",
    "PositionLedger",
    "PositionStatus",
    "PriceOracle",
    "ValueLedger",
]
