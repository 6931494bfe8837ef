"""Call options on the reference-chain base fee, priced with a mean-reverting model."""

from .config import ModelParameters, OptionConfig, SimulationConfig
from .errors import AuthorizationError, DomainError, FundsError, GasOptionError, StateError
from .market import GasOption, L1BlockOracle, OptionFactory, Position, ValueLedger
from .pricing import GasOptionPricing

__version__ = "0.1.0"

__all__ = [
    "AuthorizationError",
    "DomainError",
    "FundsError",
    "GasOption",
    "GasOptionError",
    "GasOptionPricing",
    "L1BlockOracle",
    "ModelParameters",
    "OptionConfig",
    "OptionFactory",
    "Position",
    "SimulationConfig",
    "StateError",
    "ValueLedger",
]
