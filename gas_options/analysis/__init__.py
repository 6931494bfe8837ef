"""Analysis and reporting tools."""

from .metrics import SettlementMetrics
from .reporting import SimulationReport

__all__ = ["SettlementMetrics", "SimulationReport"]
