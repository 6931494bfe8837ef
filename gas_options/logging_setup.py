"""Console logging for scripts and the simulator."""

from __future__ import annotations

import logging


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # One line per reference block otherwise
    logging.getLogger("gas_options.market.oracle").setLevel(logging.WARNING)
