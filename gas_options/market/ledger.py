"""Per-holder position records."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, unique
from typing import Dict, Iterable, Optional

from ..errors import StateError


@unique
class PositionStatus(Enum):
    ACTIVE = "active"
    SETTLED = "settled"
    CLEARED = "cleared"


@dataclass(frozen=True)
class Position:
    """A holder's call position on the reference base fee."""
    holder: str
    strike_price: int  # Wei per gas
    expiration_block: int
    premium_paid: int  # Wei
    contracts: int
    reserved: int  # Collateral set aside for this position
    is_active: bool = True
    is_settled: bool = False
    payout: int = 0

    @property
    def status(self) -> PositionStatus:
        if self.is_settled:
            return PositionStatus.SETTLED
        if self.is_active:
            return PositionStatus.ACTIVE
        return PositionStatus.CLEARED


class PositionLedger:
    """
    Positions keyed by holder, at most one active entry per holder.

    Terminated positions stay readable until the holder opens a new one,
    which replaces the record.
    """

    def __init__(self):
        self._positions: Dict[str, Position] = {}
        self._active_count = 0

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, holder: str) -> bool:
        return holder in self._positions

    @property
    def active_count(self) -> int:
        """Number of active positions."""
        return self._active_count

    def get(self, holder: str) -> Optional[Position]:
        return self._positions.get(holder)

    def has_active(self, holder: str) -> bool:
        position = self._positions.get(holder)
        return position is not None and position.is_active

    def active(self, holder: str) -> Position:
        """
        The holder's active position.

        Raises
        ------
        StateError
            If the holder has no active position
        """
        position = self._positions.get(holder)
        if position is None or not position.is_active:
            raise StateError("no active position")
        return position

    def open(self, position: Position):
        """
        Record a new active position.

        Raises
        ------
        StateError
            If the holder already has an active position
        """
        if self.has_active(position.holder):
            raise StateError("already has position")
        self._positions[position.holder] = position
        self._active_count += 1

    def mark_settled(self, holder: str, payout: int) -> Position:
        position = replace(self.active(holder), is_active=False, is_settled=True, payout=payout)
        self._positions[holder] = position
        self._active_count -= 1
        return position

    def mark_cleared(self, holder: str) -> Position:
        position = replace(self.active(holder), is_active=False)
        self._positions[holder] = position
        self._active_count -= 1
        return position

    def snapshot(self, holders: Iterable[str]) -> Dict[str, Optional[Position]]:
        """Current records for ``holders``, for rollback."""
        return {holder: self._positions.get(holder) for holder in holders}

    def restore(self, saved: Dict[str, Optional[Position]]):
        for holder, position in saved.items():
            current = self._positions.get(holder)
            if current is not None and current.is_active:
                self._active_count -= 1
            if position is None:
                self._positions.pop(holder, None)
            else:
                self._positions[holder] = position
                if position.is_active:
                    self._active_count += 1
