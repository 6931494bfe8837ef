"""Gas option instance: one writer, one price model, many holders.

Lifecycle per position:

    None -> Active -> Settled   (holder settle / keeper batch settle)
                   -> Cleared   (window passed unexercised, no payout)

Per instance the market is open while the reference block is below
``available_until_block``; existing positions keep settling after it closes.

Every mutating call is atomic: checks run first, ledger effects are applied
next, and outbound transfers happen last. Any failure (including one raised
from a recipient's receive hook) restores the collateral account, the
touched positions, the touched expiry buckets and the touched wallet balances
to their state before the call. A call that re-enters the instance while
another call is in progress fails.

A holder that refuses its payment during a keeper batch does not block the
batch; the payout is held for it and collected later with ``claim``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..config import BPS_DENOM, ModelParameters, OptionConfig
from ..errors import AuthorizationError, DomainError, FundsError, StateError
from ..pricing import GasOptionPricing
from .collateral import CollateralAccount
from .expiry_index import ExpiryIndex
from .ledger import Position, PositionLedger
from .oracle import L1BlockOracle
from .wallets import ValueLedger

logger = logging.getLogger(__name__)


@unique
class OptionEventType(Enum):
    """Events emitted by an option instance."""
    OPTION_CREATED = "OptionCreated"
    COLLATERAL_DEPOSITED = "CollateralDeposited"
    OPTION_BOUGHT = "OptionBought"
    OPTION_SETTLED = "OptionSettled"
    KEEPER_SETTLED = "KeeperSettled"
    OPTION_CLEARED = "OptionCleared"
    AVAILABILITY_EXTENDED = "AvailabilityExtended"
    PARAMETERS_UPDATED = "ParametersUpdated"
    COLLATERAL_WITHDRAWN = "CollateralWithdrawn"
    PAYOUT_DEFERRED = "PayoutDeferred"
    PAYOUT_CLAIMED = "PayoutClaimed"


@dataclass(frozen=True)
class OptionEvent:
    event: OptionEventType
    block: int
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchSettlement:
    """Outcome of one keeper batch settlement."""
    block: int
    settled: int
    keeper_reward: int
    total_payout: int
    payouts: Tuple[Tuple[str, int], ...]
    deferred: Tuple[str, ...] = ()  # Holders whose payout awaits claim()


class GasOption:
    """
    Call options on the reference-chain base fee, backed by one writer's collateral.

    Parameters
    ----------
    writer : str
        Address of the writer; fixed for the life of the instance
    params : ModelParameters
        Price process model used for quotes
    available_until_block : int
        Last reference block at which a position may expire
    oracle : L1BlockOracle
        Source of the current reference block and base fee
    wallets : ValueLedger, optional
        Destination of outbound transfers (refunds, payouts, rewards)
    config : OptionConfig, optional
        Contract size, settlement window and keeper reward
    collateral : int
        Initial writer deposit (wei)
    address : str
        Address of the instance itself
    """

    def __init__(
        self,
        writer: str,
        params: ModelParameters,
        available_until_block: int,
        oracle: L1BlockOracle,
        wallets: Optional[ValueLedger] = None,
        config: Optional[OptionConfig] = None,
        collateral: int = 0,
        address: str = "gas-option",
    ):
        if not isinstance(params, ModelParameters):
            raise DomainError("params must be ModelParameters")
        self._writer = writer
        self.address = address
        self.config = config or OptionConfig()
        self._oracle = oracle
        self._wallets = wallets if wallets is not None else ValueLedger()

        self._params = params
        self._pricing = GasOptionPricing(params, self.config.contract_size)
        self._available_until_block = available_until_block

        self._collateral = CollateralAccount(collateral)
        self._ledger = PositionLedger()
        self._index = ExpiryIndex()
        self._unclaimed: Dict[str, int] = {}
        self._events: List[OptionEvent] = []
        self._entered = False

        self._emit(
            OptionEventType.OPTION_CREATED,
            writer=writer,
            collateral=collateral,
            available_until_block=available_until_block,
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def writer(self) -> str:
        return self._writer

    @property
    def available_until_block(self) -> int:
        return self._available_until_block

    @property
    def is_open(self) -> bool:
        """True while new positions may be opened."""
        return self._oracle.number < self._available_until_block

    @property
    def collateral(self) -> int:
        """Total value held by the instance (wei)."""
        return self._collateral.balance

    @property
    def reserved_collateral(self) -> int:
        return self._collateral.reserved

    @property
    def free_collateral(self) -> int:
        return self._collateral.free

    @property
    def active_positions(self) -> int:
        return self._ledger.active_count

    @property
    def events(self) -> Tuple[OptionEvent, ...]:
        return tuple(self._events)

    @property
    def pricing(self) -> GasOptionPricing:
        return self._pricing

    def get_parameters(self) -> ModelParameters:
        return self._params

    def get_position(self, holder: str) -> Optional[Position]:
        """Latest position record of ``holder`` (active or terminated)."""
        return self._ledger.get(holder)

    def unclaimed(self, holder: str) -> int:
        """Payout held for ``holder`` after it refused a batch settlement transfer."""
        return self._unclaimed.get(holder, 0)

    @property
    def unclaimed_total(self) -> int:
        return sum(self._unclaimed.values())

    def get_first_to_expire(self) -> Optional[int]:
        """Earliest block at or after the current one with positions expiring."""
        return self._index.first_at_or_after(self._oracle.number)

    def positions_expiring_at(self, block: int) -> Tuple[str, ...]:
        """Holders whose active positions expire at ``block``."""
        return self._index.bucket(block)

    def quote(self, strike: int, duration: int, contracts: int = 1) -> int:
        """
        Premium for a new position at the current base fee.

        Parameters
        ----------
        strike : int
            Strike base fee (wei per gas)
        duration : int
            Blocks until expiry
        contracts : int
            Number of contracts

        Returns
        -------
        int
            Premium in wei
        """
        self._check_order(strike, duration, contracts)
        premium = self._pricing.calculate_premium(self._oracle.basefee, strike, duration, contracts)
        logger.debug(
            "quote %s strike=%d duration=%d contracts=%d -> %d",
            self.address, strike, duration, contracts, premium,
        )
        return premium

    # ------------------------------------------------------------------
    # Holder operations
    # ------------------------------------------------------------------

    def buy(self, caller: str, strike: int, duration: int, contracts: int, payment: int) -> Position:
        """
        Open a position for ``caller``; any excess payment is refunded.

        Raises
        ------
        StateError
            If the instance is closed, the caller already holds an active
            position, or the position would expire after availability
        FundsError
            If ``payment`` is below the premium or collateral cannot back
            the position
        """
        self._check_order(strike, duration, contracts)
        if payment < 0:
            raise DomainError("payment must be non-negative")

        current = self._oracle.number
        if not self.is_open:
            raise StateError("option not available")
        if self._ledger.has_active(caller):
            raise StateError("already has position")
        expiration = current + duration
        if expiration > self._available_until_block:
            raise StateError("option not available")

        premium = self.quote(strike, duration, contracts)
        if payment < premium:
            raise FundsError("insufficient funds")
        liability = self._pricing.max_liability(strike, contracts)

        with self._transaction(holders=[caller], blocks=[expiration], payees=[caller]):
            self._collateral.deposit(premium)
            self._collateral.reserve(liability)
            position = Position(
                holder=caller,
                strike_price=strike,
                expiration_block=expiration,
                premium_paid=premium,
                contracts=contracts,
                reserved=liability,
            )
            self._ledger.open(position)
            self._index.insert(caller, expiration)
            self._emit(
                OptionEventType.OPTION_BOUGHT,
                holder=caller,
                strike_price=strike,
                expiration_block=expiration,
                contracts=contracts,
                premium=premium,
            )
            self._wallets.transfer(self.address, caller, payment - premium)

        logger.info(
            "%s bought %d contract(s) on %s strike=%d expiring %d for %d",
            caller, contracts, self.address, strike, expiration, premium,
        )
        return position

    def settle(self, caller: str) -> int:
        """
        Settle the caller's own position at the current base fee.

        Allowed from the expiration block through ``settlement_grace_blocks``
        blocks after it.

        Returns
        -------
        int
            Payout in wei

        Raises
        ------
        StateError
            If there is no active position, it has not expired, or the
            settlement window has passed
        """
        position = self._ledger.active(caller)
        current = self._oracle.number
        if current < position.expiration_block:
            raise StateError("not expired")
        if current > position.expiration_block + self.config.settlement_grace_blocks:
            raise StateError("window passed")

        observed = self._oracle.basefee
        with self._transaction(
            holders=[caller], blocks=[position.expiration_block], payees=[caller]
        ):
            self._index.remove(caller, position.expiration_block)
            payout = self._settle_position(position, observed)
            self._wallets.transfer(self.address, caller, payout)

        logger.info(
            "%s settled on %s at basefee=%d: payout %d", caller, self.address, observed, payout
        )
        return payout

    def clear(self, caller: str, holder: Optional[str] = None) -> Position:
        """
        Retire a stale position: expired and left unsettled past the window.

        Any caller may clear any stale position; there is no payout and no
        reward. The holder's slot and the position's collateral reservation
        are released.

        Raises
        ------
        StateError
            If there is no active position or it can still be settled
        """
        if holder is None:
            holder = caller
        position = self._ledger.active(holder)
        current = self._oracle.number
        if current <= position.expiration_block + self.config.settlement_grace_blocks:
            raise StateError("settlement window open")

        with self._transaction(holders=[holder], blocks=[position.expiration_block]):
            self._index.remove(holder, position.expiration_block)
            self._collateral.release(position.reserved)
            cleared = self._ledger.mark_cleared(holder)
            self._emit(OptionEventType.OPTION_CLEARED, holder=holder, cleared_by=caller)

        logger.info("%s cleared stale position of %s on %s", caller, holder, self.address)
        return cleared

    def claim(self, caller: str) -> int:
        """
        Collect payouts a batch settlement could not deliver to ``caller``.

        Raises
        ------
        StateError
            If nothing is owed to the caller
        """
        amount = self._unclaimed.get(caller, 0)
        if amount == 0:
            raise StateError("nothing to claim")

        with self._transaction(payees=[caller]):
            del self._unclaimed[caller]
            self._emit(OptionEventType.PAYOUT_CLAIMED, holder=caller, amount=amount)
            self._wallets.transfer(self.address, caller, amount)

        logger.info("%s claimed %d from %s", caller, amount, self.address)
        return amount

    # ------------------------------------------------------------------
    # Keeper operations
    # ------------------------------------------------------------------

    def batch_settle(self, caller: str) -> BatchSettlement:
        """
        Settle every position expiring at exactly the current block.

        Each holder is paid with the holder-settlement payoff rule and the
        caller receives one keeper reward for the whole batch. A holder whose
        receive hook refuses the payment keeps it as an unclaimed balance;
        a refused keeper reward reverts the batch.

        Raises
        ------
        StateError
            If nothing expires at the current block
        FundsError
            If free collateral cannot cover the keeper reward (insolvency)
        """
        current = self._oracle.number
        holders = self._index.bucket(current)
        if not holders:
            raise StateError("nothing due")

        observed = self._oracle.basefee
        with self._transaction(holders=holders, blocks=[current], payees=[*holders, caller]):
            self._index.pop_bucket(current)
            payouts = []
            for holder in holders:
                position = self._ledger.active(holder)
                payouts.append((holder, self._settle_position(position, observed)))

            total_payout = sum(payout for _, payout in payouts)
            reward = (
                self.config.keeper_reward
                + total_payout * self.config.keeper_reward_bps // BPS_DENOM
            )
            if reward > self._collateral.free:
                logger.error(
                    "%s cannot pay keeper reward %d at block %d: free collateral %d",
                    self.address, reward, current, self._collateral.free,
                )
                raise FundsError("insolvent")
            self._collateral.disburse(reward)
            self._emit(
                OptionEventType.KEEPER_SETTLED,
                keeper=caller,
                settled=len(payouts),
                reward=reward,
                total_payout=total_payout,
            )

            deferred = []
            for holder, payout in payouts:
                if not self._wallets.try_transfer(self.address, holder, payout):
                    self._unclaimed[holder] = self._unclaimed.get(holder, 0) + payout
                    deferred.append(holder)
                    self._emit(OptionEventType.PAYOUT_DEFERRED, holder=holder, amount=payout)
            self._wallets.transfer(self.address, caller, reward)

        logger.info(
            "keeper %s settled %d position(s) on %s at block %d: payouts %d, reward %d",
            caller, len(payouts), self.address, current, total_payout, reward,
        )
        return BatchSettlement(
            block=current,
            settled=len(payouts),
            keeper_reward=reward,
            total_payout=total_payout,
            payouts=tuple(payouts),
            deferred=tuple(deferred),
        )

    # ------------------------------------------------------------------
    # Writer operations
    # ------------------------------------------------------------------

    def top_up(self, caller: str, amount: int):
        """Add writer collateral."""
        self._only_writer(caller)
        if amount <= 0:
            raise DomainError("amount must be positive")
        with self._transaction():
            self._collateral.deposit(amount)
            self._emit(OptionEventType.COLLATERAL_DEPOSITED, amount=amount)
        logger.info("writer topped up %s by %d", self.address, amount)

    def extend(self, caller: str, blocks: int) -> int:
        """
        Push ``available_until_block`` further out.

        Returns
        -------
        int
            New ``available_until_block``
        """
        self._only_writer(caller)
        if blocks <= 0:
            raise DomainError("blocks must be positive")
        with self._transaction():
            self._available_until_block += blocks
            self._emit(
                OptionEventType.AVAILABILITY_EXTENDED,
                available_until_block=self._available_until_block,
            )
        logger.info("%s available until %d", self.address, self._available_until_block)
        return self._available_until_block

    def update_parameters(self, caller: str, params: ModelParameters, available_until_block: int):
        """
        Replace the price model and availability in one step.

        Open positions keep the strike and premium fixed at purchase. While
        any position is open, availability cannot be set below the current
        reference block.
        """
        self._only_writer(caller)
        if not isinstance(params, ModelParameters):
            raise DomainError("params must be ModelParameters")
        if available_until_block < self._oracle.number and self._ledger.active_count > 0:
            raise StateError("cannot retract availability with open positions")

        with self._transaction():
            self._params = params
            self._pricing = GasOptionPricing(params, self.config.contract_size)
            self._available_until_block = available_until_block
            self._emit(
                OptionEventType.PARAMETERS_UPDATED,
                available_until_block=available_until_block,
            )
        logger.info("%s parameters updated: %s", self.address, params)

    def withdraw(self, caller: str, force: bool = False) -> int:
        """
        Return collateral to the writer.

        Without ``force`` everything is withdrawn and no position may be
        active. With ``force`` only the surplus above reserved obligations
        is withdrawn.

        Returns
        -------
        int
            Amount withdrawn (wei)
        """
        self._only_writer(caller)
        if not force and self._ledger.active_count > 0:
            raise StateError("active positions")
        amount = self._collateral.free

        with self._transaction(payees=[caller]):
            self._collateral.disburse(amount)
            self._emit(OptionEventType.COLLATERAL_WITHDRAWN, amount=amount, forced=force)
            self._wallets.transfer(self.address, caller, amount)

        logger.info("writer withdrew %d from %s (force=%s)", amount, self.address, force)
        return amount

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_order(self, strike: int, duration: int, contracts: int):
        if strike <= 0:
            raise DomainError("strike must be positive")
        if duration < 1:
            raise DomainError("duration must be at least one block")
        if contracts < 1:
            raise DomainError("contracts must be at least one")

    def _only_writer(self, caller: str):
        if caller != self._writer:
            raise AuthorizationError("not writer")

    def _settle_position(self, position: Position, observed: int) -> int:
        """Release, pay out (capped at free collateral) and mark settled."""
        self._collateral.release(position.reserved)
        owed = self._pricing.intrinsic_value(observed, position.strike_price, position.contracts)
        payout = self._collateral.disburse(self._collateral.capped_payout(owed))
        if payout < owed:
            logger.warning(
                "%s payout to %s capped at %d (owed %d)",
                self.address, position.holder, payout, owed,
            )
        self._ledger.mark_settled(position.holder, payout)
        self._emit(
            OptionEventType.OPTION_SETTLED,
            holder=position.holder,
            basefee=observed,
            payout=payout,
        )
        return payout

    def _emit(self, event: OptionEventType, **data):
        self._events.append(OptionEvent(event, self._oracle.number, data))

    @contextmanager
    def _transaction(
        self,
        holders: Iterable[str] = (),
        blocks: Iterable[int] = (),
        payees: Iterable[str] = (),
    ):
        if self._entered:
            raise StateError("reentrant call")
        self._entered = True
        collateral = self._collateral.snapshot()
        positions = self._ledger.snapshot(holders)
        buckets = self._index.snapshot(blocks)
        balances = self._wallets.snapshot(payees)
        unclaimed = dict(self._unclaimed)
        params = self._params
        pricing = self._pricing
        available_until_block = self._available_until_block
        n_events = len(self._events)
        try:
            yield
        except Exception:
            self._collateral.restore(collateral)
            self._ledger.restore(positions)
            self._index.restore(buckets)
            self._wallets.restore(balances)
            self._unclaimed = unclaimed
            self._params = params
            self._pricing = pricing
            self._available_until_block = available_until_block
            del self._events[n_events:]
            raise
        finally:
            self._entered = False
