"""Outbound value transfers from option instances."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

ReceiveHook = Callable[[str, int], None]


class ValueLedger:
    """
    Balances of every address that received value from an instance.

    Addresses can register a receive hook, the equivalent of a contract
    recipient's fallback: it runs synchronously inside the transfer and may
    call back into the paying instance.
    """

    def __init__(self):
        self._balances: Dict[str, int] = defaultdict(int)
        self._hooks: Dict[str, ReceiveHook] = {}

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def on_receive(self, address: str, hook: ReceiveHook):
        """Register ``hook(sender, amount)`` to run whenever ``address`` is paid."""
        self._hooks[address] = hook

    def transfer(self, sender: str, recipient: str, amount: int):
        """Credit ``amount`` wei to ``recipient``, then run its receive hook."""
        hook = self._credit(sender, recipient, amount)
        if hook is not None:
            hook(sender, amount)

    def try_transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Like ``transfer``, but a receive hook that raises refuses the payment.

        The credit is undone and False is returned instead of propagating
        the hook's error.
        """
        hook = self._credit(sender, recipient, amount)
        if hook is None:
            return True
        try:
            hook(sender, amount)
        except Exception as e:
            self._balances[recipient] -= amount
            logger.warning("%s refused %d from %s: %s", recipient, amount, sender, e)
            return False
        return True

    def _credit(self, sender: str, recipient: str, amount: int) -> Optional[ReceiveHook]:
        if amount < 0:
            raise ValueError(f"negative transfer: {amount}")
        if amount == 0:
            return None
        self._balances[recipient] += amount
        logger.debug("transfer %s -> %s: %d", sender, recipient, amount)
        return self._hooks.get(recipient)

    def snapshot(self, addresses: Iterable[str]) -> Dict[str, int]:
        """Balances of ``addresses``, for rollback."""
        return {address: self.balance_of(address) for address in addresses}

    def restore(self, saved: Dict[str, int]):
        for address, balance in saved.items():
            if balance:
                self._balances[address] = balance
            else:
                self._balances.pop(address, None)
