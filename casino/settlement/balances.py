"""
In-memory house ledger.

Balances live in a dict keyed by identity. Fees debited from bettors move to
the house account; rewards credited to bettors come out of it, so the house
can run dry and a reward credit then fails with `InsufficientFunds`.

Amounts are non-negative ints; there is no overdraft.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict

from ..constants import DEFAULT_HOUSE
from ..errors import InsufficientFunds, TransferError

logger = logging.getLogger(__name__)


def _require_amount(identity: str, amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TransferError(identity=identity, amount=amount, reason="amount-not-int")
    if amount < 0:
        raise TransferError(identity=identity, amount=amount, reason="negative-amount")
    return amount


def _require_identity(identity: str) -> str:
    if not isinstance(identity, str) or not identity:
        raise TransferError(identity=str(identity), amount=0, reason="bad-identity")
    return identity


class HouseLedger:
    """SettlementLedger that books every transfer against a house account."""

    def __init__(self, *, house: str = DEFAULT_HOUSE) -> None:
        self.house = _require_identity(house)
        self._balances: Dict[str, int] = {}
        self._lock = threading.Lock()

    # ------------------------ reads ------------------------

    def balance_of(self, identity: str) -> int:
        with self._lock:
            return self._balances.get(identity, 0)

    def total_supply(self) -> int:
        with self._lock:
            return sum(self._balances.values())

    # ------------------------ funding ------------------------

    def fund(self, identity: str, amount: int) -> int:
        """Mint `amount` into `identity` (devnet faucet / test setup)."""
        _require_identity(identity)
        _require_amount(identity, amount)
        with self._lock:
            self._balances[identity] = self._balances.get(identity, 0) + amount
            return self._balances[identity]

    # ------------------------ SettlementLedger ------------------------

    def debit(self, identity: str, amount: int) -> None:
        self._move(src=identity, dst=self.house, amount=amount, blame=identity)

    def credit(self, identity: str, amount: int) -> None:
        self._move(src=self.house, dst=identity, amount=amount, blame=identity)

    def _move(self, *, src: str, dst: str, amount: int, blame: str) -> None:
        _require_identity(blame)
        _require_amount(blame, amount)
        with self._lock:
            have = self._balances.get(src, 0)
            if have < amount:
                raise InsufficientFunds(identity=src, amount=amount, balance=have)
            self._balances[src] = have - amount
            self._balances[dst] = self._balances.get(dst, 0) + amount
        logger.debug("moved %d from %s to %s", amount, src, dst)


__all__ = ["HouseLedger"]
