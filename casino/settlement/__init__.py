"""
casino.settlement
=================

The value-moving collaborator of the bet ledger.

`debit(identity, amount)` takes the fee from a bettor, `credit(identity,
amount)` pays a reward out. Each call is atomic: it either moves the full
amount or raises `casino.errors.TransferError` (or a subclass) and moves
nothing. Implementations must not call back into the ledger before returning.

`casino.settlement.balances.HouseLedger` is the bundled in-memory
implementation.
"""

from __future__ import annotations

from typing import Protocol


class SettlementLedger(Protocol):
    def debit(self, identity: str, amount: int) -> None:
        """Take `amount` from `identity`; raise TransferError on failure."""
        ...

    def credit(self, identity: str, amount: int) -> None:
        """Give `amount` to `identity`; raise TransferError on failure."""
        ...


__all__ = ["SettlementLedger"]
