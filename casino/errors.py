"""
Casino errors.

A small, typed hierarchy of exceptions raised by the bet ledger and its
collaborators (randomness source, settlement ledger, id policy). Callers can
catch the base `CasinoError` to handle every expected failure, or catch the
concrete subclasses for more granular control.

Every error here is raised *after* the ledger has been returned to the state
it had before the call; none of them means "partially applied".

The errors are plain dataclasses so their fields travel into RPC error
payloads and logs unchanged. They are not frozen: context managers re-attach
tracebacks to exceptions passing through them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class CasinoError(Exception):
    """Base class for all casino errors."""
    pass


# ---- Settlement collaborator ------------------------------------------------


@dataclass(eq=False)
class TransferError(CasinoError):
    """
    Raised by a settlement ledger when a debit or credit cannot be applied.

    Attributes:
        identity: Account the transfer was for.
        amount: Requested amount.
        reason: Short machine-friendly reason (e.g. 'negative-amount').
    """
    identity: str
    amount: int
    reason: str = "transfer-failed"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"TransferError: identity={self.identity} amount={self.amount} reason={self.reason}"


@dataclass(eq=False)
class InsufficientFunds(TransferError):
    """Raised when the payer's balance does not cover the amount."""
    balance: int = 0
    reason: str = "insufficient-funds"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return (
            f"InsufficientFunds: identity={self.identity} amount={self.amount} "
            f"balance={self.balance}"
        )


# ---- Ledger-facing errors ---------------------------------------------------


@dataclass(eq=False)
class FailedTransfer(CasinoError):
    """
    The fee debit (register) or reward credit (resolve) did not complete.

    Attributes:
        identity: Account the transfer was for.
        amount: Requested amount.
        direction: 'debit' or 'credit'.
        reason: Reason reported by the settlement ledger.
    """
    identity: str
    amount: int
    direction: str
    reason: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        base = (
            f"FailedTransfer: {self.direction} identity={self.identity} "
            f"amount={self.amount}"
        )
        return f"{base} reason={self.reason}" if self.reason else base


@dataclass(eq=False)
class BetResolutionTooEarly(CasinoError):
    """
    Raised when the randomness for the bet's target round is not yet published.

    Retryable: the record is left untouched and a later call may succeed.
    """
    bet_id: int
    target_round: int

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"BetResolutionTooEarly: bet={self.bet_id} target_round={self.target_round}"


@dataclass(eq=False)
class BetNotFound(CasinoError):
    """Raised for an unknown, never-registered or already-resolved bet id."""
    bet_id: int

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"BetNotFound: bet={self.bet_id}"


@dataclass(eq=False)
class NotBetOwner(CasinoError):
    """Raised when someone other than the bet's owner tries to resolve it."""
    bet_id: int
    caller: str

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"NotBetOwner: bet={self.bet_id} caller={self.caller}"


@dataclass(eq=False)
class ResolutionInProgress(CasinoError):
    """Raised when `resolve` re-enters for a bet that is being resolved."""
    bet_id: int

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"ResolutionInProgress: bet={self.bet_id}"


@dataclass(eq=False)
class OracleUnavailable(CasinoError):
    """
    The randomness source could not be queried or returned an invalid value.

    Attributes:
        reason: Human-readable explanation.
        round_id: Round being queried, if any.
    """
    reason: str
    round_id: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        if self.round_id is None:
            return f"OracleUnavailable: {self.reason}"
        return f"OracleUnavailable: round={self.round_id} {self.reason}"


@dataclass(eq=False)
class IdSpaceExhausted(CasinoError):
    """Raised when the id policy could not produce a fresh bet id."""
    attempts: int

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"IdSpaceExhausted: attempts={self.attempts}"


@dataclass(eq=False)
class Custom(CasinoError):
    """Opaque collaborator-specific failure carrying a raw payload."""
    payload: bytes = b""

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"Custom: 0x{bytes(self.payload).hex()}"


__all__ = [
    "CasinoError",
    "TransferError",
    "InsufficientFunds",
    "FailedTransfer",
    "BetResolutionTooEarly",
    "BetNotFound",
    "NotBetOwner",
    "ResolutionInProgress",
    "OracleUnavailable",
    "IdSpaceExhausted",
    "Custom",
]
