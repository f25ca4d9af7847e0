from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, NewType, Optional

from ..constants import BET_ID_MAX, ROUND_MAX

"""
Core typed primitives for the casino ledger.

These are intentionally minimal and free of heavy dependencies so they can be
shared across submodules (ledger, stores, RPC surface, and tests).

Types provided:
  • BetId       — unsigned 128-bit bet identifier
  • Round       — unsigned 64-bit beacon round identifier
  • Owner       — opaque account identity (string form of an address)
  • BetRecord   — a live, paid-for, unresolved bet
  • Resolution  — outcome of a successful resolve
"""

# ---- Simple newtypes ---------------------------------------------------------

BetId = NewType("BetId", int)
Round = NewType("Round", int)
Owner = NewType("Owner", str)


def require_bet_id(v: Any) -> BetId:
    if isinstance(v, bool) or not isinstance(v, int):
        raise TypeError("bet_id must be an int (BetId)")
    if v < 0 or v > BET_ID_MAX:
        raise ValueError(f"bet_id out of u128 range (got {v})")
    return BetId(v)


def require_round(v: Any, name: str = "round") -> Round:
    if isinstance(v, bool) or not isinstance(v, int):
        raise TypeError(f"{name} must be an int (Round)")
    if v < 0 or v > ROUND_MAX:
        raise ValueError(f"{name} out of u64 range (got {v})")
    return Round(v)


def _require_owner(v: Any) -> Owner:
    if not isinstance(v, str):
        raise TypeError("owner must be a str")
    if not v:
        raise ValueError("owner must be non-empty")
    return Owner(v)


def _dumps_stable(obj: Dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")


# ---- Records -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BetRecord:
    """
    A registered bet. Present in the store only while unresolved.

    Fields:
      bet_id        — unique id handed back to the bettor
      target_round  — beacon round whose randomness decides the bet
      owner         — identity that paid the fee and receives any reward
    """

    bet_id: BetId
    target_round: Round
    owner: Owner

    def __post_init__(self) -> None:  # type: ignore[override]
        require_bet_id(self.bet_id)
        require_round(self.target_round, "target_round")
        _require_owner(self.owner)

    def to_bytes(self) -> bytes:
        return _dumps_stable(
            {
                "bet_id": int(self.bet_id),
                "target_round": int(self.target_round),
                "owner": str(self.owner),
            }
        )

    @staticmethod
    def from_bytes(data: bytes) -> "BetRecord":
        obj = json.loads(data.decode("utf-8"))
        return BetRecord(
            bet_id=BetId(int(obj["bet_id"])),
            target_round=Round(int(obj["target_round"])),
            owner=Owner(obj["owner"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bet_id": int(self.bet_id),
            "target_round": int(self.target_round),
            "owner": str(self.owner),
        }


@dataclass(frozen=True, slots=True)
class Resolution:
    """
    Result of a successful `resolve`; the bet no longer exists afterwards.

    Fields:
      bet_id        — resolved bet
      owner         — who was (or would have been) paid
      target_round  — round whose randomness was consumed
      randomness    — the published bytes the outcome was derived from
      victorious    — whether the win condition held
      reward        — amount credited to the owner (0 on a loss)
    """

    bet_id: BetId
    owner: Owner
    target_round: Round
    randomness: bytes
    victorious: bool
    reward: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bet_id": int(self.bet_id),
            "owner": str(self.owner),
            "target_round": int(self.target_round),
            "randomness": "0x" + bytes(self.randomness).hex(),
            "victorious": self.victorious,
            "reward": self.reward,
        }


def maybe_record(data: Optional[bytes]) -> Optional[BetRecord]:
    return None if data is None else BetRecord.from_bytes(data)


__all__ = [
    "BetId",
    "Round",
    "Owner",
    "BetRecord",
    "Resolution",
    "require_bet_id",
    "require_round",
    "maybe_record",
]
