"""
Casino — types package

Typed primitives shared across the ledger, stores, RPC surface and tests:

  • BetId, Round, Owner — integer/string newtypes with range guards
  • BetRecord           — the persisted (target_round, owner) tuple keyed by bet id
  • Resolution          — what a successful `resolve` reports back

    from casino.types import BetId, BetRecord
"""

from __future__ import annotations

from .core import (BetId, BetRecord, Owner, Resolution, Round, require_bet_id,
                   require_round)

__all__ = [
    "BetId",
    "Round",
    "Owner",
    "BetRecord",
    "Resolution",
    "require_bet_id",
    "require_round",
]
