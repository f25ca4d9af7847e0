"""
casino.oracle
=============

The randomness source the ledger consumes. Implementations:

- `casino.oracle.local.LocalBeacon` — in-process round book (devnets, tests)
- `casino.oracle.rpc.RpcRandomnessSource` — the beacon's JSON-RPC surface

Contract every implementation honors:

- `latest_round()` is monotonically non-decreasing.
- `randomness_for(r)` is `None` for every round not yet published (including
  all future rounds) and, once published, returns the same bytes forever.
- Transport failures raise `casino.errors.OracleUnavailable`; they are never
  reported as "not yet published".
- Implementations must not call back into the ledger before returning.
"""

from __future__ import annotations

from typing import Optional, Protocol


class RandomnessSource(Protocol):
    def latest_round(self) -> int:
        """Most recent published round id."""
        ...

    def randomness_for(self, round_id: int) -> Optional[bytes]:
        """Published randomness for `round_id`, or None if not yet published."""
        ...


__all__ = ["RandomnessSource"]
