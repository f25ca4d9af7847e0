"""
casino.oracle.local
===================

An in-process beacon round book implementing `RandomnessSource`.

Design goals
------------
- O(1) lookup by round id; rounds are published in strictly increasing order.
- Published values are immutable: re-publishing a round with identical bytes
  is a no-op, with different bytes it is rejected.
- Optional retention cap. Pruned rounds raise `OracleUnavailable` instead of
  looking "not yet published".
- Thread-safe for light concurrent readers/writers.

Used for devnets, simulations and tests; production deployments point the
ledger at the chain beacon through `casino.oracle.rpc`.
"""

from __future__ import annotations

import bisect
import hashlib
import threading
from typing import Dict, List, Optional, Tuple

from ..errors import OracleUnavailable
from ..types.core import require_round


class LocalBeacon:
    """
    Round book of published randomness.

    >>> b = LocalBeacon()
    >>> b.publish(5, b"\\x01" * 32)
    >>> b.latest_round()
    5
    >>> b.randomness_for(6) is None
    True
    """

    __slots__ = ("_cap", "_rids", "_by_id", "_pruned_below", "_seed", "_lock")

    def __init__(self, *, capacity: Optional[int] = None, seed: bytes = b"animica.casino.local") -> None:
        if capacity is not None and capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._cap = capacity
        self._rids: List[int] = []  # ascending
        self._by_id: Dict[int, bytes] = {}
        self._pruned_below: Optional[int] = None
        self._seed = bytes(seed)
        self._lock = threading.RLock()

    def __len__(self) -> int:  # pragma: no cover - trivial
        with self._lock:
            return len(self._rids)

    # ------------------------ RandomnessSource ------------------------

    def latest_round(self) -> int:
        with self._lock:
            if not self._rids:
                raise OracleUnavailable("no rounds published yet")
            return self._rids[-1]

    def randomness_for(self, round_id: int) -> Optional[bytes]:
        rid = int(require_round(round_id))
        with self._lock:
            value = self._by_id.get(rid)
            if value is not None:
                return value
            if self._pruned_below is not None and rid < self._pruned_below:
                raise OracleUnavailable("round pruned from local history", round_id=rid)
            return None

    # ------------------------ publication ------------------------

    def publish(self, round_id: int, value: bytes) -> None:
        """
        Publish `value` for `round_id`. Round ids must increase; a published
        round can be re-published only with the same bytes.
        """
        rid = int(require_round(round_id))
        if not isinstance(value, (bytes, bytearray)) or len(value) == 0:
            raise ValueError("value must be non-empty bytes")
        value = bytes(value)
        with self._lock:
            existing = self._by_id.get(rid)
            if existing is not None:
                if existing != value:
                    raise ValueError(f"round {rid} already published with different randomness")
                return
            if self._rids and rid <= self._rids[-1]:
                raise ValueError(f"round_id must increase (got {rid}, last {self._rids[-1]})")
            self._rids.append(rid)
            self._by_id[rid] = value
            if self._cap is not None and len(self._rids) > self._cap:
                oldest = self._rids.pop(0)
                del self._by_id[oldest]
                self._pruned_below = self._rids[0]

    def advance(self, value: Optional[bytes] = None) -> Tuple[int, bytes]:
        """
        Publish the next round (latest + 1, or 0 when empty). Without an
        explicit value, derive one as sha3_256(seed || u64_be(round)).
        """
        with self._lock:
            rid = self._rids[-1] + 1 if self._rids else 0
            if value is None:
                value = hashlib.sha3_256(self._seed + rid.to_bytes(8, "big")).digest()
            self.publish(rid, value)
            return rid, bytes(value)

    def window(self, start_inclusive: int, end_inclusive: int) -> List[Tuple[int, bytes]]:
        """Published (round, value) pairs in [start, end], oldest first."""
        a, b = int(start_inclusive), int(end_inclusive)
        if b < a:
            a, b = b, a
        with self._lock:
            li = bisect.bisect_left(self._rids, a)
            ri = bisect.bisect_right(self._rids, b)
            return [(r, self._by_id[r]) for r in self._rids[li:ri]]


__all__ = ["LocalBeacon"]
