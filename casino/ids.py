"""
Bet identifier policies.

Two allocators are provided; both only ever return ids that are not held by
a live record:

- CounterIdAllocator: persistent monotonic counter stored in the META bucket.
  Ids start at 1 and are never reused, even after the bet is resolved.
- RandomIdAllocator: 128-bit ids from an entropy callable, re-drawn on
  collision with a live record. Useful when ids should not reveal how many
  bets the house has taken.

Id 0 is never issued. Allocation must run inside the same store transaction
that inserts the record, so a failed insert also rolls back the counter.
"""

from __future__ import annotations

import secrets
from typing import Callable, Protocol

from .constants import BET_ID_MAX
from .errors import IdSpaceExhausted
from .store.kv import BetBuckets
from .types.core import BetId


class IdAllocator(Protocol):
    def allocate(self) -> BetId: ...


class CounterIdAllocator:
    """Monotonic u128 counter persisted next to the bets."""

    def __init__(self, buckets: BetBuckets) -> None:
        self._b = buckets

    def peek(self) -> int:
        raw = self._b.get_meta(BetBuckets.META_NEXT_BET_ID)
        return 1 if raw is None else int.from_bytes(raw, "big")

    def allocate(self) -> BetId:
        nxt = self.peek()
        # skip ids still held by records written under another policy
        while True:
            if nxt > BET_ID_MAX:
                raise IdSpaceExhausted(attempts=1)
            if not self._b.has_bet(nxt):
                break
            nxt += 1
        self._b.put_meta(BetBuckets.META_NEXT_BET_ID, (nxt + 1).to_bytes(17, "big"))
        return BetId(nxt)


class RandomIdAllocator:
    """Collision-checked random ids."""

    def __init__(
        self,
        buckets: BetBuckets,
        *,
        entropy: Callable[[int], bytes] = secrets.token_bytes,
        max_attempts: int = 16,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        self._b = buckets
        self._entropy = entropy
        self._max_attempts = max_attempts

    def allocate(self) -> BetId:
        for _ in range(self._max_attempts):
            candidate = int.from_bytes(self._entropy(16)[:16], "big") & BET_ID_MAX
            if candidate == 0 or self._b.has_bet(candidate):
                continue
            return BetId(candidate)
        raise IdSpaceExhausted(attempts=self._max_attempts)


def make_allocator(policy: str, buckets: BetBuckets) -> IdAllocator:
    if policy == "counter":
        return CounterIdAllocator(buckets)
    if policy == "random":
        return RandomIdAllocator(buckets)
    raise ValueError(f"unknown id policy: {policy!r}")


__all__ = [
    "IdAllocator",
    "CounterIdAllocator",
    "RandomIdAllocator",
    "make_allocator",
]
