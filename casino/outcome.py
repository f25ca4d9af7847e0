"""
Win-condition policies.

Every policy is a pure, deterministic predicate over the published beacon
bytes: anyone who fetches the same round from the beacon can recompute the
outcome. Policies hold only immutable parameters and never read ledger state.

- ThresholdPolicy: first byte >= threshold (threshold=128 wins ~50%)
- ParityPolicy:    last byte is odd
- HashBitPolicy:   low bit of sha3_256(domain || randomness)[0]

Empty randomness is never victorious; the ledger rejects it before asking.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Protocol

from .constants import DEFAULT_THRESHOLD, DOMAIN_OUTCOME


class OutcomePolicy(Protocol):
    def is_victorious(self, randomness: bytes) -> bool: ...


@dataclass(frozen=True)
class ThresholdPolicy:
    threshold: int = DEFAULT_THRESHOLD

    def __post_init__(self) -> None:
        if not 0 <= self.threshold <= 255:
            raise ValueError("threshold must be within 0..255")

    def is_victorious(self, randomness: bytes) -> bool:
        if not randomness:
            return False
        return randomness[0] >= self.threshold


@dataclass(frozen=True)
class ParityPolicy:
    def is_victorious(self, randomness: bytes) -> bool:
        if not randomness:
            return False
        return bool(randomness[-1] & 1)


@dataclass(frozen=True)
class HashBitPolicy:
    domain: bytes = DOMAIN_OUTCOME

    def is_victorious(self, randomness: bytes) -> bool:
        if not randomness:
            return False
        return bool(hashlib.sha3_256(self.domain + bytes(randomness)).digest()[0] & 1)


def is_victorious(randomness: bytes, policy: OutcomePolicy | None = None) -> bool:
    """Evaluate `randomness` under `policy` (default: ThresholdPolicy())."""
    return (policy or ThresholdPolicy()).is_victorious(bytes(randomness))


def make_policy(name: str, *, threshold: int = DEFAULT_THRESHOLD, domain: bytes = DOMAIN_OUTCOME) -> OutcomePolicy:
    if name == "threshold":
        return ThresholdPolicy(threshold=threshold)
    if name == "parity":
        return ParityPolicy()
    if name == "hash_bit":
        return HashBitPolicy(domain=domain)
    raise ValueError(f"unknown outcome policy: {name!r}")


__all__ = [
    "OutcomePolicy",
    "ThresholdPolicy",
    "ParityPolicy",
    "HashBitPolicy",
    "is_victorious",
    "make_policy",
]
