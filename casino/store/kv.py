"""
Logical buckets over a raw byte-oriented KeyValue backend.

Buckets
-------
- BETS:  per-bet records, keyed by the u128 big-endian bet id
- META:  singleton values (id counter, ...)

Values in BETS are `BetRecord.to_bytes()` encodings; META values are raw
bytes chosen by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from ..types.core import BetRecord, maybe_record, require_bet_id
from . import KeyValue

# --- Bucket prefix constants (single-byte, domain-separated) -----------------

BETS_PREFIX = b"\x01"  # BETS:  \x01 | u128_be(bet_id)
META_PREFIX = b"\x02"  # META:  \x02 | u32_be(len(name)) | name


def _be_u128(n: int) -> bytes:
    return int(require_bet_id(n)).to_bytes(16, "big")


def _utf8(b: str | bytes) -> bytes:
    return b if isinstance(b, bytes) else b.encode("utf-8")


@dataclass(frozen=True)
class BetBuckets:
    """
    Namespaced view over a byte KV store used by the bet ledger.

    Fixed-width ids keep BETS keys ordered by numeric bet id, so iteration
    yields records in id order on every backend.
    """
    kv: KeyValue

    # --- Bets ----------------------------------------------------------------

    def key_bet(self, bet_id: int) -> bytes:
        return BETS_PREFIX + _be_u128(bet_id)

    def put_bet(self, record: BetRecord) -> None:
        self.kv.put(self.key_bet(record.bet_id), record.to_bytes())

    def get_bet(self, bet_id: int) -> Optional[BetRecord]:
        return maybe_record(self.kv.get(self.key_bet(bet_id)))

    def has_bet(self, bet_id: int) -> bool:
        return self.kv.has(self.key_bet(bet_id))

    def del_bet(self, bet_id: int) -> None:
        self.kv.delete(self.key_bet(bet_id))

    def iter_bets(self) -> Iterator[BetRecord]:
        for _k, v in self.kv.iter_prefix(BETS_PREFIX):
            yield BetRecord.from_bytes(v)

    def count_bets(self) -> int:
        return sum(1 for _ in self.kv.iter_prefix(BETS_PREFIX))

    # --- Meta ----------------------------------------------------------------

    def key_meta(self, name: str | bytes) -> bytes:
        name_b = _utf8(name)
        return META_PREFIX + len(name_b).to_bytes(4, "big") + name_b

    def put_meta(self, name: str | bytes, value: bytes) -> None:
        self.kv.put(self.key_meta(name), value)

    def get_meta(self, name: str | bytes) -> Optional[bytes]:
        return self.kv.get(self.key_meta(name))

    META_NEXT_BET_ID = b"next_bet_id"   # bytes: u128_be of the next counter id


__all__ = [
    "BetBuckets",
    "BETS_PREFIX",
    "META_PREFIX",
]
