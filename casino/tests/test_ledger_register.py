from __future__ import annotations

import threading
from typing import List, Tuple

import pytest

from casino.config import CasinoConfig
from casino.errors import Custom, FailedTransfer, OracleUnavailable
from casino.ledger import BetLedger
from casino.oracle.local import LocalBeacon
from casino.settlement.balances import HouseLedger
from casino.store.memory import MemoryKeyValue
from casino.tests.conftest import START_ROUND, StubSource


class FullDiskStore(MemoryKeyValue):
    def put(self, key: bytes, value: bytes) -> None:
        raise RuntimeError("disk full")


class CustomDebitLedger(HouseLedger):
    def debit(self, identity: str, amount: int) -> None:
        raise Custom(payload=b"\x01\x02")


def test_register_debits_fee_and_targets_future_round(ledger, house):
    bet_id = ledger.register("alice")

    record = ledger.get_bet(bet_id)
    assert record is not None
    assert record.owner == "alice"
    assert record.target_round == START_ROUND + 2
    assert house.balance_of("alice") == 90
    assert house.balance_of("house") == 1010


def test_register_ids_are_unique_and_start_at_one(ledger):
    ids = [ledger.register("alice") for _ in range(3)]
    ids.append(ledger.register("bob"))
    assert ids == [1, 2, 3, 4]
    assert ledger.live_count() == 4
    assert [r.bet_id for r in ledger.live_bets()] == ids


def test_register_same_owner_holds_many_bets(ledger):
    a = ledger.register("alice")
    b = ledger.register("alice")
    assert a != b
    assert ledger.get_bet(a).owner == ledger.get_bet(b).owner == "alice"


def test_register_without_funds_creates_nothing(ledger, house):
    with pytest.raises(FailedTransfer) as ei:
        ledger.register("carol")
    assert ei.value.direction == "debit"
    assert ei.value.amount == 10
    assert ei.value.reason == "insufficient-funds"
    assert ledger.live_count() == 0
    assert house.balance_of("house") == 1000


def test_register_with_oracle_down_charges_nothing(house, metrics):
    ledger = BetLedger(source=LocalBeacon(), settlement=house, metrics=metrics)
    with pytest.raises(OracleUnavailable):
        ledger.register("alice")
    assert house.balance_of("alice") == 100
    assert ledger.live_count() == 0


def test_register_refunds_fee_when_storage_fails(beacon, house, metrics):
    ledger = BetLedger(source=beacon, settlement=house, store=FullDiskStore(), metrics=metrics)
    with pytest.raises(RuntimeError, match="disk full"):
        ledger.register("alice")
    assert house.balance_of("alice") == 100
    assert house.balance_of("house") == 1000


def test_register_custom_debit_failure_propagates(beacon, metrics):
    ledger = BetLedger(source=beacon, settlement=CustomDebitLedger(), metrics=metrics)
    with pytest.raises(Custom) as ei:
        ledger.register("alice")
    assert ei.value.payload == b"\x01\x02"
    assert ledger.live_count() == 0


def test_register_uses_configured_offset_and_fee(beacon, house, metrics):
    cfg = CasinoConfig(fee=25, round_offset=4)
    ledger = BetLedger(source=beacon, settlement=house, config=cfg, metrics=metrics)
    bet_id = ledger.register("bob")
    assert ledger.get_bet(bet_id).target_round == START_ROUND + 4
    assert house.balance_of("bob") == 75


def test_register_target_follows_latest_round(ledger, beacon):
    first = ledger.register("alice")
    beacon.advance()
    beacon.advance()
    second = ledger.register("alice")
    assert ledger.get_bet(first).target_round == START_ROUND + 2
    assert ledger.get_bet(second).target_round == START_ROUND + 4


def test_register_rejects_target_past_u64(house, metrics):
    ledger = BetLedger(source=StubSource(latest=(1 << 64) - 2), settlement=house, metrics=metrics)
    with pytest.raises(OracleUnavailable):
        ledger.register("alice")
    assert house.balance_of("alice") == 100


def test_register_rejects_empty_caller(ledger):
    with pytest.raises(ValueError):
        ledger.register("")


def test_register_random_id_policy(beacon, house, metrics):
    ledger = BetLedger(
        source=beacon, settlement=house, config=CasinoConfig(id_policy="random"), metrics=metrics
    )
    ids = {ledger.register("alice") for _ in range(5)}
    assert len(ids) == 5
    assert 0 not in ids


def test_register_records_metrics(ledger, registry):
    ledger.register("alice")
    with pytest.raises(FailedTransfer):
        ledger.register("nobody")

    accepted = registry.get_sample_value("animica_casino_registrations_total", {"outcome": "accepted"})
    failed = registry.get_sample_value("animica_casino_registrations_total", {"outcome": "failed_transfer"})
    fees = registry.get_sample_value("animica_casino_fees_collected_total")
    assert accepted == 1.0
    assert failed == 1.0
    assert fees == 10.0


def test_concurrent_registrations_get_distinct_ids_and_owners(ledger, house):
    house.fund("alice", 10_000)
    house.fund("bob", 10_000)
    out: List[Tuple[str, int]] = []
    guard = threading.Lock()

    def worker(owner: str) -> None:
        for _ in range(10):
            bid = ledger.register(owner)
            with guard:
                out.append((owner, bid))

    threads = [threading.Thread(target=worker, args=(owner,)) for owner in ("alice", "bob") * 4]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(out) == 80
    assert len({bid for _, bid in out}) == 80
    for owner, bid in out:
        assert ledger.get_bet(bid).owner == owner
    assert sum(1 for owner, _ in out if owner == "bob") == 40
    assert ledger.live_count() == 80
    assert house.balance_of("house") == 1000 + 80 * 10
