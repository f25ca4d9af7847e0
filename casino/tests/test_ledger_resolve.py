from __future__ import annotations

import hashlib
import threading
from typing import List, Optional

import pytest

from casino.config import CasinoConfig, OutcomeConfig
from casino.errors import (BetNotFound, BetResolutionTooEarly, CasinoError,
                           Custom, FailedTransfer, NotBetOwner,
                           OracleUnavailable, ResolutionInProgress)
from casino.ledger import BetLedger
from casino.settlement.balances import HouseLedger
from casino.store import open_store
from casino.tests.conftest import START_ROUND, StubSource

WIN = b"\xff" + b"\x00" * 31
LOSE = b"\x00" * 32


def _publish_target(beacon, value: bytes) -> None:
    beacon.publish(START_ROUND + 1, b"\x11" * 32)
    beacon.publish(START_ROUND + 2, value)


class ReentrantSettlement(HouseLedger):
    """Credits by first trying to resolve the same bet again."""

    def __init__(self) -> None:
        super().__init__()
        self.ledger: Optional[BetLedger] = None
        self.bet_id: Optional[int] = None
        self.seen: List[CasinoError] = []

    def credit(self, identity: str, amount: int) -> None:
        try:
            self.ledger.resolve(identity, self.bet_id)
        except CasinoError as e:
            self.seen.append(e)
        super().credit(identity, amount)


class CustomCreditLedger(HouseLedger):
    def credit(self, identity: str, amount: int) -> None:
        raise Custom(payload=b"\xde\xad")


def test_bet_lifecycle_too_early_then_win_then_gone(ledger, beacon, house):
    bet_id = ledger.register("alice")
    assert ledger.get_bet(bet_id).target_round == 7

    beacon.publish(6, b"\x11" * 32)
    for _ in range(2):
        with pytest.raises(BetResolutionTooEarly) as ei:
            ledger.resolve("alice", bet_id)
        assert ei.value.target_round == 7
        assert ledger.get_bet(bet_id) is not None

    beacon.publish(7, WIN)
    res = ledger.resolve("alice", bet_id)
    assert res.victorious is True
    assert res.reward == 20
    assert res.randomness == WIN
    assert res.target_round == 7
    assert house.balance_of("alice") == 110
    assert house.balance_of("house") == 990
    assert ledger.get_bet(bet_id) is None

    with pytest.raises(BetNotFound):
        ledger.resolve("alice", bet_id)


def test_losing_bet_is_consumed_without_payout(ledger, beacon, house):
    bet_id = ledger.register("alice")
    _publish_target(beacon, LOSE)

    res = ledger.resolve("alice", bet_id)
    assert res.victorious is False
    assert res.reward == 0
    assert house.balance_of("alice") == 90
    assert house.balance_of("house") == 1010
    assert ledger.live_count() == 0


def test_resolve_unknown_bet(ledger):
    with pytest.raises(BetNotFound) as ei:
        ledger.resolve("alice", 999)
    assert ei.value.bet_id == 999


def test_only_owner_may_resolve(ledger, beacon, house):
    bet_id = ledger.register("alice")
    _publish_target(beacon, WIN)

    with pytest.raises(NotBetOwner) as ei:
        ledger.resolve("bob", bet_id)
    assert ei.value.caller == "bob"
    assert ledger.get_bet(bet_id) is not None
    assert house.balance_of("bob") == 100


def test_anyone_may_resolve_when_owner_check_disabled(beacon, house, metrics):
    ledger = BetLedger(
        source=beacon, settlement=house, config=CasinoConfig(require_owner=False), metrics=metrics
    )
    bet_id = ledger.register("alice")
    _publish_target(beacon, WIN)

    res = ledger.resolve("bob", bet_id)
    assert res.owner == "alice"
    assert house.balance_of("alice") == 110
    assert house.balance_of("bob") == 100


def test_two_bets_on_same_round_resolve_independently(ledger, beacon, house):
    a = ledger.register("alice")
    b = ledger.register("bob")
    _publish_target(beacon, WIN)

    assert ledger.resolve("bob", b).victorious
    assert ledger.get_bet(a) is not None
    assert ledger.resolve("alice", a).victorious
    assert house.balance_of("alice") == house.balance_of("bob") == 110


def test_empty_randomness_is_rejected(house, metrics):
    source = StubSource()
    ledger = BetLedger(source=source, settlement=house, metrics=metrics)
    bet_id = ledger.register("alice")
    source.values[START_ROUND + 2] = b""

    with pytest.raises(OracleUnavailable):
        ledger.resolve("alice", bet_id)
    assert ledger.get_bet(bet_id) is not None


def test_oracle_outage_leaves_bet_live(house, metrics):
    source = StubSource()
    ledger = BetLedger(source=source, settlement=house, metrics=metrics)
    bet_id = ledger.register("alice")
    source.fail = True

    with pytest.raises(OracleUnavailable):
        ledger.resolve("alice", bet_id)
    source.fail = False
    source.values[START_ROUND + 2] = WIN
    assert ledger.resolve("alice", bet_id).reward == 20


def test_failed_payout_restores_bet_and_retry_succeeds(beacon, metrics):
    house = HouseLedger()
    house.fund("alice", 100)
    ledger = BetLedger(source=beacon, settlement=house, metrics=metrics)
    bet_id = ledger.register("alice")
    _publish_target(beacon, WIN)

    with pytest.raises(FailedTransfer) as ei:
        ledger.resolve("alice", bet_id)
    assert ei.value.direction == "credit"
    assert ei.value.amount == 20
    assert ledger.get_bet(bet_id) is not None
    assert house.balance_of("alice") == 90

    house.fund("house", 100)
    res = ledger.resolve("alice", bet_id)
    assert res.reward == 20
    assert house.balance_of("alice") == 110
    assert ledger.get_bet(bet_id) is None


def test_custom_credit_failure_propagates_and_restores(beacon, metrics):
    settlement = CustomCreditLedger()
    settlement.fund("alice", 100)
    ledger = BetLedger(source=beacon, settlement=settlement, metrics=metrics)
    bet_id = ledger.register("alice")
    _publish_target(beacon, WIN)

    with pytest.raises(Custom) as ei:
        ledger.resolve("alice", bet_id)
    assert ei.value.payload == b"\xde\xad"
    assert ledger.get_bet(bet_id) is not None


def test_reentrant_resolve_cannot_pay_twice(beacon, metrics):
    settlement = ReentrantSettlement()
    settlement.fund("alice", 100)
    settlement.fund("house", 1000)
    ledger = BetLedger(source=beacon, settlement=settlement, metrics=metrics)
    settlement.ledger = ledger
    bet_id = ledger.register("alice")
    settlement.bet_id = bet_id
    _publish_target(beacon, WIN)

    res = ledger.resolve("alice", bet_id)
    assert res.reward == 20
    assert len(settlement.seen) == 1
    assert isinstance(settlement.seen[0], ResolutionInProgress)
    assert settlement.balance_of("alice") == 110
    assert ledger.get_bet(bet_id) is None


def test_outcome_policy_comes_from_config(beacon, house, metrics):
    cfg = CasinoConfig(outcome=OutcomeConfig(policy="hash_bit"))
    ledger = BetLedger(source=beacon, settlement=house, config=cfg, metrics=metrics)
    bet_id = ledger.register("alice")
    value = b"\x07" * 32
    _publish_target(beacon, value)

    expected = bool(hashlib.sha3_256(b"animica.casino.outcome.v1" + value).digest()[0] & 1)
    assert ledger.resolve("alice", bet_id).victorious is expected


def test_live_bets_survive_restart_on_sqlite(tmp_path, beacon, house, metrics):
    uri = f"sqlite://{tmp_path}/casino.db"
    first = BetLedger(source=beacon, settlement=house, store=open_store(uri), metrics=metrics)
    bet_id = first.register("alice")

    second = BetLedger(source=beacon, settlement=house, store=open_store(uri), metrics=metrics)
    assert second.get_bet(bet_id).owner == "alice"
    assert second.register("bob") == bet_id + 1

    _publish_target(beacon, WIN)
    assert second.resolve("alice", bet_id).reward == 20
    assert second.get_bet(bet_id) is None


def test_resolve_records_metrics(ledger, beacon, registry):
    bet_id = ledger.register("alice")
    with pytest.raises(BetResolutionTooEarly):
        ledger.resolve("alice", bet_id)
    _publish_target(beacon, WIN)
    ledger.resolve("alice", bet_id)

    def sample(outcome: str) -> float:
        return registry.get_sample_value("animica_casino_resolutions_total", {"outcome": outcome})

    assert sample("too_early") == 1.0
    assert sample("won") == 1.0
    assert registry.get_sample_value("animica_casino_rewards_paid_total") == 20.0
    assert registry.get_sample_value("animica_casino_resolve_seconds_count") == 2.0


class MeetingSource:
    """Holds every randomness_for call until `parties` callers have arrived."""

    def __init__(self, inner, parties: int) -> None:
        self.inner = inner
        self.barrier = threading.Barrier(parties, timeout=5)

    def latest_round(self) -> int:
        return self.inner.latest_round()

    def randomness_for(self, round_id: int) -> Optional[bytes]:
        self.barrier.wait()
        return self.inner.randomness_for(round_id)


class ReentrantSource:
    """Resolves the same bet again from inside the first randomness lookup."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.ledger: Optional[BetLedger] = None
        self.seen: List[CasinoError] = []

    def latest_round(self) -> int:
        return self.inner.latest_round()

    def randomness_for(self, round_id: int) -> Optional[bytes]:
        if self.ledger is not None and not self.seen:
            try:
                self.ledger.resolve("alice", 1)
            except CasinoError as e:
                self.seen.append(e)
        return self.inner.randomness_for(round_id)


def test_two_ledgers_on_one_store_pay_once(tmp_path, beacon, house, metrics):
    uri = f"sqlite://{tmp_path}/casino.db"
    bet_id = BetLedger(source=beacon, settlement=house, store=open_store(uri), metrics=metrics).register("alice")
    _publish_target(beacon, WIN)

    source = MeetingSource(beacon, parties=2)
    ledgers = [
        BetLedger(source=source, settlement=house, store=open_store(uri), metrics=metrics) for _ in range(2)
    ]
    wins: List[int] = []
    errors: List[Exception] = []

    def worker(ledger: BetLedger) -> None:
        try:
            wins.append(ledger.resolve("alice", bet_id).reward)
        except CasinoError as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(lg,)) for lg in ledgers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert wins == [20]
    assert len(errors) == 1 and isinstance(errors[0], BetNotFound)
    assert house.balance_of("alice") == 110


def test_resolve_reentered_from_oracle_pays_once(beacon, house, metrics):
    source = ReentrantSource(beacon)
    ledger = BetLedger(source=source, settlement=house, metrics=metrics)
    bet_id = ledger.register("alice")
    _publish_target(beacon, WIN)
    source.ledger = ledger

    res = ledger.resolve("alice", bet_id)
    assert res.reward == 20
    assert len(source.seen) == 1
    assert isinstance(source.seen[0], ResolutionInProgress)
    assert house.balance_of("alice") == 110
    assert ledger.get_bet(bet_id) is None
