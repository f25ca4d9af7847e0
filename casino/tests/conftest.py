from __future__ import annotations

from typing import Dict, Optional

import pytest
from prometheus_client import CollectorRegistry

from casino.errors import OracleUnavailable
from casino.ledger import BetLedger
from casino.metrics import Metrics
from casino.oracle.local import LocalBeacon
from casino.settlement.balances import HouseLedger

START_ROUND = 5


class StubSource:
    """RandomnessSource with scripted answers (including ones LocalBeacon refuses)."""

    def __init__(self, latest: Optional[int] = START_ROUND, values: Optional[Dict[int, bytes]] = None) -> None:
        self.latest = latest
        self.values: Dict[int, Optional[bytes]] = dict(values or {})
        self.fail = False

    def latest_round(self) -> int:
        if self.fail or self.latest is None:
            raise OracleUnavailable("stub offline")
        return self.latest

    def randomness_for(self, round_id: int) -> Optional[bytes]:
        if self.fail:
            raise OracleUnavailable("stub offline", round_id=round_id)
        return self.values.get(round_id)


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> Metrics:
    return Metrics(registry=registry)


@pytest.fixture
def beacon() -> LocalBeacon:
    b = LocalBeacon()
    b.publish(START_ROUND, b"\x42" * 32)
    return b


@pytest.fixture
def house() -> HouseLedger:
    h = HouseLedger()
    h.fund("alice", 100)
    h.fund("bob", 100)
    h.fund("house", 1000)
    return h


@pytest.fixture
def ledger(beacon: LocalBeacon, house: HouseLedger, metrics: Metrics) -> BetLedger:
    return BetLedger(source=beacon, settlement=house, metrics=metrics)
