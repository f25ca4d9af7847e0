"""
Prometheus metrics for the bet ledger.

  • registrations_total{outcome} — register attempts per outcome
  • resolutions_total{outcome}   — resolve attempts per outcome
  • fees_collected_total         — sum of fees debited
  • rewards_paid_total           — sum of rewards credited
  • resolve_seconds              — wall time of resolve calls

Label cardinality stays low: only an `outcome` label with a small, finite
vocabulary; unknown outcomes are folded into "invalid". No per-bet or
per-owner labels.

Usage
-----
    from casino.metrics import METRICS

    METRICS.record_registration("accepted")
    with METRICS.resolve_timer():
        ...
"""

from __future__ import annotations

from contextlib import contextmanager
from time import perf_counter
from typing import Iterable

from prometheus_client import REGISTRY, Counter, Histogram

_REGISTRATION_OUTCOMES = (
    "accepted",
    "failed_transfer",
    "oracle_unavailable",
    "invalid",
)

_RESOLUTION_OUTCOMES = (
    "won",
    "lost",
    "too_early",
    "not_found",
    "not_owner",
    "in_progress",
    "failed_transfer",
    "oracle_unavailable",
    "invalid",
)

_RESOLVE_BUCKETS = (
    0.0005, 0.001, 0.0025, 0.005,
    0.01, 0.025, 0.05, 0.1,
    0.25, 0.5, 1.0, 5.0,
)


class Metrics:
    """
    Container for the casino Prometheus instruments.

    Args:
        namespace: Prometheus metric namespace (prefix).
        subsystem: Prometheus metric subsystem.
        registry:  Prometheus registry to register the metrics with.
    """

    def __init__(
        self,
        *,
        namespace: str = "animica",
        subsystem: str = "casino",
        registry=REGISTRY,
        resolve_buckets: Iterable[float] = _RESOLVE_BUCKETS,
    ) -> None:
        self.registrations_total = Counter(
            "registrations_total",
            "Bet registration attempts, labeled by outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.resolutions_total = Counter(
            "resolutions_total",
            "Bet resolution attempts, labeled by outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.fees_collected_total = Counter(
            "fees_collected_total",
            "Sum of fees debited from bettors.",
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.rewards_paid_total = Counter(
            "rewards_paid_total",
            "Sum of rewards credited to winning bettors.",
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.resolve_seconds = Histogram(
            "resolve_seconds",
            "Wall time spent in resolve (seconds).",
            buckets=tuple(resolve_buckets),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )

    def record_registration(self, outcome: str) -> None:
        if outcome not in _REGISTRATION_OUTCOMES:
            outcome = "invalid"
        self.registrations_total.labels(outcome=outcome).inc()

    def record_resolution(self, outcome: str) -> None:
        if outcome not in _RESOLUTION_OUTCOMES:
            outcome = "invalid"
        self.resolutions_total.labels(outcome=outcome).inc()

    def add_fee(self, amount: int) -> None:
        self.fees_collected_total.inc(amount)

    def add_reward(self, amount: int) -> None:
        self.rewards_paid_total.inc(amount)

    @contextmanager
    def resolve_timer(self):
        start = perf_counter()
        try:
            yield
        finally:
            self.resolve_seconds.observe(perf_counter() - start)


METRICS = Metrics()

__all__ = [
    "Metrics",
    "METRICS",
    "_REGISTRATION_OUTCOMES",
    "_RESOLUTION_OUTCOMES",
]
