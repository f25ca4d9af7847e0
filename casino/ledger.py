"""
casino.ledger
=============

The bet ledger: a two-phase wager on a future beacon round.

    register(caller)          fee debit → fresh bet id → (latest round + offset, caller) stored
    resolve(caller, bet_id)   look up → read target round → too early | won/lost → record consumed
    get_random(round)         read-only passthrough to the randomness source

State machine for one bet id:

    UNREGISTERED ─register→ REGISTERED(target_round, owner) ─resolve→ RESOLVED (record deleted)
                                   └── resolve while unpublished → BetResolutionTooEarly (no change)

Consistency rules
-----------------
- A record exists only after its fee was debited; a failed debit creates nothing.
- A record is consumed exactly once. It is deleted *before* the reward credit
  is issued, so a reentrant resolve cannot pay twice; if the credit fails the
  record is put back and the owner may retry.
- Every failure leaves the store as it was before the call.
- Calls are serialized by one re-entrant lock. Collaborators must not call
  back into the ledger; if they do, resolve of the same bet is refused with
  `ResolutionInProgress`.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterator, Optional, Set, Tuple

from .config import CasinoConfig
from .constants import ROUND_MAX
from .errors import (BetNotFound, BetResolutionTooEarly, FailedTransfer,
                     NotBetOwner, OracleUnavailable, ResolutionInProgress,
                     TransferError)
from .ids import IdAllocator, make_allocator
from .metrics import METRICS, Metrics
from .oracle import RandomnessSource
from .outcome import OutcomePolicy, make_policy
from .settlement import SettlementLedger
from .store import KeyValue, open_store
from .store.kv import BetBuckets
from .store.memory import MemoryKeyValue
from .types.core import (BetId, BetRecord, Owner, Resolution, Round,
                         require_bet_id, require_round)

logger = logging.getLogger(__name__)


def _require_caller(caller: str) -> Owner:
    if not isinstance(caller, str) or not caller:
        raise ValueError("caller identity must be a non-empty str")
    return Owner(caller)


class BetLedger:
    """
    Owns every live bet and the rules for creating and consuming them.

    Parameters
    ----------
    source : RandomnessSource
        Beacon the bets are settled against.
    settlement : SettlementLedger
        Moves fees in and rewards out.
    store : Optional[KeyValue]
        Backend for live bets (defaults to a fresh in-memory store).
    config : Optional[CasinoConfig]
        Fee, reward, round offset, owner rule, id and outcome policies.
    ids, policy, metrics :
        Overrides for the id allocator, win-condition policy and metrics sink;
        by default they are built from `config`.
    """

    def __init__(
        self,
        *,
        source: RandomnessSource,
        settlement: SettlementLedger,
        store: Optional[KeyValue] = None,
        config: Optional[CasinoConfig] = None,
        ids: Optional[IdAllocator] = None,
        policy: Optional[OutcomePolicy] = None,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self.config = config or CasinoConfig()
        self.config.validate()
        self._source = source
        self._settlement = settlement
        self._kv: KeyValue = store if store is not None else MemoryKeyValue()
        self._buckets = BetBuckets(self._kv)
        self._ids = ids or make_allocator(self.config.id_policy, self._buckets)
        self._policy = policy or make_policy(
            self.config.outcome.policy,
            threshold=self.config.outcome.threshold,
            domain=self.config.outcome.domain.encode("utf-8"),
        )
        self._metrics = metrics or METRICS
        self._lock = threading.RLock()
        self._resolving: Set[int] = set()

    @classmethod
    def from_config(
        cls,
        config: CasinoConfig,
        *,
        settlement: Optional[SettlementLedger] = None,
        source: Optional[RandomnessSource] = None,
        metrics: Optional[Metrics] = None,
    ) -> "BetLedger":
        """
        Build a ledger whose oracle, settlement and store come from `config`.

        Without an explicit `settlement`, an empty `HouseLedger` booked against
        `config.house` is used; fund it through `ledger.settlement`. A local
        oracle starts with no rounds; publish them through `ledger.source`.
        """
        config.validate()
        if source is None:
            if config.oracle.kind == "rpc":
                from .oracle.rpc import RpcRandomnessSource

                source = RpcRandomnessSource(config.oracle.endpoint or "", timeout_s=config.oracle.timeout_s)
            else:
                from .oracle.local import LocalBeacon

                source = LocalBeacon()
        if settlement is None:
            from .settlement.balances import HouseLedger

            settlement = HouseLedger(house=config.house)
        return cls(
            source=source,
            settlement=settlement,
            store=open_store(config.storage.uri),
            config=config,
            metrics=metrics,
        )

    @property
    def source(self) -> RandomnessSource:
        return self._source

    @property
    def settlement(self) -> SettlementLedger:
        return self._settlement

    @property
    def store(self) -> KeyValue:
        return self._kv

    # ------------------------ queries ------------------------

    def get_random(self, round_id: int) -> Optional[bytes]:
        """Published randomness for `round_id`, or None if not yet published."""
        return self._source.randomness_for(require_round(round_id))

    def get_bet(self, bet_id: int) -> Optional[BetRecord]:
        with self._lock:
            return self._buckets.get_bet(require_bet_id(bet_id))

    def live_bets(self) -> Iterator[BetRecord]:
        with self._lock:
            return iter(list(self._buckets.iter_bets()))

    def live_count(self) -> int:
        with self._lock:
            return self._buckets.count_bets()

    # ------------------------ register ------------------------

    def register(self, caller: str) -> BetId:
        """
        Take the fee from `caller` and open a bet on a future round.

        Raises:
            OracleUnavailable: the latest round could not be read; nothing was debited.
            FailedTransfer: the fee debit failed; no record was created.
        """
        owner = _require_caller(caller)
        fee = self.config.fee
        with self._lock:
            try:
                current = int(self._source.latest_round())
            except OracleUnavailable:
                self._metrics.record_registration("oracle_unavailable")
                raise
            target = current + self.config.round_offset
            if target > ROUND_MAX:
                self._metrics.record_registration("oracle_unavailable")
                raise OracleUnavailable("target round exceeds u64 range", round_id=current)

            try:
                self._settlement.debit(owner, fee)
            except TransferError as e:
                self._metrics.record_registration("failed_transfer")
                raise FailedTransfer(identity=owner, amount=fee, direction="debit", reason=e.reason) from e

            try:
                with self._kv.transaction():
                    bet_id = self._ids.allocate()
                    self._buckets.put_bet(BetRecord(bet_id=bet_id, target_round=Round(target), owner=owner))
            except Exception:
                self._refund(owner, fee)
                self._metrics.record_registration("invalid")
                raise

        self._metrics.record_registration("accepted")
        self._metrics.add_fee(fee)
        logger.info("bet %d registered owner=%s target_round=%d", bet_id, owner, target)
        return bet_id

    def _refund(self, owner: Owner, fee: int) -> None:
        try:
            self._settlement.credit(owner, fee)
        except Exception:
            logger.exception("fee refund of %d to %s failed after a storage error", fee, owner)
        else:
            logger.warning("refunded fee of %d to %s after a storage error", fee, owner)

    # ------------------------ resolve ------------------------

    def resolve(self, caller: str, bet_id: int) -> Resolution:
        """
        Settle a bet whose target round has been published.

        Raises:
            BetNotFound: unknown or already resolved id.
            NotBetOwner: `caller` is not the owner (when `require_owner`).
            BetResolutionTooEarly: target round not published yet; retry later.
            OracleUnavailable: the beacon could not be read or returned empty bytes.
            FailedTransfer: the reward credit failed; the bet is still live.
            ResolutionInProgress: reentrant resolve of the same bet.
        """
        who = _require_caller(caller)
        bid = require_bet_id(bet_id)
        with self._metrics.resolve_timer(), self._lock:
            if bid in self._resolving:
                self._metrics.record_resolution("in_progress")
                logger.debug("reentrant resolve refused for bet %d", bid)
                raise ResolutionInProgress(bet_id=bid)

            # held from the first read to the payout; collaborators re-entering
            # for this bet get ResolutionInProgress
            self._resolving.add(bid)
            try:
                record, randomness, victorious = self._settle(who, bid)
            finally:
                self._resolving.discard(bid)
            reward = self.config.reward if victorious else 0

        self._metrics.record_resolution("won" if victorious else "lost")
        if reward:
            self._metrics.add_reward(reward)
        logger.info(
            "bet %d resolved owner=%s round=%d victorious=%s reward=%d",
            bid, record.owner, record.target_round, victorious, reward,
        )
        return Resolution(
            bet_id=bid,
            owner=record.owner,
            target_round=record.target_round,
            randomness=randomness,
            victorious=victorious,
            reward=reward,
        )

    def _settle(self, who: Owner, bid: BetId) -> Tuple[BetRecord, bytes, bool]:
        record = self._buckets.get_bet(bid)
        if record is None:
            self._metrics.record_resolution("not_found")
            raise BetNotFound(bet_id=bid)
        if self.config.require_owner and who != record.owner:
            self._metrics.record_resolution("not_owner")
            raise NotBetOwner(bet_id=bid, caller=who)

        try:
            randomness = self._source.randomness_for(record.target_round)
        except OracleUnavailable:
            self._metrics.record_resolution("oracle_unavailable")
            raise
        if randomness is None:
            self._metrics.record_resolution("too_early")
            logger.debug("bet %d too early: round %d not published", bid, record.target_round)
            raise BetResolutionTooEarly(bet_id=bid, target_round=record.target_round)
        if len(randomness) == 0:
            self._metrics.record_resolution("oracle_unavailable")
            raise OracleUnavailable("empty randomness", round_id=record.target_round)

        randomness = bytes(randomness)
        victorious = self._policy.is_victorious(randomness)

        # the store may be shared with another ledger; consume only what is still there
        with self._kv.transaction():
            if self._buckets.get_bet(bid) != record:
                self._metrics.record_resolution("not_found")
                logger.debug("bet %d consumed concurrently", bid)
                raise BetNotFound(bet_id=bid)
            self._buckets.del_bet(bid)
        if victorious and self.config.reward:
            self._pay(record, self.config.reward)
        return record, randomness, victorious

    def _pay(self, record: BetRecord, reward: int) -> None:
        """Credit the owner; on any failure put the record back and re-raise."""
        try:
            self._settlement.credit(record.owner, reward)
        except TransferError as e:
            self._restore(record)
            self._metrics.record_resolution("failed_transfer")
            logger.warning("reward credit for bet %d failed (%s); bet restored", record.bet_id, e.reason)
            raise FailedTransfer(
                identity=record.owner, amount=reward, direction="credit", reason=e.reason
            ) from e
        except Exception:
            self._restore(record)
            self._metrics.record_resolution("invalid")
            raise

    def _restore(self, record: BetRecord) -> None:
        try:
            with self._kv.transaction():
                self._buckets.put_bet(record)
        except Exception:
            logger.exception("could not restore bet %d after a failed payout", record.bet_id)
            raise


__all__ = ["BetLedger"]
