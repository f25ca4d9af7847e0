"""
Casino module configuration.

Typed configuration objects and helpers for:
- Economics of a bet (fee, reward, house account)
- How far ahead a bet's target round is placed
- Who may resolve a bet, and how bet ids are generated
- The win-condition policy
- Where randomness comes from and where bets are stored

Provides:
- Dataclass-based configs with validation
- Loading from environment variables (prefix configurable)
- Loading from a JSON or YAML file
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml

from .constants import (DEFAULT_FEE, DEFAULT_HOUSE, DEFAULT_REWARD,
                        DEFAULT_ROUND_OFFSET, DEFAULT_THRESHOLD, DOMAIN_OUTCOME,
                        MIN_ROUND_OFFSET)

# -------------------------
# Sub-configs
# -------------------------


@dataclass
class OutcomeConfig:
    """
    Win-condition policy.

    policy:
        - "threshold" : first randomness byte >= threshold
        - "parity"    : last randomness byte is odd
        - "hash_bit"  : low bit of sha3_256(domain || randomness)
    threshold: 0..255, used by "threshold"
    domain: domain-separation tag, used by "hash_bit"
    """

    policy: str = "threshold"
    threshold: int = DEFAULT_THRESHOLD
    domain: str = DOMAIN_OUTCOME.decode("ascii")

    def validate(self) -> None:
        if self.policy not in {"threshold", "parity", "hash_bit"}:
            raise ValueError(f"Unsupported outcome policy: {self.policy}")
        if not (0 <= self.threshold <= 255):
            raise ValueError("threshold must be between 0 and 255")
        if not self.domain:
            raise ValueError("domain must be non-empty")


@dataclass
class OracleConfig:
    """
    Randomness source.

    kind:
        - "local" : in-process LocalBeacon (devnets, tests)
        - "rpc"   : beacon node JSON-RPC at `endpoint`
    timeout_s: HTTP timeout for beacon queries
    """

    kind: str = "local"
    endpoint: Optional[str] = None
    timeout_s: float = 5.0

    def validate(self) -> None:
        if self.kind not in {"local", "rpc"}:
            raise ValueError("oracle kind must be one of {local, rpc}")
        if self.kind == "rpc":
            if not self.endpoint:
                raise ValueError("endpoint is required for the rpc oracle")
            u = urlparse(self.endpoint)
            if u.scheme not in {"http", "https"}:
                raise ValueError("oracle endpoint must be http(s)")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")


@dataclass
class StorageConfig:
    """
    Where live bets are persisted.

    uri:
      - memory://               process-local, lost on restart
      - sqlite:///path/to.db    durable
    """

    uri: str = "memory://"

    def validate(self) -> None:
        scheme = urlparse(self.uri).scheme
        if scheme not in {"memory", "sqlite"}:
            raise ValueError("storage uri must be memory:// or sqlite://...")


# -------------------------
# Top-level config
# -------------------------


@dataclass
class CasinoConfig:
    """
    Economics:
      - fee: debited from the bettor at registration
      - reward: credited to the owner when the bet wins
      - house: identity of the casino account in the bundled HouseLedger

    Bet lifecycle:
      - round_offset: target_round = latest published round + round_offset
      - require_owner: only the bettor may resolve their bet
      - id_policy: "counter" (monotonic) or "random" (collision-checked)
    """

    fee: int = DEFAULT_FEE
    reward: int = DEFAULT_REWARD
    house: str = DEFAULT_HOUSE
    round_offset: int = DEFAULT_ROUND_OFFSET
    require_owner: bool = True
    id_policy: str = "counter"

    outcome: OutcomeConfig = field(default_factory=OutcomeConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    def validate(self) -> None:
        if self.fee < 0:
            raise ValueError("fee must be >= 0")
        if self.reward < 0:
            raise ValueError("reward must be >= 0")
        if not self.house:
            raise ValueError("house must be non-empty")
        if self.round_offset < MIN_ROUND_OFFSET:
            raise ValueError(f"round_offset must be >= {MIN_ROUND_OFFSET}")
        if self.id_policy not in {"counter", "random"}:
            raise ValueError("id_policy must be one of {counter, random}")

        self.outcome.validate()
        self.oracle.validate()
        self.storage.validate()

    # -------------------------
    # Serialization helpers
    # -------------------------

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    # -------------------------
    # Loaders
    # -------------------------

    @staticmethod
    def from_env(prefix: str = "ANIMICA_CASINO_") -> "CasinoConfig":
        """
        Load configuration from environment variables. All variables are optional.

          - ANIMICA_CASINO_FEE=10
          - ANIMICA_CASINO_REWARD=20
          - ANIMICA_CASINO_HOUSE=house
          - ANIMICA_CASINO_ROUND_OFFSET=2
          - ANIMICA_CASINO_REQUIRE_OWNER=true
          - ANIMICA_CASINO_ID_POLICY=counter

          - ANIMICA_CASINO_OUTCOME_POLICY=threshold
          - ANIMICA_CASINO_OUTCOME_THRESHOLD=128
          - ANIMICA_CASINO_OUTCOME_DOMAIN=animica.casino.outcome.v1

          - ANIMICA_CASINO_ORACLE_KIND=rpc
          - ANIMICA_CASINO_ORACLE_ENDPOINT=http://127.0.0.1:8545
          - ANIMICA_CASINO_ORACLE_TIMEOUT_S=5

          - ANIMICA_CASINO_STORE_URI=sqlite:///var/lib/animica/casino.db
        """

        def _get(name: str, cast: Any, default: Any) -> Any:
            key = prefix + name
            raw = os.getenv(key)
            if raw is None:
                return default
            try:
                if cast is bool:
                    return raw.lower() in {"1", "true", "yes", "on"}
                return cast(raw)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from e

        d = OutcomeConfig()
        cfg = CasinoConfig(
            fee=_get("FEE", int, DEFAULT_FEE),
            reward=_get("REWARD", int, DEFAULT_REWARD),
            house=_get("HOUSE", str, DEFAULT_HOUSE),
            round_offset=_get("ROUND_OFFSET", int, DEFAULT_ROUND_OFFSET),
            require_owner=_get("REQUIRE_OWNER", bool, True),
            id_policy=_get("ID_POLICY", str, "counter"),
            outcome=OutcomeConfig(
                policy=_get("OUTCOME_POLICY", str, d.policy),
                threshold=_get("OUTCOME_THRESHOLD", int, d.threshold),
                domain=_get("OUTCOME_DOMAIN", str, d.domain),
            ),
            oracle=OracleConfig(
                kind=_get("ORACLE_KIND", str, "local"),
                endpoint=_get("ORACLE_ENDPOINT", str, None),
                timeout_s=_get("ORACLE_TIMEOUT_S", float, 5.0),
            ),
            storage=StorageConfig(uri=_get("STORE_URI", str, "memory://")),
        )
        cfg.validate()
        return cfg

    @staticmethod
    def from_file(path: str) -> "CasinoConfig":
        """
        Load configuration from a JSON or YAML file. Keys mirror the dataclass
        structure. Example (YAML):

            fee: 10
            reward: 20
            round_offset: 3
            outcome:
              policy: hash_bit
            oracle:
              kind: rpc
              endpoint: http://127.0.0.1:8545
            storage:
              uri: sqlite:///var/lib/animica/casino.db
        """
        with open(path, "r", encoding="utf-8") as f:
            data = _parse_json_or_yaml(f.read(), path)

        outcome_d = data.pop("outcome", None) or {}
        oracle_d = data.pop("oracle", None) or {}
        storage_d = data.pop("storage", None) or {}
        unknown = set(data) - set(CasinoConfig.__dataclass_fields__)
        for section, cls in ((outcome_d, OutcomeConfig), (oracle_d, OracleConfig), (storage_d, StorageConfig)):
            unknown |= set(section) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown config keys in {path!r}: {sorted(unknown)}")

        cfg = CasinoConfig(
            **data,
            outcome=OutcomeConfig(**outcome_d),
            oracle=OracleConfig(**oracle_d),
            storage=StorageConfig(**storage_d),
        )
        cfg.validate()
        return cfg


# -------------------------
# Utilities
# -------------------------


def _parse_json_or_yaml(text: str, path_hint: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse {path_hint!r} as JSON or YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path_hint!r} must contain a mapping at the top level")
    return data


DEFAULT: CasinoConfig = CasinoConfig()


__all__ = [
    "OutcomeConfig",
    "OracleConfig",
    "StorageConfig",
    "CasinoConfig",
    "DEFAULT",
]
