"""
casino.oracle.rpc
-----------------

`RandomnessSource` backed by the beacon's JSON-RPC surface:

  rand.getBeacon()              -> latest finalized beacon  {round_id, beacon, ...}
  rand.getBeacon({round_id: r}) -> beacon for round r, or null if not finalized

Both hex fields are 0x-prefixed. Any transport, HTTP, JSON or JSON-RPC error
is raised as `OracleUnavailable`; only an explicit null result means "not yet
published".
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

import requests

from ..errors import OracleUnavailable
from ..types.core import require_round

logger = logging.getLogger(__name__)


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith("0x") or s.startswith("0X") else s


def _pick(d: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return None


class RpcRandomnessSource:
    """Reads published rounds from a beacon node over JSON-RPC 2.0."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout_s: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout_s = float(timeout_s)
        self._session = session or requests.Session()
        self._next_id = 0

    # ------------------------ RandomnessSource ------------------------

    def latest_round(self) -> int:
        res = self._call("rand.getBeacon", None)
        if not isinstance(res, Mapping):
            raise OracleUnavailable("beacon has no finalized rounds")
        rid = _pick(res, "round_id", "roundId", "round")
        try:
            return int(require_round(int(rid)))
        except (TypeError, ValueError) as e:
            raise OracleUnavailable(f"malformed round id in beacon: {rid!r}") from e

    def randomness_for(self, round_id: int) -> Optional[bytes]:
        rid = int(require_round(round_id))
        res = self._call("rand.getBeacon", {"round_id": rid})
        if res is None:
            return None
        if not isinstance(res, Mapping):
            raise OracleUnavailable("unexpected beacon shape", round_id=rid)
        got = _pick(res, "round_id", "roundId", "round")
        if got is not None and str(got) != str(rid):
            raise OracleUnavailable(f"beacon answered for round {got}", round_id=rid)
        hex_value = _pick(res, "beacon", "output", "value")
        if hex_value is None:
            return None
        try:
            return bytes.fromhex(_strip_0x(str(hex_value)))
        except ValueError as e:
            raise OracleUnavailable("beacon value is not hex", round_id=rid) from e

    # ------------------------ transport ------------------------

    def _call(self, method: str, params: Optional[Dict[str, Any]]) -> Any:
        self._next_id += 1
        body: Dict[str, Any] = {"jsonrpc": "2.0", "id": self._next_id, "method": method}
        if params is not None:
            body["params"] = params
        try:
            r = self._session.post(self.endpoint, json=body, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise OracleUnavailable(f"RPC POST failed: {e}") from e
        if r.status_code != 200:
            raise OracleUnavailable(f"RPC error HTTP {r.status_code}")
        try:
            data = r.json()
        except (ValueError, json.JSONDecodeError) as e:
            raise OracleUnavailable("RPC response not JSON") from e
        if not isinstance(data, Mapping):
            raise OracleUnavailable("RPC response is not an object")
        if data.get("error"):
            logger.debug("beacon RPC %s returned error: %s", method, data["error"])
            raise OracleUnavailable(f"RPC error: {json.dumps(data['error'])}")
        return data.get("result")


__all__ = ["RpcRandomnessSource"]
