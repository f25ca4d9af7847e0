"""
casino.rpc.methods
------------------

JSON-RPC method shims for the bet ledger.

These are intentionally thin: they validate/normalize inputs with pydantic,
then delegate to a `BetLedger` that owns persistence and the bet rules.

Exposed methods:

- casino.getRandom(round_id)   -> "0x…" | null
- casino.registerBet()         -> {bet_id, target_round, owner}
- casino.resolveBet(bet_id)    -> {bet_id, owner, target_round, randomness, victorious, reward}
- casino.getBet(bet_id)        -> {bet_id, target_round, owner} | null

The caller identity is never a parameter: the transport passes it in from the
request context. Bet ids are accepted as JSON integers or 0x-hex strings.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..constants import BET_ID_MAX, ROUND_MAX
from ..errors import (BetNotFound, BetResolutionTooEarly, CasinoError, Custom,
                      FailedTransfer, IdSpaceExhausted, NotBetOwner,
                      OracleUnavailable, ResolutionInProgress)
from ..ledger import BetLedger

# ---------- error codes ----------

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

NOT_BET_OWNER = -32003
BET_NOT_FOUND = -32004
TOO_EARLY = -32010
IN_PROGRESS = -32011
FAILED_TRANSFER = -32020
ORACLE_UNAVAILABLE = -32030
ID_SPACE_EXHAUSTED = -32040
CUSTOM = -32099

_ERROR_CODES = (
    (NotBetOwner, NOT_BET_OWNER),
    (BetNotFound, BET_NOT_FOUND),
    (BetResolutionTooEarly, TOO_EARLY),
    (ResolutionInProgress, IN_PROGRESS),
    (FailedTransfer, FAILED_TRANSFER),
    (OracleUnavailable, ORACLE_UNAVAILABLE),
    (IdSpaceExhausted, ID_SPACE_EXHAUSTED),
    (Custom, CUSTOM),
)


class RpcError(Exception):
    """Transport-level JSON-RPC error (bad params, unknown method, ...)."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


# ---------- helpers ----------

def _bytes_to_hex(b: bytes) -> str:
    return "0x" + b.hex()


def _int_or_hex(v: Any) -> Any:
    if isinstance(v, str):
        s = v.strip()
        if s.startswith(("0x", "0X")):
            return int(s[2:], 16)
        return int(s)
    return v


# u64/u128 bounds exceed what Field(ge=, le=) constraints accept
def _in_range(v: int, hi: int, name: str) -> int:
    if v < 0 or v > hi:
        raise ValueError(f"{name} out of range")
    return v


def error_to_rpc(exc: CasinoError) -> Dict[str, Any]:
    """Map a casino error onto a JSON-RPC error object."""
    code = INTERNAL_ERROR
    for cls, c in _ERROR_CODES:
        if isinstance(exc, cls):
            code = c
            break
    data: Dict[str, Any] = {"type": type(exc).__name__}
    if isinstance(exc, Custom):
        data["payload"] = _bytes_to_hex(bytes(exc.payload))
    elif isinstance(exc, (BetNotFound, BetResolutionTooEarly, ResolutionInProgress, NotBetOwner)):
        data["bet_id"] = exc.bet_id
        if isinstance(exc, BetResolutionTooEarly):
            data["target_round"] = exc.target_round
            data["retryable"] = True
    elif isinstance(exc, FailedTransfer):
        data.update(direction=exc.direction, amount=exc.amount, reason=exc.reason)
    elif isinstance(exc, OracleUnavailable) and exc.round_id is not None:
        data["round_id"] = exc.round_id
    return {"code": code, "message": str(exc), "data": data}


# ---------- request models ----------

class GetRandomParams(BaseModel):
    model_config = ConfigDict(extra="forbid")
    round_id: int = Field(..., description="Beacon round id.")

    @field_validator("round_id")
    @classmethod
    def _check_round(cls, v: int) -> int:
        return _in_range(v, ROUND_MAX, "round_id")


class BetIdParams(BaseModel):
    model_config = ConfigDict(extra="forbid")
    bet_id: int = Field(..., description="Bet id (int or 0x-hex).")

    @field_validator("bet_id", mode="before")
    @classmethod
    def _parse_bet_id(cls, v: Any) -> Any:
        return _int_or_hex(v)

    @field_validator("bet_id")
    @classmethod
    def _check_bet_id(cls, v: int) -> int:
        return _in_range(v, BET_ID_MAX, "bet_id")


class NoParams(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ---------- method handlers ----------

def casino_get_random(ledger: BetLedger, caller: Optional[str], args: Mapping[str, Any]) -> Optional[str]:
    """Published randomness for a round (0x-hex), or null if not yet published."""
    q = GetRandomParams(**args)
    value = ledger.get_random(q.round_id)
    return None if value is None else _bytes_to_hex(value)


def casino_register_bet(ledger: BetLedger, caller: Optional[str], args: Mapping[str, Any]) -> Dict[str, Any]:
    """Pay the fee and open a bet for the calling identity."""
    NoParams(**args)
    bet_id = ledger.register(_need_caller(caller))
    record = ledger.get_bet(bet_id)
    if record is None:
        raise RpcError(INTERNAL_ERROR, f"bet {bet_id} vanished after registration")
    return record.to_dict()


def casino_resolve_bet(ledger: BetLedger, caller: Optional[str], args: Mapping[str, Any]) -> Dict[str, Any]:
    """Resolve a bet; see BetLedger.resolve for the error contract."""
    q = BetIdParams(**args)
    return ledger.resolve(_need_caller(caller), q.bet_id).to_dict()


def casino_get_bet(ledger: BetLedger, caller: Optional[str], args: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Live bet record, or null if unknown or already resolved."""
    q = BetIdParams(**args)
    record = ledger.get_bet(q.bet_id)
    return None if record is None else record.to_dict()


def _need_caller(caller: Optional[str]) -> str:
    if not caller:
        raise RpcError(INVALID_REQUEST, "caller identity missing from request context")
    return caller


# Public registry mapping JSON-RPC method names to callables.
# Each callable has signature: (ledger, caller, args_dict) -> result
RPC_METHODS: Dict[str, Callable[..., Any]] = {
    "casino.getRandom": casino_get_random,
    "casino.registerBet": casino_register_bet,
    "casino.resolveBet": casino_resolve_bet,
    "casino.getBet": casino_get_bet,
}


def dispatch(ledger: BetLedger, request: Mapping[str, Any], *, caller: Optional[str] = None) -> Dict[str, Any]:
    """
    Handle one JSON-RPC 2.0 request object and return the response object.

    Params may be an object or a single-element list holding an object.
    """
    req_id = request.get("id") if isinstance(request, Mapping) else None
    try:
        if not isinstance(request, Mapping) or request.get("jsonrpc") != "2.0":
            raise RpcError(INVALID_REQUEST, "not a JSON-RPC 2.0 request")
        method = request.get("method")
        fn = RPC_METHODS.get(method) if isinstance(method, str) else None
        if fn is None:
            raise RpcError(METHOD_NOT_FOUND, f"method not found: {method!r}")
        args = _normalize_params(request.get("params"))
        result = fn(ledger, caller, args)
    except RpcError as e:
        return _error(req_id, {"code": e.code, "message": e.message, "data": e.data})
    except ValidationError as e:
        details = e.errors(include_url=False, include_context=False, include_input=False)
        return _error(req_id, {"code": INVALID_PARAMS, "message": "invalid params", "data": details})
    except (TypeError, ValueError) as e:
        return _error(req_id, {"code": INVALID_PARAMS, "message": str(e), "data": None})
    except CasinoError as e:
        return _error(req_id, error_to_rpc(e))
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def _normalize_params(params: Union[None, list, Mapping[str, Any]]) -> Mapping[str, Any]:
    if params is None:
        return {}
    if isinstance(params, Mapping):
        return params
    if isinstance(params, list):
        if not params:
            return {}
        if len(params) == 1 and isinstance(params[0], Mapping):
            return params[0]
    raise RpcError(INVALID_PARAMS, "params must be an object")


def _error(req_id: Any, err: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": req_id, "error": err}


__all__ = [
    "GetRandomParams",
    "BetIdParams",
    "RpcError",
    "RPC_METHODS",
    "dispatch",
    "error_to_rpc",
    "casino_get_random",
    "casino_register_bet",
    "casino_resolve_bet",
    "casino_get_bet",
]
