"""
casino.rpc.mount
----------------

Mount the bet ledger on a FastAPI app:

- JSON-RPC:
    POST /rpc                     → casino.getRandom / registerBet / resolveBet / getBet

- REST (prefix `/casino` by default, read-only):
    GET  /random/{round_id}       → published randomness for a round
    GET  /bets/{bet_id}           → live bet record

The caller identity comes from the `X-Animica-Caller` header, which the
gateway in front of this service sets after authenticating the account. It is
never read from the JSON-RPC params.

This module is transport glue only; all rules live in `casino.ledger`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, FastAPI, Header, HTTPException

from ..constants import BET_ID_MAX, ROUND_MAX
from ..errors import OracleUnavailable
from ..ledger import BetLedger
from ..version import __version__
from .methods import dispatch

logger = logging.getLogger(__name__)

CALLER_HEADER = "X-Animica-Caller"


def get_router(ledger: BetLedger, *, prefix: str = "/casino") -> APIRouter:
    r = APIRouter(prefix=prefix, tags=["casino"])

    @r.get("/random/{round_id}")
    def random_for_round(round_id: int) -> dict:
        if round_id < 0 or round_id > ROUND_MAX:
            raise HTTPException(status_code=422, detail="round_id out of range")
        try:
            value = ledger.get_random(round_id)
        except OracleUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
        if value is None:
            raise HTTPException(status_code=404, detail="round not published yet")
        return {"round_id": round_id, "randomness": "0x" + value.hex()}

    @r.get("/bets/{bet_id}")
    def bet_by_id(bet_id: int) -> dict:
        if bet_id < 0 or bet_id > BET_ID_MAX:
            raise HTTPException(status_code=422, detail="bet_id out of range")
        record = ledger.get_bet(bet_id)
        if record is None:
            raise HTTPException(status_code=404, detail="bet not found")
        return record.to_dict()

    return r


def mount_casino_rpc(
    app: FastAPI,
    *,
    ledger: BetLedger,
    rpc_path: str = "/rpc",
    rest_prefix: str = "/casino",
) -> None:
    """Attach the JSON-RPC endpoint and the REST views to `app`."""

    def rpc_endpoint(
        payload: Any = Body(...),
        caller: Optional[str] = Header(default=None, alias=CALLER_HEADER),
    ) -> Any:
        if isinstance(payload, list):
            return [dispatch(ledger, item, caller=caller) for item in payload]
        return dispatch(ledger, payload, caller=caller)

    app.add_api_route(rpc_path, rpc_endpoint, methods=["POST"], tags=["casino"])
    app.include_router(get_router(ledger, prefix=rest_prefix))
    logger.debug("casino RPC mounted at %s, REST at %s", rpc_path, rest_prefix)


def create_app(ledger: BetLedger) -> FastAPI:
    app = FastAPI(title="Animica Casino", version=__version__)
    mount_casino_rpc(app, ledger=ledger)
    return app


__all__ = ["mount_casino_rpc", "get_router", "create_app", "CALLER_HEADER"]
