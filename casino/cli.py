"""
casino.cli
----------

Small CLI for talking to a casino node over JSON-RPC.

Commands:
  - random   : Published randomness for a round.
  - register : Pay the fee and open a bet.
  - resolve  : Resolve a bet once its target round is published.
  - bet      : Show a live bet record.

The acting identity is sent in the X-Animica-Caller header; in production the
gateway overwrites it with the authenticated account.

Environment:
  ANIMICA_CASINO_RPC_URL may be set to override the default RPC endpoint.

Example:
  omni-casino register --caller anim1alice
  omni-casino resolve --bet-id 1 --caller anim1alice
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, Optional, Sequence

import requests
import typer

from .rpc.mount import CALLER_HEADER

__all__ = ["app", "main"]

_DEFAULT_RPC = os.getenv("ANIMICA_CASINO_RPC_URL") or "http://127.0.0.1:8545/rpc"


def _rpc_call(
    url: str,
    method: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    caller: Optional[str] = None,
    timeout: float = 10.0,
) -> Any:
    body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params or {}}
    headers = {CALLER_HEADER: caller} if caller else {}
    try:
        r = requests.post(url, json=body, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise SystemExit(f"RPC POST failed: {e}")
    if r.status_code != 200:
        raise SystemExit(f"RPC error HTTP {r.status_code}: {r.text}")
    try:
        data = r.json()
    except ValueError:
        raise SystemExit(f"RPC response not JSON: {r.text}")
    if data.get("error"):
        raise SystemExit(f"RPC error: {json.dumps(data['error'], indent=2)}")
    return data.get("result")


app = typer.Typer(
    name="omni-casino",
    help="Animica casino CLI (register a bet, resolve it against a future beacon round).",
    no_args_is_help=True,
    add_completion=False,
)


def _opt_rpc() -> str:
    return typer.Option(_DEFAULT_RPC, "--rpc", help=f"JSON-RPC endpoint (default: {_DEFAULT_RPC})")  # type: ignore[return-value]


def _opt_caller() -> str:
    return typer.Option(..., "--caller", "-c", help="Identity acting on the bet.")  # type: ignore[return-value]


@app.command("random")
def cmd_random(
    round_id: int = typer.Option(..., "--round", "-r", min=0, help="Beacon round id."),
    rpc: str = _opt_rpc(),
) -> None:
    """Show the randomness published for a round (null if not yet)."""
    res = _rpc_call(rpc, "casino.getRandom", {"round_id": round_id})
    typer.echo(json.dumps(res, indent=2))


@app.command("register")
def cmd_register(caller: str = _opt_caller(), rpc: str = _opt_rpc()) -> None:
    """
    Pay the fee and open a bet.

    The bet targets a round a fixed offset past the latest published one, so
    its outcome is unknown at registration time.
    """
    res = _rpc_call(rpc, "casino.registerBet", caller=caller)
    typer.echo(json.dumps(res, indent=2))


@app.command("resolve")
def cmd_resolve(
    bet_id: str = typer.Option(..., "--bet-id", "-b", help="Bet id (decimal or 0x-hex)."),
    caller: str = _opt_caller(),
    rpc: str = _opt_rpc(),
) -> None:
    """Resolve a bet; fails with a retryable error while its round is unpublished."""
    res = _rpc_call(rpc, "casino.resolveBet", {"bet_id": bet_id}, caller=caller)
    typer.echo(json.dumps(res, indent=2))


@app.command("bet")
def cmd_bet(
    bet_id: str = typer.Option(..., "--bet-id", "-b", help="Bet id (decimal or 0x-hex)."),
    rpc: str = _opt_rpc(),
) -> None:
    """Show a live bet (null once resolved)."""
    res = _rpc_call(rpc, "casino.getBet", {"bet_id": bet_id})
    typer.echo(json.dumps(res, indent=2))


def main(argv: Optional[Sequence[str]] = None) -> None:  # pragma: no cover - thin wrapper
    try:
        app(args=list(argv) if argv is not None else None, prog_name="omni-casino")
    except KeyboardInterrupt:
        typer.echo("", err=True)
        sys.exit(130)


if __name__ == "__main__":  # pragma: no cover
    main()
