"""
casino.rpc
----------

Outer surface of the bet ledger:

- `casino.rpc.methods` — JSON-RPC method table, dispatcher and error codes
- `casino.rpc.mount`   — FastAPI wiring (POST /rpc plus read-only REST views)
"""

from __future__ import annotations

__all__: tuple[str, ...] = ()
