"""
casino.tests
------------
Test package initializer for the casino module.

Notes:
- Ledger tests run against an in-process LocalBeacon and HouseLedger.
- Each test gets its own Prometheus registry so instruments never collide.
"""

from __future__ import annotations

__all__: tuple[str, ...] = ()
