"""
Animica Casino package.

A two-phase wagering ledger on top of the chain randomness beacon:
- register: the caller pays a fee and is bound to a future beacon round,
- resolve: once that round is published, the bet is settled exactly once.

Only light, stable exports are surfaced here to avoid import cycles.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__"]
