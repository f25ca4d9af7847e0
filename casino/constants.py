"""
Casino module constants.

This module centralizes:
- Domain separation tag for outcome derivation
- Integer bounds for the persisted bet record (u128 ids, u64 rounds)
- Default economic knobs (kept in sync with config defaults)

Networks may override the operational knobs via `casino.config.CasinoConfig`,
but code that needs stable compile-time defaults can import from here.
"""

from __future__ import annotations

# -----------------------------
# Domain separation (bytes tag)
# -----------------------------
# Keep these stable; changing them would change historical outcomes.
DOMAIN_PREFIX: bytes = b"animica.casino."

DOMAIN_OUTCOME: bytes = DOMAIN_PREFIX + b"outcome.v1"

# -----------------------------
# Integer bounds
# -----------------------------
BET_ID_BITS: int = 128
ROUND_BITS: int = 64

BET_ID_MAX: int = (1 << BET_ID_BITS) - 1
ROUND_MAX: int = (1 << ROUND_BITS) - 1

# A bet must target a round at least this far past the latest published one,
# so the bettor cannot know the randomness when placing the bet.
MIN_ROUND_OFFSET: int = 2

# -----------------------------
# Defaults (mirror config)
# -----------------------------
DEFAULT_FEE: int = 10
DEFAULT_REWARD: int = 20
DEFAULT_ROUND_OFFSET: int = MIN_ROUND_OFFSET
DEFAULT_THRESHOLD: int = 128        # first randomness byte >= threshold wins
DEFAULT_HOUSE: str = "house"

__all__ = [
    "DOMAIN_PREFIX",
    "DOMAIN_OUTCOME",
    "BET_ID_BITS",
    "ROUND_BITS",
    "BET_ID_MAX",
    "ROUND_MAX",
    "MIN_ROUND_OFFSET",
    "DEFAULT_FEE",
    "DEFAULT_REWARD",
    "DEFAULT_ROUND_OFFSET",
    "DEFAULT_THRESHOLD",
    "DEFAULT_HOUSE",
]
