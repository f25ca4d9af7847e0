"""
Version helpers for the Animica Casino package.

Resolution order:
1) the installed distribution metadata (``animica-casino``),
2) a static BASE_VERSION with a local ``+src`` marker for source checkouts.
"""
from __future__ import annotations

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version as _pkg_version

BASE_VERSION = "0.1.0"

_PKG_NAME = "animica-casino"


@lru_cache(maxsize=1)
def get_version() -> str:
    try:
        return _pkg_version(_PKG_NAME)
    except PackageNotFoundError:
        return f"{BASE_VERSION}+src"


__version__ = get_version()
__all__ = ["__version__", "get_version", "BASE_VERSION"]
