"""
casino.store
============

Storage backends for the bet ledger. Backends are pluggable (in-memory,
SQLite). This module exposes a small typing protocol so the ledger can depend
on a stable interface without pulling in a concrete DB, plus `open_store` to
build a backend from a URI.

Only bytes go in/out; `casino.store.kv.BetBuckets` handles key layout and
record encoding.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Iterable, Optional, Protocol, Tuple
from urllib.parse import urlparse


class KeyValue(Protocol):
    """Minimal byte-oriented KV interface with atomic write groups.

    Keys and values are raw bytes. Namespaces are handled by the caller via
    prefixed keys.
    """

    def get(self, key: bytes) -> Optional[bytes]:
        """Return value for key, or None if missing."""
        ...

    def put(self, key: bytes, value: bytes) -> None:
        """Insert or replace key with value."""
        ...

    def delete(self, key: bytes) -> None:
        """Remove key if present (no-op if absent)."""
        ...

    def has(self, key: bytes) -> bool:
        """Return True if key exists."""
        ...

    def iter_prefix(self, prefix: bytes) -> Iterable[Tuple[bytes, bytes]]:
        """Yield (key, value) pairs whose keys start with prefix."""
        ...

    def transaction(self) -> AbstractContextManager[None]:
        """Group writes: commit on normal exit, roll back on exception."""
        ...

    def close(self) -> None:
        ...


def open_store(uri: str) -> KeyValue:
    """
    Build a KeyValue backend from a URI.

      memory://                 → MemoryKeyValue
      sqlite:///abs/path.db     → SQLiteKeyValue("/abs/path.db")
      sqlite://./rel/path.db    → SQLiteKeyValue("./rel/path.db")
    """
    u = urlparse(uri)
    if u.scheme == "memory":
        from .memory import MemoryKeyValue

        return MemoryKeyValue()
    if u.scheme == "sqlite":
        from .sqlite import SQLiteKeyValue

        path = (u.netloc + u.path) if u.netloc else u.path
        if not path:
            raise ValueError(f"sqlite URI needs a path: {uri!r}")
        return SQLiteKeyValue(path)
    raise ValueError(f"unsupported storage URI scheme: {uri!r}")


__all__ = [
    "KeyValue",
    "open_store",
]
