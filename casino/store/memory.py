"""
In-memory KeyValue store.

A dict guarded by a lock. `transaction()` snapshots the dict on entry and
restores it if the block raises, which gives the same all-or-nothing
behavior as the SQLite backend for tests and single-process deployments.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Generator, Iterable, Optional, Tuple


class MemoryKeyValue:
    """Dictionary-backed implementation of the KeyValue protocol."""

    def __init__(self) -> None:
        self._d: Dict[bytes, bytes] = {}
        self._lock = threading.RLock()
        self._depth = 0

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            return self._d.get(bytes(key))

    def put(self, key: bytes, value: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or not isinstance(value, (bytes, bytearray)):
            raise TypeError("key and value must be bytes")
        with self._lock:
            self._d[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._d.pop(bytes(key), None)

    def has(self, key: bytes) -> bool:
        with self._lock:
            return bytes(key) in self._d

    def iter_prefix(self, prefix: bytes) -> Iterable[Tuple[bytes, bytes]]:
        with self._lock:
            items = sorted((k, v) for k, v in self._d.items() if k.startswith(prefix))
        return iter(items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._d)

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """
        Snapshot on entry, restore on error. Nested transactions join the
        outermost one.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return
            snapshot = dict(self._d)
            self._depth = 1
            try:
                yield
            except BaseException:
                self._d = snapshot
                raise
            finally:
                self._depth = 0

    def close(self) -> None:
        pass


__all__ = ["MemoryKeyValue"]
