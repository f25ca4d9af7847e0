"""
Durable bet storage on SQLite.

One table, `casino_kv(k BLOB PRIMARY KEY, v BLOB NOT NULL)`, holding the
BETS/META buckets laid out by `casino.store.kv`. The connection runs in
autocommit mode; `transaction()` opens an explicit `BEGIN IMMEDIATE` write
group so a bet insert and its id-counter bump land together or not at all.

Prefix scans use the half-open key range [prefix, upper) so SQLite can walk
the primary-key index instead of filtering every row.

The connection is shared across threads (``check_same_thread=False``); an
internal RLock serializes statements, and the ledger above holds its own lock
around each operation.
"""

from __future__ import annotations

import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Generator, Iterator, Optional, Sequence, Tuple

_SCHEMA = "CREATE TABLE IF NOT EXISTS casino_kv (k BLOB PRIMARY KEY, v BLOB NOT NULL)"


def _prefix_upper_bound(prefix: bytes) -> Optional[bytes]:
    """First key past every key that starts with `prefix` (None: unbounded)."""
    head = prefix.rstrip(b"\xff")
    if not head:
        return None
    return head[:-1] + bytes([head[-1] + 1])


class SQLiteKeyValue:
    """
    KeyValue backend stored in a single SQLite file.

    >>> kv = SQLiteKeyValue(":memory:")
    >>> with kv.transaction():
    ...     kv.put(b"\\x01a", b"1")
    >>> list(kv.iter_prefix(b"\\x01"))
    [(b'\\x01a', b'1')]
    """

    def __init__(self, path: str) -> None:
        self.path = path
        on_disk = path != ":memory:"
        if on_disk:
            parent = os.path.dirname(os.path.abspath(path))
            os.makedirs(parent, exist_ok=True)
        self._conn = sqlite3.connect(path, isolation_level=None, timeout=30.0, check_same_thread=False)
        if on_disk:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute(_SCHEMA)
        self._lock = threading.RLock()
        self._in_tx = 0

    def _fetchone(self, sql: str, args: Sequence[Any]) -> Optional[Tuple[Any, ...]]:
        with self._lock:
            return self._conn.execute(sql, args).fetchone()

    # ---- reads ----

    def get(self, key: bytes) -> Optional[bytes]:
        row = self._fetchone("SELECT v FROM casino_kv WHERE k = ?", (bytes(key),))
        return None if row is None else bytes(row[0])

    def has(self, key: bytes) -> bool:
        return self._fetchone("SELECT 1 FROM casino_kv WHERE k = ?", (bytes(key),)) is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        prefix = bytes(prefix)
        upper = _prefix_upper_bound(prefix)
        if upper is None:
            sql, args = "SELECT k, v FROM casino_kv WHERE k >= ? ORDER BY k", (prefix,)
        else:
            sql, args = "SELECT k, v FROM casino_kv WHERE k >= ? AND k < ? ORDER BY k", (prefix, upper)
        with self._lock:
            rows = self._conn.execute(sql, args).fetchall()
        return iter([(bytes(k), bytes(v)) for k, v in rows])

    # ---- writes ----

    def put(self, key: bytes, value: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or not isinstance(value, (bytes, bytearray)):
            raise TypeError("key and value must be bytes")
        with self._lock:
            self._conn.execute("INSERT OR REPLACE INTO casino_kv (k, v) VALUES (?, ?)", (bytes(key), bytes(value)))

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM casino_kv WHERE k = ?", (bytes(key),))

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Write group; an inner `transaction()` joins the one already open."""
        with self._lock:
            outermost = self._in_tx == 0
            if outermost:
                self._conn.execute("BEGIN IMMEDIATE")
            self._in_tx += 1
            ok = False
            try:
                yield
                ok = True
            finally:
                self._in_tx -= 1
                if outermost:
                    self._conn.execute("COMMIT" if ok else "ROLLBACK")

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = ["SQLiteKeyValue"]
