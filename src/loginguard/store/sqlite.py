"""SQLite attempt store using stdlib sqlite3 + anyio.

Records survive restarts and can be shared by several processes on one
host through the database file. All blocking sqlite3 calls run in a
worker thread via ``anyio.to_thread``.

Atomicity:
    Within the process, one ``threading.Lock`` serializes use of the
    single connection. Across processes, every read-modify-write runs in
    a ``BEGIN IMMEDIATE`` transaction, which takes SQLite's write lock
    before the read.

Usage::

    store = SQLiteAttemptStore("attempts.db")
    async with store:
        tracker = AttemptTracker(store)
"""

import logging
import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, Self

import anyio

from loginguard.errors import StorageFailure
from loginguard.records import AttemptRecord, Namespace
from loginguard.store.protocol import RecordMutator, is_sweepable

logger = logging.getLogger("loginguard.store")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS login_attempts (
    namespace TEXT NOT NULL,
    identity TEXT NOT NULL,
    failure_count INTEGER NOT NULL,
    first_failure_at REAL NOT NULL,
    last_failure_at REAL NOT NULL,
    locked_until REAL,
    PRIMARY KEY (namespace, identity)
)
"""

_SELECT_ONE = (
    "SELECT namespace, identity, failure_count, first_failure_at, last_failure_at, locked_until"
    " FROM login_attempts WHERE namespace = ? AND identity = ?"
)
_SELECT_ALL = (
    "SELECT namespace, identity, failure_count, first_failure_at, last_failure_at, locked_until"
    " FROM login_attempts ORDER BY namespace, identity"
)
_UPSERT = (
    "INSERT INTO login_attempts"
    " (namespace, identity, failure_count, first_failure_at, last_failure_at, locked_until)"
    " VALUES (?, ?, ?, ?, ?, ?)"
    " ON CONFLICT (namespace, identity) DO UPDATE SET"
    " failure_count = excluded.failure_count,"
    " first_failure_at = excluded.first_failure_at,"
    " last_failure_at = excluded.last_failure_at,"
    " locked_until = excluded.locked_until"
)
_DELETE = "DELETE FROM login_attempts WHERE namespace = ? AND identity = ?"


def _run_sync(func: Callable[..., Any], *args: Any) -> Any:
    """Run blocking call in anyio worker thread. Wrapper for ty compatibility."""
    return anyio.to_thread.run_sync(func, *args)  # type: ignore[union-attr]


def _row_to_record(row: tuple[Any, ...]) -> tuple[Namespace, AttemptRecord]:
    namespace, identity, failures, first_at, last_at, locked_until = row
    record = AttemptRecord(
        identity=identity,
        failure_count=int(failures),
        first_failure_at=float(first_at),
        last_failure_at=float(last_at),
        locked_until=None if locked_until is None else float(locked_until),
    )
    return Namespace(namespace), record


class SQLiteAttemptStore:
    """File-backed attempt store.

    ``path`` may be ``":memory:"`` for a private in-process database.
    The connection opens lazily on first use, or explicitly through
    ``connect()`` / ``async with``.
    """

    __slots__ = ("_conn", "_lock", "_path", "_timeout")

    def __init__(self, path: str | Path, *, timeout: float = 5.0) -> None:
        self._path = str(path)
        self._timeout = timeout
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._path

    # -- Connection management --

    def _open(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is None:
                conn = sqlite3.connect(
                    self._path,
                    timeout=self._timeout,
                    autocommit=True,
                    check_same_thread=False,
                )
                conn.execute(_SCHEMA)
                self._conn = conn
                logger.debug("Opened attempt store at %s", self._path)
            return self._conn

    def _close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    async def connect(self) -> None:
        await self._call(lambda conn: None)

    async def close(self) -> None:
        await _run_sync(self._close)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _call[T](self, func: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``func(conn)`` on a worker thread with the connection lock held."""

        def run() -> T:
            conn = self._open()
            with self._lock:
                return func(conn)

        try:
            return await _run_sync(run)
        except sqlite3.Error as exc:
            msg = f"attempt store {self._path!r} failed: {exc}"
            raise StorageFailure(msg) from exc

    # -- Store protocol --

    async def get(self, namespace: Namespace, identity: str) -> AttemptRecord | None:
        def read(conn: sqlite3.Connection) -> AttemptRecord | None:
            row = conn.execute(_SELECT_ONE, (str(namespace), identity)).fetchone()
            return None if row is None else _row_to_record(row)[1]

        return await self._call(read)

    async def update(
        self, namespace: Namespace, identity: str, mutate: RecordMutator
    ) -> AttemptRecord | None:
        def transact(conn: sqlite3.Connection) -> AttemptRecord | None:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(_SELECT_ONE, (str(namespace), identity)).fetchone()
                current = None if row is None else _row_to_record(row)[1]
                updated = mutate(current)
                if updated is None:
                    conn.execute(_DELETE, (str(namespace), identity))
                else:
                    conn.execute(
                        _UPSERT,
                        (
                            str(namespace),
                            identity,
                            updated.failure_count,
                            updated.first_failure_at,
                            updated.last_failure_at,
                            updated.locked_until,
                        ),
                    )
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
            return updated

        return await self._call(transact)

    async def delete(self, namespace: Namespace, identity: str) -> bool:
        def remove(conn: sqlite3.Connection) -> bool:
            return conn.execute(_DELETE, (str(namespace), identity)).rowcount > 0

        return await self._call(remove)

    async def records(
        self, namespace: Namespace | None = None
    ) -> list[tuple[Namespace, AttemptRecord]]:
        def read_all(conn: sqlite3.Connection) -> list[tuple[Namespace, AttemptRecord]]:
            rows = [_row_to_record(row) for row in conn.execute(_SELECT_ALL).fetchall()]
            return [(ns, record) for ns, record in rows if namespace is None or ns == namespace]

        return await self._call(read_all)

    async def sweep(self, now: float, window_seconds: float) -> int:
        def purge(conn: sqlite3.Connection) -> int:
            conn.execute("BEGIN IMMEDIATE")
            try:
                stale = [
                    (str(ns), record.identity)
                    for ns, record in map(_row_to_record, conn.execute(_SELECT_ALL).fetchall())
                    if is_sweepable(record, now, window_seconds)
                ]
                conn.executemany(_DELETE, stale)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
            return len(stale)

        return await self._call(purge)
