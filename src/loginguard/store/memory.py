"""In-memory attempt store.

State lives for the lifetime of the store object and resets on restart.
Mutations for one key are serialized by a striped ``threading.Lock``:
each key hashes onto one of a fixed number of locks, so unrelated
identities rarely share a lock and never wait on each other for longer
than one dict operation. No lock is held across an ``await``.
"""

import threading

from loginguard.records import AttemptRecord, Namespace
from loginguard.store.protocol import RecordMutator, is_sweepable

_DEFAULT_STRIPES = 64


class MemoryAttemptStore:
    """Process-local attempt store."""

    __slots__ = ("_locks", "_records")

    def __init__(self, *, stripes: int = _DEFAULT_STRIPES) -> None:
        if stripes < 1:
            msg = f"stripes must be >= 1, got {stripes}"
            raise ValueError(msg)
        self._locks = tuple(threading.Lock() for _ in range(stripes))
        self._records: dict[tuple[Namespace, str], AttemptRecord] = {}

    def _lock_for(self, key: tuple[Namespace, str]) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    def __len__(self) -> int:
        return len(self._records)

    async def get(self, namespace: Namespace, identity: str) -> AttemptRecord | None:
        # Records are immutable and replaced atomically; no lock needed to read.
        return self._records.get((namespace, identity))

    async def update(
        self, namespace: Namespace, identity: str, mutate: RecordMutator
    ) -> AttemptRecord | None:
        key = (namespace, identity)
        with self._lock_for(key):
            updated = mutate(self._records.get(key))
            if updated is None:
                self._records.pop(key, None)
            else:
                self._records[key] = updated
        return updated

    async def delete(self, namespace: Namespace, identity: str) -> bool:
        key = (namespace, identity)
        with self._lock_for(key):
            return self._records.pop(key, None) is not None

    async def records(
        self, namespace: Namespace | None = None
    ) -> list[tuple[Namespace, AttemptRecord]]:
        snapshot = list(self._records.items())
        return [(ns, record) for (ns, _), record in snapshot if namespace is None or ns == namespace]

    async def sweep(self, now: float, window_seconds: float) -> int:
        removed = 0
        for key in list(self._records):
            with self._lock_for(key):
                record = self._records.get(key)
                # Re-check under the lock: a failure may have landed since the snapshot.
                if record is not None and is_sweepable(record, now, window_seconds):
                    del self._records[key]
                    removed += 1
        return removed
