"""Attempt store protocol.

A store owns the mapping ``(namespace, identity) -> AttemptRecord``. It
knows nothing about thresholds: the tracker hands it a pure ``mutate``
function and the store guarantees that read-mutate-write for one key
happens as a single critical section.

Stores must raise ``StorageFailure`` (or a subclass) for backend errors.
"""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from loginguard.records import AttemptRecord, Namespace

# Receives the current record (or None) and returns the replacement
# (or None to delete). Must be pure; it may run on a worker thread.
type RecordMutator = Callable[[AttemptRecord | None], AttemptRecord | None]


@runtime_checkable
class AttemptStore(Protocol):
    """Storage contract for attempt records."""

    async def get(self, namespace: Namespace, identity: str) -> AttemptRecord | None: ...

    async def update(
        self, namespace: Namespace, identity: str, mutate: RecordMutator
    ) -> AttemptRecord | None: ...

    async def delete(self, namespace: Namespace, identity: str) -> bool: ...

    async def records(
        self, namespace: Namespace | None = None
    ) -> list[tuple[Namespace, AttemptRecord]]: ...

    async def sweep(self, now: float, window_seconds: float) -> int: ...


def is_sweepable(record: AttemptRecord, now: float, window_seconds: float) -> bool:
    """True when a sweep may drop ``record`` without changing any decision."""
    if record.locked_until is not None and record.locked_until > now:
        return False
    if record.locked_until is not None:
        return True
    return now - record.last_failure_at > window_seconds
