"""Attempt stores — where failure records live.

Process-local (default)::

    from loginguard.store import MemoryAttemptStore
    store = MemoryAttemptStore()

File-backed, survives restarts::

    from loginguard.store import SQLiteAttemptStore
    async with SQLiteAttemptStore("attempts.db") as store:
        ...
"""

from loginguard.store.memory import MemoryAttemptStore
from loginguard.store.protocol import AttemptStore, RecordMutator, is_sweepable
from loginguard.store.sqlite import SQLiteAttemptStore

__all__ = [
    "AttemptStore",
    "MemoryAttemptStore",
    "RecordMutator",
    "SQLiteAttemptStore",
    "is_sweepable",
]
