"""``loginguard sweep`` — delete records that no longer affect decisions."""

import argparse

from loginguard.cli._store import config_for_window, run_with_store
from loginguard.store.sqlite import SQLiteAttemptStore
from loginguard.sweeper import sweep_once
from loginguard.tracker import AttemptTracker


def run_sweep(args: argparse.Namespace) -> None:
    config = config_for_window(args.window)

    async def sweep(store: SQLiteAttemptStore) -> int:
        return await sweep_once(AttemptTracker(store, config))

    removed = run_with_store(args.db, sweep)
    print(f"Removed {removed} stale record{'s' if removed != 1 else ''}")
