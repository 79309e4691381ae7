"""``loginguard unlock`` — clear one identity's failures and lock."""

import argparse

from loginguard.cli._store import run_with_store
from loginguard.records import Namespace
from loginguard.store.sqlite import SQLiteAttemptStore
from loginguard.tracker import AttemptTracker


def run_unlock(args: argparse.Namespace) -> None:
    namespace = Namespace(args.namespace)

    async def unlock(store: SQLiteAttemptStore) -> bool:
        return await AttemptTracker(store).unlock(namespace, args.identity)

    if run_with_store(args.db, unlock):
        print(f"Unlocked {namespace} {args.identity}")
    else:
        print(f"No record for {namespace} {args.identity}")
