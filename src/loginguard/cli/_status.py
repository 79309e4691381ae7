"""``loginguard status`` — list tracked identities.

Prints one row per record with its failure count and lock state, as the
policy would see it right now.
"""

import argparse
import time

from loginguard.cli._store import config_for_window, run_with_store
from loginguard.policy import ThrottlePolicy
from loginguard.records import AttemptRecord, Namespace
from loginguard.store.sqlite import SQLiteAttemptStore


def run_status(args: argparse.Namespace) -> None:
    """List records in ``args.db``, optionally filtered."""
    namespace = Namespace(args.namespace) if args.namespace else None
    policy = ThrottlePolicy(config_for_window(args.window))

    async def load(store: SQLiteAttemptStore) -> list[tuple[Namespace, AttemptRecord]]:
        return await store.records(namespace)

    entries = run_with_store(args.db, load)
    now = time.time()

    # Build rows: (namespace, identity, failures, state)
    rows: list[tuple[str, str, str, str]] = []
    for ns, record in entries:
        decision = policy.evaluate(record, now)
        if args.locked and not decision.locked:
            continue
        if decision.locked:
            state = f"locked {decision.remaining_lock_seconds}s"
        elif policy.is_stale(record, now):
            state = "stale"
        else:
            state = "tracking"
        rows.append((str(ns), record.identity, str(record.failure_count), state))

    if not rows:
        print("No tracked identities.")
        return

    # Column widths
    max_ns = max(max(len(r[0]) for r in rows), 9)  # "NAMESPACE" header
    max_identity = max(max(len(r[1]) for r in rows), 8)  # "IDENTITY" header

    fmt = f"{{:<{max_ns}}}  {{:<{max_identity}}}  {{:>8}}  {{}}"
    print(fmt.format("NAMESPACE", "IDENTITY", "FAILURES", "STATE"))
    print("-" * min(max_ns + max_identity + 30, 80))
    for row in rows:
        print(fmt.format(*row))
