"""Shared helpers for CLI commands that open a SQLite attempt store."""

import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

import anyio

from loginguard.config import GuardConfig
from loginguard.errors import ConfigurationError, StorageFailure
from loginguard.store.sqlite import SQLiteAttemptStore


def config_for_window(window: float | None) -> GuardConfig:
    """Default config, with ``--window`` applied. Exits with status 2 if invalid."""
    if window is None:
        return GuardConfig()
    try:
        return GuardConfig(window_seconds=window)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc


def run_with_store[T](db: str, func: Callable[[SQLiteAttemptStore], Awaitable[T]]) -> T:
    """Open ``db``, run ``func(store)`` to completion, close the store.

    Exits with status 1 when the file is missing or the store fails.
    """
    if db != ":memory:" and not Path(db).exists():
        print(f"Error: no attempt store at {db}", file=sys.stderr)
        raise SystemExit(1)

    async def run() -> T:
        async with SQLiteAttemptStore(db) as store:
            return await func(store)

    try:
        return anyio.run(run)
    except StorageFailure as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
