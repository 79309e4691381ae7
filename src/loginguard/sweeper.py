"""Periodic sweep of stale attempt records.

The tracker never deletes stale records; it reads them as zero
failures. Long-running processes that see many distinct IPs should run a
sweep alongside the app to bound memory::

    async with anyio.create_task_group() as tg:
        tg.start_soon(sweep_forever, tracker, 60.0)
        ...

Sweeping is safe to run concurrently with checks and recordings: stores
re-check each record under their per-key lock before dropping it, and
never drop a record that is still locked.
"""

import logging

import anyio

from loginguard.tracker import AttemptTracker

logger = logging.getLogger("loginguard.sweeper")


async def sweep_once(tracker: AttemptTracker, now: float | None = None) -> int:
    """Drop every record that no longer affects a decision. Returns the count."""
    now = tracker.now() if now is None else now
    removed = await tracker.store.sweep(now, tracker.config.window_seconds)
    if removed:
        logger.debug("Swept %d stale attempt records", removed)
    return removed


async def sweep_forever(tracker: AttemptTracker, interval: float = 60.0) -> None:
    """Sweep every ``interval`` seconds until cancelled.

    Store errors are logged and the loop keeps going; a failed sweep only
    delays reclaiming memory.
    """
    if interval <= 0:
        msg = f"interval must be positive, got {interval}"
        raise ValueError(msg)

    while True:
        await anyio.sleep(interval)
        try:
            await sweep_once(tracker)
        except Exception:
            logger.exception("Attempt sweep failed")
