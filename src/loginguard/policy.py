"""Throttle policy — pure evaluation of an attempt record at a point in time.

The policy holds no mutable state. ``evaluate`` never writes, so callers
can check the IP and the username for the same request without
double-counting anything.
"""

import math
from dataclasses import dataclass

from loginguard.config import GuardConfig
from loginguard.records import AttemptRecord


@dataclass(frozen=True, slots=True)
class ThrottleDecision:
    """Outcome of evaluating one identity."""

    locked: bool = False
    remaining_lock_seconds: int = 0
    delay: float = 0.0

    @property
    def allowed(self) -> bool:
        return not self.locked


ALLOW = ThrottleDecision()


class ThrottlePolicy:
    """Map ``(record, now)`` onto a ``ThrottleDecision``."""

    __slots__ = ("_config",)

    def __init__(self, config: GuardConfig | None = None) -> None:
        self._config = config or GuardConfig()

    @property
    def config(self) -> GuardConfig:
        return self._config

    def is_stale(self, record: AttemptRecord, now: float) -> bool:
        """True when the record must be read as zero failures.

        A record goes stale when its last failure falls outside the
        attempt window, or when its lock has expired.
        """
        if record.failure_count <= 0:
            return True
        if record.locked_until is not None and record.locked_until <= now:
            return True
        return now - record.last_failure_at > self._config.window_seconds

    def effective_failures(self, record: AttemptRecord | None, now: float) -> int:
        if record is None or self.is_stale(record, now):
            return 0
        return record.failure_count

    def delay_for(self, failure_count: int) -> float:
        """Progressive delay in seconds for ``failure_count`` recent failures."""
        cfg = self._config
        excess = failure_count - cfg.max_attempts_before_delay
        if excess < 0:
            return 0.0
        delay = float(cfg.delay_schedule(excess))
        return min(max(0.0, delay), cfg.max_delay_seconds)

    def evaluate(self, record: AttemptRecord | None, now: float) -> ThrottleDecision:
        if record is not None and record.locked_until is not None and record.locked_until > now:
            remaining = max(1, math.ceil(record.locked_until - now))
            return ThrottleDecision(locked=True, remaining_lock_seconds=remaining)

        # Expired locks fall through here and read as stale.
        failures = self.effective_failures(record, now)
        if failures == 0:
            return ALLOW
        return ThrottleDecision(delay=self.delay_for(failures))

    def should_lock(self, failure_count: int) -> bool:
        return failure_count >= self._config.max_attempts_before_lock

    def lock_deadline(self, now: float) -> float:
        return now + self._config.lock_seconds
