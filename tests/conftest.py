"""Shared pytest fixtures: a controllable clock, config, and tracker."""

import pytest

from loginguard.audit import SecurityEvent, set_security_event_sink
from loginguard.config import GuardConfig
from loginguard.store.memory import MemoryAttemptStore
from loginguard.tracker import AttemptTracker


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> GuardConfig:
    """Lock after 5 failures for 60s; delays start at the 3rd failure."""
    return GuardConfig(
        max_attempts_before_delay=3,
        max_attempts_before_lock=5,
        lock_seconds=60,
        window_seconds=900,
        max_delay_seconds=8.0,
        dummy_verify_seconds=0.0,
    )


@pytest.fixture
def tracker(config: GuardConfig, clock: FakeClock) -> AttemptTracker:
    return AttemptTracker(MemoryAttemptStore(), config, clock=clock)


@pytest.fixture
def security_events():
    """Collect security events emitted during the test."""
    events: list[SecurityEvent] = []
    set_security_event_sink(events.append)
    yield events
    set_security_event_sink(None)
