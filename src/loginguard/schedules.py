"""Progressive delay schedules.

A schedule maps the number of failures past the delay threshold to a
delay in seconds. Schedules must be non-decreasing; the policy applies
the configured ceiling on top.

    from loginguard.schedules import ExponentialDelay, StepDelay

    StepDelay((1, 2, 4, 8))(0)         # 1
    StepDelay((1, 2, 4, 8))(10)        # 8, last step repeats
    ExponentialDelay(0.5, 2.0)(3)      # 4.0
"""

from collections.abc import Callable
from dataclasses import dataclass

from loginguard.errors import ConfigurationError

type DelaySchedule = Callable[[int], float]


@dataclass(frozen=True, slots=True)
class StepDelay:
    """Fixed steps, indexed by excess failures. The last step repeats."""

    steps: tuple[float, ...] = (1.0, 2.0, 4.0, 8.0)

    def __post_init__(self) -> None:
        if not self.steps:
            msg = "StepDelay needs at least one step."
            raise ConfigurationError(msg)
        if any(step < 0 for step in self.steps):
            msg = f"StepDelay steps must not be negative: {self.steps!r}"
            raise ConfigurationError(msg)
        if any(b < a for a, b in zip(self.steps, self.steps[1:], strict=False)):
            msg = f"StepDelay steps must be non-decreasing: {self.steps!r}"
            raise ConfigurationError(msg)

    def __call__(self, excess: int) -> float:
        if excess < 0:
            return 0.0
        return float(self.steps[min(excess, len(self.steps) - 1)])


@dataclass(frozen=True, slots=True)
class ExponentialDelay:
    """``base * factor ** excess`` seconds."""

    base: float = 0.5
    factor: float = 2.0

    def __post_init__(self) -> None:
        if self.base < 0:
            msg = f"ExponentialDelay base must not be negative: {self.base!r}"
            raise ConfigurationError(msg)
        if self.factor < 1:
            msg = f"ExponentialDelay factor must be >= 1 to stay non-decreasing: {self.factor!r}"
            raise ConfigurationError(msg)

    def __call__(self, excess: int) -> float:
        if excess < 0:
            return 0.0
        # Cap the exponent; the policy ceiling applies long before this.
        return self.base * self.factor ** min(excess, 32)
