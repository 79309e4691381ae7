"""Guard configuration.

GuardConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups. Thresholds are configuration, not fixed behavior.
"""

from dataclasses import dataclass, field

from loginguard.errors import ConfigurationError
from loginguard.schedules import DelaySchedule, StepDelay

DEFAULT_SAFE_ERROR_MESSAGE = "Invalid username or password."
DEFAULT_INTERNAL_ERROR_MESSAGE = "Internal server error."


@dataclass(frozen=True, slots=True)
class GuardConfig:
    """Brute-force protection configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = GuardConfig(max_attempts_before_lock=5, lock_seconds=60)

    Invalid combinations raise ``ConfigurationError`` immediately.
    """

    # Thresholds
    max_attempts_before_delay: int = 3
    max_attempts_before_lock: int = 5

    # Windows (seconds)
    lock_seconds: float = 300.0
    window_seconds: float = 900.0

    # Progressive delay
    delay_schedule: DelaySchedule = field(default_factory=StepDelay)
    max_delay_seconds: float = 8.0

    # Timing equalization: approximate cost of one password verification
    dummy_verify_seconds: float = 0.1

    # User-visible text
    safe_error_message: str = DEFAULT_SAFE_ERROR_MESSAGE
    internal_error_message: str = DEFAULT_INTERNAL_ERROR_MESSAGE

    def __post_init__(self) -> None:
        if self.max_attempts_before_lock < 1:
            msg = f"max_attempts_before_lock must be >= 1, got {self.max_attempts_before_lock}"
            raise ConfigurationError(msg)
        if self.max_attempts_before_delay < 0:
            msg = f"max_attempts_before_delay must be >= 0, got {self.max_attempts_before_delay}"
            raise ConfigurationError(msg)
        if self.lock_seconds <= 0:
            msg = f"lock_seconds must be positive, got {self.lock_seconds}"
            raise ConfigurationError(msg)
        if self.window_seconds <= 0:
            msg = f"window_seconds must be positive, got {self.window_seconds}"
            raise ConfigurationError(msg)
        if self.max_delay_seconds < 0:
            msg = f"max_delay_seconds must not be negative, got {self.max_delay_seconds}"
            raise ConfigurationError(msg)
        if self.dummy_verify_seconds < 0:
            msg = f"dummy_verify_seconds must not be negative, got {self.dummy_verify_seconds}"
            raise ConfigurationError(msg)
        if not callable(self.delay_schedule):
            msg = "delay_schedule must be callable (failures past threshold -> seconds)"
            raise ConfigurationError(msg)
        if not self.safe_error_message:
            msg = "safe_error_message must not be empty"
            raise ConfigurationError(msg)
