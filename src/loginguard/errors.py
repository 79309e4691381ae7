"""loginguard exception hierarchy.

Shared across the store, tracker, and flow so every module raises and
catches the same types. ``AuthenticationFlow`` maps these onto
``LoginResult`` values; nothing here is ever shown to the end user
verbatim except through those results.
"""

from dataclasses import dataclass


class LoginGuardError(Exception):
    """Base for all loginguard-specific errors."""


class ConfigurationError(LoginGuardError):
    """Raised when a ``GuardConfig`` or delay schedule is invalid.

    Raised at construction time, never mid-request.
    """


@dataclass(frozen=True, slots=True)
class LockedOut(LoginGuardError):
    """An identity is locked; carries the scope and remaining lock time."""

    scope: str
    remaining_seconds: int

    def __str__(self) -> str:
        return f"{self.scope} locked for {self.remaining_seconds}s"


class InvalidCredentials(LoginGuardError):
    """Authentication failed. Deliberately carries no cause."""


class StorageFailure(LoginGuardError):
    """An attempt store could not be read or written."""


class UpstreamVerificationFailure(StorageFailure):
    """The password verifier raised instead of returning a boolean.

    Fails closed: the attempt counts as a failure, never as a success.
    """
