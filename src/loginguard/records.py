"""Attempt records and tracking namespaces.

Records are immutable snapshots. Stores replace them wholesale on every
mutation, so a concurrent reader sees either the old record or the new
one, never a half-written mix.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum


class Namespace(StrEnum):
    """Independent tracking namespaces.

    IP-keyed records defend against distributed username guessing;
    user-keyed records defend against credential stuffing against one
    account from many addresses.
    """

    IP = "ip"
    USER = "user"


@dataclass(frozen=True, slots=True)
class AttemptRecord:
    """Failure history for one identity in one namespace."""

    identity: str
    failure_count: int
    first_failure_at: float
    last_failure_at: float
    locked_until: float | None = None

    @classmethod
    def first_failure(cls, identity: str, now: float) -> AttemptRecord:
        return cls(identity=identity, failure_count=1, first_failure_at=now, last_failure_at=now)

    def with_failure(self, now: float) -> AttemptRecord:
        """Next record after one more failure; lock state is left as-is."""
        return replace(self, failure_count=self.failure_count + 1, last_failure_at=now)

    def locked_at(self, until: float) -> AttemptRecord:
        return replace(self, locked_until=until)

    def is_locked(self, now: float) -> bool:
        return self.locked_until is not None and self.locked_until > now
