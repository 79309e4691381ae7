"""Attempt tracker — store + policy behind the four operations the login
flow needs.

Checks are read-only. Recording goes through ``AttemptStore.update`` so
the increment-and-maybe-lock transition is exactly-once per failure even
when failures for one identity arrive concurrently.

Usage::

    from loginguard import AttemptTracker, GuardConfig, Namespace

    tracker = AttemptTracker(config=GuardConfig(max_attempts_before_lock=5))

    decision = await tracker.check_identity(Namespace.IP, "1.2.3.4")
    if decision.locked:
        ...

    await tracker.record_failure(Namespace.USER, "alice")
    await tracker.record_success(Namespace.USER, "alice")
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager

from loginguard._internal.types import Clock
from loginguard.audit import emit_security_event
from loginguard.config import GuardConfig
from loginguard.errors import LoginGuardError, StorageFailure
from loginguard.policy import ThrottleDecision, ThrottlePolicy
from loginguard.records import AttemptRecord, Namespace
from loginguard.store.memory import MemoryAttemptStore
from loginguard.store.protocol import AttemptStore

logger = logging.getLogger("loginguard.tracker")


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    """Re-raise anything a store leaks as ``StorageFailure``."""
    try:
        yield
    except LoginGuardError:
        raise
    except Exception as exc:
        msg = f"attempt store failed to {action}"
        raise StorageFailure(msg) from exc


class AttemptTracker:
    """Per-IP and per-username failure tracking."""

    __slots__ = ("_clock", "_config", "_policy", "_store")

    def __init__(
        self,
        store: AttemptStore | None = None,
        config: GuardConfig | None = None,
        *,
        clock: Clock = time.time,
    ) -> None:
        self._config = config or GuardConfig()
        self._policy = ThrottlePolicy(self._config)
        self._store: AttemptStore = store if store is not None else MemoryAttemptStore()
        self._clock = clock

    @property
    def config(self) -> GuardConfig:
        return self._config

    @property
    def policy(self) -> ThrottlePolicy:
        return self._policy

    @property
    def store(self) -> AttemptStore:
        return self._store

    def now(self) -> float:
        return self._clock()

    # -- Checks --

    async def check_identity(
        self, namespace: Namespace, identity: str, now: float | None = None
    ) -> ThrottleDecision:
        """Evaluate ``identity`` without mutating anything."""
        now = self._clock() if now is None else now
        with _storage_errors(f"read {namespace} record"):
            record = await self._store.get(namespace, identity)
        return self._policy.evaluate(record, now)

    async def check_ip(self, client_ip: str, now: float | None = None) -> ThrottleDecision:
        return await self.check_identity(Namespace.IP, client_ip, now)

    async def check_user(self, username: str, now: float | None = None) -> ThrottleDecision:
        return await self.check_identity(Namespace.USER, username, now)

    # -- Recording --

    async def record_failure(
        self, namespace: Namespace, identity: str, now: float | None = None
    ) -> AttemptRecord:
        """Count one failure; engage the lock when the threshold is reached.

        Returns the record as stored after this failure.
        """
        now = self._clock() if now is None else now
        policy = self._policy

        def apply(current: AttemptRecord | None) -> AttemptRecord:
            if current is None or policy.is_stale(current, now):
                updated = AttemptRecord.first_failure(identity, now)
            else:
                updated = current.with_failure(now)
            if policy.should_lock(updated.failure_count):
                updated = updated.locked_at(policy.lock_deadline(now))
            return updated

        with _storage_errors(f"record {namespace} failure"):
            record = await self._store.update(namespace, identity, apply)
        if record is None:
            msg = f"attempt store returned no record after {namespace} failure for {identity!r}"
            raise StorageFailure(msg)

        if record.locked_until == policy.lock_deadline(now):
            logger.warning(
                "%s %s locked for %ss after %d failed attempts",
                namespace,
                identity,
                self._config.lock_seconds,
                record.failure_count,
            )
            emit_security_event(
                "auth.lockout.engaged",
                namespace=namespace,
                identity=identity,
                details={"failures": record.failure_count, "locked_until": record.locked_until},
            )
        else:
            logger.debug("%s %s failure %d", namespace, identity, record.failure_count)
        return record

    async def record_success(self, namespace: Namespace, identity: str) -> None:
        """Clear failure state after successful authentication. Idempotent."""
        with _storage_errors(f"clear {namespace} record"):
            await self._store.delete(namespace, identity)

    async def unlock(self, namespace: Namespace, identity: str) -> bool:
        """Administratively clear an identity. Returns True if a record existed."""
        with _storage_errors(f"unlock {namespace} record"):
            removed = await self._store.delete(namespace, identity)
        if removed:
            logger.info("%s %s unlocked", namespace, identity)
        return removed

    # -- Messages --

    def safe_error_message(self) -> str:
        """The one generic message for every credential failure."""
        return self._config.safe_error_message

    @staticmethod
    def locked_message(remaining_seconds: int) -> str:
        return f"Too many requests, retry after {remaining_seconds} seconds."
