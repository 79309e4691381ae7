"""Tests for AuthenticationFlow — the throttled, timing-equalized login."""

import logging
import statistics
import time
from dataclasses import dataclass, replace

import anyio
import pytest

from loginguard.audit import SecurityEvent, set_security_event_sink
from loginguard.config import GuardConfig
from loginguard.errors import StorageFailure
from loginguard.flow import AuthenticationFlow
from loginguard.passwords import hash_password
from loginguard.records import Namespace
from loginguard.results import Accepted, Errored, RejectedInvalid, RejectedLocked
from loginguard.schedules import StepDelay
from loginguard.store.memory import MemoryAttemptStore
from loginguard.tracker import AttemptTracker


@dataclass(frozen=True, slots=True)
class User:
    username: str
    password_hash: str


USERS = {"alice": User(username="alice", password_hash="hash:wonderland")}


async def _verify(password: str, password_hash: str) -> bool:
    return password_hash == f"hash:{password}"


def _issue(user: User) -> str:
    return f"token-for-{user.username}"


@pytest.fixture
def tracker(config: GuardConfig, clock) -> AttemptTracker:
    """Same thresholds as the shared config, with millisecond delays."""
    fast = replace(config, delay_schedule=StepDelay((0.01, 0.02, 0.04)))
    return AttemptTracker(MemoryAttemptStore(), fast, clock=clock)


@pytest.fixture
def flow(tracker: AttemptTracker) -> AuthenticationFlow:
    return AuthenticationFlow(
        tracker,
        lookup_user=USERS.get,
        verify_password=_verify,
        issue_credential=_issue,
    )


async def _fail(flow: AuthenticationFlow, times: int, *, user="alice", ip="1.2.3.4") -> None:
    for _ in range(times):
        result = await flow.attempt_login(user, "wrong", ip)
        assert isinstance(result, RejectedInvalid)


# =============================================================================
# Outcomes
# =============================================================================


class TestOutcomes:
    async def test_correct_password_is_accepted(self, flow: AuthenticationFlow) -> None:
        result = await flow.attempt_login("alice", "wonderland", "1.2.3.4")
        assert result == Accepted(token="token-for-alice", username="alice")
        assert result.status == 200

    async def test_wrong_password_is_rejected(self, flow: AuthenticationFlow) -> None:
        result = await flow.attempt_login("alice", "nope", "1.2.3.4")
        assert isinstance(result, RejectedInvalid)
        assert result.status == 401
        assert result.message == "Invalid username or password."

    async def test_unknown_user_is_rejected_identically(self, flow: AuthenticationFlow) -> None:
        wrong_password = await flow.attempt_login("alice", "nope", "1.2.3.4")
        unknown_user = await flow.attempt_login("mallory", "nope", "5.6.7.8")
        assert wrong_password == unknown_user

    async def test_failures_are_recorded_in_both_namespaces(self, flow, tracker) -> None:
        await flow.attempt_login("mallory", "nope", "1.2.3.4")
        ip_record = await tracker.store.get(Namespace.IP, "1.2.3.4")
        user_record = await tracker.store.get(Namespace.USER, "mallory")
        assert ip_record is not None
        assert ip_record.failure_count == 1
        assert user_record is not None
        assert user_record.failure_count == 1

    async def test_success_clears_both_namespaces(self, flow, tracker) -> None:
        await _fail(flow, 2)
        await flow.attempt_login("alice", "wonderland", "1.2.3.4")
        assert await tracker.store.get(Namespace.IP, "1.2.3.4") is None
        assert await tracker.store.get(Namespace.USER, "alice") is None

    async def test_async_lookup_and_issue_are_awaited(self, tracker) -> None:
        async def lookup(username: str) -> User | None:
            return USERS.get(username)

        async def issue(user: User) -> str:
            return "async-token"

        flow = AuthenticationFlow(
            tracker, lookup_user=lookup, verify_password=_verify, issue_credential=issue
        )
        result = await flow.attempt_login("alice", "wonderland", "1.2.3.4")
        assert result == Accepted(token="async-token", username="alice")


# =============================================================================
# Lockout
# =============================================================================


class TestLockout:
    async def test_sixth_attempt_from_same_ip_is_locked(self, flow: AuthenticationFlow) -> None:
        await _fail(flow, 5)
        result = await flow.attempt_login("bob", "whatever", "1.2.3.4")
        assert isinstance(result, RejectedLocked)
        assert result.scope == Namespace.IP
        assert 0 < result.remaining_seconds <= 60
        assert result.status == 429
        assert result.headers == (("Retry-After", str(result.remaining_seconds)),)
        assert result.message == f"Too many requests, retry after {result.remaining_seconds} seconds."

    async def test_sixth_attempt_for_same_user_is_locked(self, flow: AuthenticationFlow) -> None:
        await _fail(flow, 5)
        result = await flow.attempt_login("alice", "wonderland", "9.9.9.9")
        assert isinstance(result, RejectedLocked)
        assert result.scope == Namespace.USER
        assert 0 < result.remaining_seconds <= 60

    async def test_attempt_that_engages_lock_reports_generic_failure(
        self, flow: AuthenticationFlow, tracker: AttemptTracker
    ) -> None:
        await _fail(flow, 4)
        fifth = await flow.attempt_login("alice", "wrong", "1.2.3.4")
        assert fifth == RejectedInvalid(message=tracker.safe_error_message())
        assert (await tracker.check_user("alice")).locked is True

    async def test_locked_ip_never_reaches_user_lookup(self, tracker) -> None:
        lookups: list[str] = []

        def lookup(username: str) -> User | None:
            lookups.append(username)
            return USERS.get(username)

        flow = AuthenticationFlow(
            tracker, lookup_user=lookup, verify_password=_verify, issue_credential=_issue
        )
        await _fail(flow, 5, user="mallory")
        lookups.clear()

        await flow.attempt_login("alice", "wonderland", "1.2.3.4")
        assert lookups == []
        assert await tracker.store.get(Namespace.USER, "alice") is None

    async def test_lock_expires(self, flow: AuthenticationFlow, clock) -> None:
        await _fail(flow, 5)
        clock.advance(61)
        result = await flow.attempt_login("alice", "wonderland", "1.2.3.4")
        assert isinstance(result, Accepted)

    async def test_success_from_other_ip_resets_user_but_not_ip(
        self, flow: AuthenticationFlow, tracker: AttemptTracker
    ) -> None:
        await _fail(flow, 3)
        result = await flow.attempt_login("alice", "wonderland", "5.6.7.8")
        assert isinstance(result, Accepted)

        assert await tracker.store.get(Namespace.USER, "alice") is None
        ip_record = await tracker.store.get(Namespace.IP, "1.2.3.4")
        assert ip_record is not None
        assert ip_record.failure_count == 3

    async def test_explicit_now_drives_lock_window(self, flow: AuthenticationFlow) -> None:
        for _ in range(5):
            await flow.attempt_login("alice", "wrong", "1.2.3.4", now=100.0)
        locked = await flow.attempt_login("alice", "wonderland", "1.2.3.4", now=130.0)
        assert isinstance(locked, RejectedLocked)
        assert locked.remaining_seconds == 30


# =============================================================================
# Progressive delay
# =============================================================================


class TestProgressiveDelay:
    async def test_delay_applied_after_threshold(self, flow, monkeypatch) -> None:
        slept: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            slept.append(seconds)

        monkeypatch.setattr("loginguard.flow.anyio.sleep", fake_sleep)
        await _fail(flow, 5, user="alice", ip="1.1.1.1")

        # Failures 1-3 run undelayed; the 4th and 5th wait 10ms and 20ms.
        # The dummy wait for unknown users is 0 here and alice exists.
        assert slept == [0.01, 0.02]

    async def test_delay_is_scoped_to_the_account(self, flow, monkeypatch) -> None:
        slept: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            slept.append(seconds)

        monkeypatch.setattr("loginguard.flow.anyio.sleep", fake_sleep)
        await _fail(flow, 4, user="alice", ip="1.1.1.1")
        slept.clear()

        await flow.attempt_login("carol", "x", "2.2.2.2")
        assert slept == [0.0]  # only the dummy wait for the unknown user


# =============================================================================
# Timing equalization
# =============================================================================


class TestTimingEqualization:
    async def test_unknown_and_known_users_take_similar_time(self, clock) -> None:
        verify_cost = 0.05

        async def slow_verify(password: str, password_hash: str) -> bool:
            await anyio.sleep(verify_cost)
            return password_hash == f"hash:{password}"

        config = GuardConfig(
            max_attempts_before_delay=1000,
            max_attempts_before_lock=1000,
            dummy_verify_seconds=verify_cost,
        )
        tracker = AttemptTracker(MemoryAttemptStore(), config, clock=clock)
        flow = AuthenticationFlow(
            tracker, lookup_user=USERS.get, verify_password=slow_verify, issue_credential=_issue
        )

        async def timed(username: str) -> float:
            started = time.perf_counter()
            await flow.attempt_login(username, "wrong", "1.2.3.4")
            return time.perf_counter() - started

        known = [await timed("alice") for _ in range(7)]
        unknown = [await timed("mallory") for _ in range(7)]

        assert abs(statistics.median(known) - statistics.median(unknown)) <= 0.02

    async def test_default_verifier_equalizes_unknown_users(self, clock) -> None:
        users = {"alice": User(username="alice", password_hash=hash_password("wonderland"))}
        config = GuardConfig(
            max_attempts_before_delay=1000,
            max_attempts_before_lock=1000,
            dummy_verify_seconds=0.0,
        )
        tracker = AttemptTracker(MemoryAttemptStore(), config, clock=clock)
        flow = AuthenticationFlow(tracker, lookup_user=users.get, issue_credential=_issue)

        async def timed(username: str) -> float:
            started = time.perf_counter()
            result = await flow.attempt_login(username, "wrong", "1.2.3.4")
            elapsed = time.perf_counter() - started
            assert isinstance(result, RejectedInvalid)
            return elapsed

        # First unknown-user attempt also builds the throwaway hash.
        await timed("mallory")
        known: list[float] = []
        unknown: list[float] = []
        for _ in range(7):
            known.append(await timed("alice"))
            unknown.append(await timed("mallory"))

        known_cost = statistics.median(known)
        unknown_cost = statistics.median(unknown)
        assert unknown_cost >= known_cost / 2
        assert abs(known_cost - unknown_cost) <= max(0.02, 0.1 * known_cost)

    async def test_calibrate_sets_dummy_delay(self, flow: AuthenticationFlow) -> None:
        cost = await flow.calibrate("hash:reference", samples=3)
        assert cost >= 0
        assert flow.dummy_verify_seconds == cost


# =============================================================================
# Errors
# =============================================================================


class TestErrors:
    async def test_verifier_crash_fails_closed(self, tracker, caplog) -> None:
        def exploding_verify(password: str, password_hash: str) -> bool:
            raise RuntimeError("hash backend offline at 10.0.0.7")

        flow = AuthenticationFlow(
            tracker,
            lookup_user=USERS.get,
            verify_password=exploding_verify,
            issue_credential=_issue,
        )
        with caplog.at_level(logging.ERROR, logger="loginguard.flow"):
            result = await flow.attempt_login("alice", "wonderland", "1.2.3.4")

        assert isinstance(result, Errored)
        assert result.status == 500
        assert "10.0.0.7" not in result.message
        assert "10.0.0.7" in caplog.text
        user_record = await tracker.store.get(Namespace.USER, "alice")
        assert user_record is not None
        assert user_record.failure_count == 1

    async def test_truthy_non_bool_from_verifier_is_rejected(self, tracker) -> None:
        flow = AuthenticationFlow(
            tracker,
            lookup_user=USERS.get,
            verify_password=lambda password, password_hash: "yes",
            issue_credential=_issue,
        )
        result = await flow.attempt_login("alice", "anything", "1.2.3.4")
        assert isinstance(result, RejectedInvalid)

    async def test_storage_failure_becomes_generic_error(self, config, clock) -> None:
        class BrokenStore(MemoryAttemptStore):
            async def get(self, namespace, identity):
                raise StorageFailure("sqlite: database is locked")

        tracker = AttemptTracker(BrokenStore(), config, clock=clock)
        flow = AuthenticationFlow(
            tracker, lookup_user=USERS.get, verify_password=_verify, issue_credential=_issue
        )
        result = await flow.attempt_login("alice", "wonderland", "1.2.3.4")
        assert result == Errored(message="Internal server error.")

    async def test_issue_failure_is_error_after_records_cleared(self, tracker) -> None:
        def failing_issue(user: User) -> str:
            raise ValueError("signing key missing")

        flow = AuthenticationFlow(
            tracker, lookup_user=USERS.get, verify_password=_verify, issue_credential=failing_issue
        )
        result = await flow.attempt_login("alice", "wonderland", "1.2.3.4")
        assert isinstance(result, Errored)
        assert "signing" not in result.message


# =============================================================================
# Cancellation
# =============================================================================


class TestCancellation:
    async def test_cancelled_request_still_records_failure(self, tracker) -> None:
        verifying = anyio.Event()

        async def slow_verify(password: str, password_hash: str) -> bool:
            verifying.set()
            await anyio.sleep(0.05)
            return False

        flow = AuthenticationFlow(
            tracker, lookup_user=USERS.get, verify_password=slow_verify, issue_credential=_issue
        )

        async with anyio.create_task_group() as tg:
            tg.start_soon(flow.attempt_login, "alice", "wrong", "1.2.3.4")
            await verifying.wait()
            tg.cancel_scope.cancel()

        user_record = await tracker.store.get(Namespace.USER, "alice")
        ip_record = await tracker.store.get(Namespace.IP, "1.2.3.4")
        assert user_record is not None
        assert user_record.failure_count == 1
        assert ip_record is not None


# =============================================================================
# Audit events
# =============================================================================


class TestAuditEvents:
    async def test_event_names_follow_outcomes(self, flow, security_events) -> None:
        await flow.attempt_login("alice", "wonderland", "1.2.3.4")
        await _fail(flow, 5)
        await flow.attempt_login("alice", "wrong", "1.2.3.4")

        names = [event.name for event in security_events]
        assert names[0] == "auth.login.success"
        assert names.count("auth.login.failure") == 5
        assert "auth.lockout.engaged" in names
        assert names[-1] == "auth.login.locked"
        assert security_events[-1].client_ip == "1.2.3.4"

    async def test_raising_sink_does_not_skip_account_recording(
        self, config: GuardConfig, clock
    ) -> None:
        strict = replace(config, max_attempts_before_delay=10, max_attempts_before_lock=2)
        tracker = AttemptTracker(MemoryAttemptStore(), strict, clock=clock)
        flow = AuthenticationFlow(
            tracker, lookup_user=USERS.get, verify_password=_verify, issue_credential=_issue
        )

        def broken_sink(event: SecurityEvent) -> None:
            raise RuntimeError("SIEM unreachable")

        set_security_event_sink(broken_sink)
        try:
            first = await flow.attempt_login("alice", "wrong", "1.2.3.4")
            second = await flow.attempt_login("alice", "wrong", "1.2.3.4")
        finally:
            set_security_event_sink(None)

        assert isinstance(first, RejectedInvalid)
        assert isinstance(second, RejectedInvalid)
        for namespace, identity in ((Namespace.IP, "1.2.3.4"), (Namespace.USER, "alice")):
            record = await tracker.store.get(namespace, identity)
            assert record is not None
            assert record.failure_count == 2
            assert record.is_locked(clock())
