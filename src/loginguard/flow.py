"""Authentication flow — throttled, timing-equalized login.

One ``attempt_login`` call runs one pass of the login sequence:

1. IP check — a locked IP is rejected before the username is looked at.
2. Account check — a locked account is rejected the same way.
3. Progressive delay for the account's recent failures.
4. User lookup, then password verification. With the default verifier an
   unknown username is verified against ``dummy_password_hash()``; with a
   custom verifier it waits out ``dummy_verify_seconds`` (see
   ``calibrate``). Both branches cost about the same wall-clock time and
   leave through the same code path.
5. Failure — recorded against the IP and the account; generic message.
6. Success — both records cleared, credential issued.
7. Collaborator failure — logged with full detail, generic answer.

From step 4 onward the attempt runs under a shielded cancel scope: a
client that disconnects mid-verification still has its attempt counted.

Usage::

    from loginguard import AttemptTracker, AuthenticationFlow

    flow = AuthenticationFlow(
        AttemptTracker(),
        lookup_user=users.get,              # username -> user | None
        issue_credential=sign_token,        # user -> str
    )
    result = await flow.attempt_login(username, password, client_ip)
"""

import logging

import anyio

from loginguard._internal.invoke import invoke
from loginguard._internal.types import IssueCredential, LookupUser, UserRecord, VerifyPassword
from loginguard.audit import emit_security_event
from loginguard.errors import (
    InvalidCredentials,
    LockedOut,
    LoginGuardError,
    UpstreamVerificationFailure,
)
from loginguard.passwords import averify_password, dummy_password_hash, measure_verify_cost
from loginguard.records import Namespace
from loginguard.results import Accepted, Errored, LoginResult, RejectedInvalid, RejectedLocked
from loginguard.tracker import AttemptTracker

logger = logging.getLogger("loginguard.flow")


class AuthenticationFlow:
    """End-to-end login sequence over an ``AttemptTracker``."""

    __slots__ = (
        "_dummy_seconds",
        "_issue",
        "_lookup",
        "_tracker",
        "_verify",
        "_verify_dummy_hash",
    )

    def __init__(
        self,
        tracker: AttemptTracker,
        *,
        lookup_user: LookupUser,
        issue_credential: IssueCredential,
        verify_password: VerifyPassword = averify_password,
    ) -> None:
        self._tracker = tracker
        self._lookup = lookup_user
        self._verify = verify_password
        self._issue = issue_credential
        self._dummy_seconds = tracker.config.dummy_verify_seconds
        # The default verifier runs against a dummy hash for unknown users.
        self._verify_dummy_hash = verify_password is averify_password

    @property
    def tracker(self) -> AttemptTracker:
        return self._tracker

    @property
    def dummy_verify_seconds(self) -> float:
        return self._dummy_seconds

    async def calibrate(
        self, reference_hash: str, *, password: str = "not-the-password", samples: int = 5
    ) -> float:
        """Measure the verifier and use its median cost as the dummy delay.

        Re-run whenever hashing parameters change so the unknown-user
        branch keeps pace with the real one.
        """
        cost = await measure_verify_cost(
            self._verify, reference_hash, password=password, samples=samples
        )
        self._dummy_seconds = cost
        self._verify_dummy_hash = False
        logger.info("Dummy verification delay calibrated to %.3fs", cost)
        return cost

    # -- Public API --

    async def attempt_login(
        self,
        username: str,
        password: str,
        client_ip: str,
        now: float | None = None,
    ) -> LoginResult:
        """Run one login attempt and return its result.

        Collaborator failures come back as ``Errored``; only cancellation
        propagates.
        """
        try:
            token, user = await self._authenticate(username, password, client_ip, now)
        except LockedOut as exc:
            emit_security_event(
                "auth.login.locked",
                namespace=exc.scope,
                identity=username,
                client_ip=client_ip,
                details={"remaining_seconds": exc.remaining_seconds},
            )
            return RejectedLocked(
                remaining_seconds=exc.remaining_seconds,
                scope=Namespace(exc.scope),
                message=self._tracker.locked_message(exc.remaining_seconds),
            )
        except InvalidCredentials:
            emit_security_event("auth.login.failure", identity=username, client_ip=client_ip)
            return RejectedInvalid(message=self._tracker.safe_error_message())
        except Exception:
            logger.exception("Login error for user %r from %s", username, client_ip)
            emit_security_event("auth.login.error", identity=username, client_ip=client_ip)
            return Errored(message=self._tracker.config.internal_error_message)

        emit_security_event("auth.login.success", identity=user.username, client_ip=client_ip)
        return Accepted(token=token, username=user.username)

    # -- Steps --

    async def _authenticate(
        self, username: str, password: str, client_ip: str, now: float | None
    ) -> tuple[str, UserRecord]:
        tracker = self._tracker
        checked_at = tracker.now() if now is None else now

        ip_decision = await tracker.check_ip(client_ip, checked_at)
        if ip_decision.locked:
            logger.warning(
                "IP %s locked, %ss remaining", client_ip, ip_decision.remaining_lock_seconds
            )
            raise LockedOut(str(Namespace.IP), ip_decision.remaining_lock_seconds)

        user_decision = await tracker.check_user(username, checked_at)
        if user_decision.locked:
            logger.warning(
                "User %r locked, %ss remaining", username, user_decision.remaining_lock_seconds
            )
            raise LockedOut(str(Namespace.USER), user_decision.remaining_lock_seconds)

        if user_decision.delay > 0:
            await anyio.sleep(user_decision.delay)

        with anyio.CancelScope(shield=True):
            user = await invoke(self._lookup, username)
            try:
                verified = await self._check_password(user, password)
            except Exception:
                await self._record_failure(username, client_ip, now)
                raise
            if user is None or not verified:
                await self._record_failure(username, client_ip, now)
                raise InvalidCredentials

            await tracker.record_success(Namespace.IP, client_ip)
            await tracker.record_success(Namespace.USER, username)

        token = await invoke(self._issue, user)
        return token, user

    async def _check_password(self, user: UserRecord | None, password: str) -> bool:
        if user is None:
            if not self._verify_dummy_hash:
                await anyio.sleep(self._dummy_seconds)
                return False
            # Real verification against a throwaway hash; the result is ignored.
            stored_hash = await anyio.to_thread.run_sync(dummy_password_hash)
        else:
            stored_hash = user.password_hash

        try:
            verified = await invoke(self._verify, password, stored_hash)
        except LoginGuardError:
            raise
        except Exception as exc:
            msg = "password verifier raised"
            raise UpstreamVerificationFailure(msg) from exc
        return user is not None and verified is True

    async def _record_failure(self, username: str, client_ip: str, now: float | None) -> None:
        logger.warning("Failed login attempt for user %r from IP %s", username, client_ip)
        await self._tracker.record_failure(Namespace.IP, client_ip, now)
        await self._tracker.record_failure(Namespace.USER, username, now)
