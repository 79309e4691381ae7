"""loginguard — adaptive brute-force protection for login endpoints.

Per-IP and per-username failure tracking, progressive delay, temporary
lockout, and timing-equalized credential checks.

Basic usage::

    from loginguard import AttemptTracker, AuthenticationFlow, GuardConfig

    tracker = AttemptTracker(config=GuardConfig(max_attempts_before_lock=5, lock_seconds=60))
    flow = AuthenticationFlow(tracker, lookup_user=users.get, issue_credential=sign_token)

    result = await flow.attempt_login(username, password, client_ip)
    return Response(status=result.status, body=result.message, headers=result.headers)

Persistent store::

    from loginguard.store import SQLiteAttemptStore
    async with SQLiteAttemptStore("attempts.db") as store:
        tracker = AttemptTracker(store)

Argon2 password hashes (``pip install loginguard[auth]``)::

    from loginguard.passwords import hash_password, verify_password
"""

__version__ = "0.1.0"
__all__ = [
    "Accepted",
    "AttemptRecord",
    "AttemptStore",
    "AttemptTracker",
    "AuthenticationFlow",
    "ConfigurationError",
    "Errored",
    "ExponentialDelay",
    "GuardConfig",
    "InvalidCredentials",
    "LockedOut",
    "LoginGuardError",
    "LoginResult",
    "MemoryAttemptStore",
    "Namespace",
    "RejectedInvalid",
    "RejectedLocked",
    "SQLiteAttemptStore",
    "StepDelay",
    "StorageFailure",
    "ThrottleDecision",
    "ThrottlePolicy",
    "UpstreamVerificationFailure",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import loginguard`` fast while providing a clean top-level API.
    """
    if name == "AuthenticationFlow":
        from loginguard.flow import AuthenticationFlow

        return AuthenticationFlow

    if name == "AttemptTracker":
        from loginguard.tracker import AttemptTracker

        return AttemptTracker

    if name == "GuardConfig":
        from loginguard.config import GuardConfig

        return GuardConfig

    if name in ("ThrottleDecision", "ThrottlePolicy"):
        from loginguard import policy as _policy

        return getattr(_policy, name)

    if name in ("ExponentialDelay", "StepDelay"):
        from loginguard import schedules as _schedules

        return getattr(_schedules, name)

    if name in ("AttemptRecord", "Namespace"):
        from loginguard import records as _records

        return getattr(_records, name)

    if name in ("AttemptStore", "MemoryAttemptStore", "SQLiteAttemptStore"):
        from loginguard import store as _store

        return getattr(_store, name)

    if name in ("Accepted", "Errored", "LoginResult", "RejectedInvalid", "RejectedLocked"):
        from loginguard import results as _results

        return getattr(_results, name)

    if name in (
        "ConfigurationError",
        "InvalidCredentials",
        "LockedOut",
        "LoginGuardError",
        "StorageFailure",
        "UpstreamVerificationFailure",
    ):
        from loginguard import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
