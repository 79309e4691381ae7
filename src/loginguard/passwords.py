"""Password verification — argon2id with scrypt fallback.

The login flow treats verification as a collaborator. This module is the
default one: it checks PHC-format hashes using the best available
algorithm:

1. **argon2id** via ``argon2-cffi`` (preferred, ``pip install loginguard[auth]``)
2. **scrypt** via stdlib ``hashlib`` (fallback, always available)

``verify_password`` auto-detects the algorithm from the hash prefix.
``averify_password`` runs it on a worker thread so a slow hash never
stalls other requests, and turns verifier crashes into
``UpstreamVerificationFailure``.

``dummy_password_hash`` gives the login flow something to verify
against when the username is unknown. ``measure_verify_cost`` times real
verifications for flows with a custom verifier.

Usage::

    from loginguard.passwords import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
"""

import base64
import functools
import hashlib
import hmac
import os
import secrets
import statistics
import time

import anyio

from loginguard._internal.invoke import invoke
from loginguard._internal.types import VerifyPassword
from loginguard.errors import UpstreamVerificationFailure

# PHC format prefixes
_ARGON2_PREFIX = "$argon2"
_SCRYPT_PREFIX = "$scrypt$"

# Scrypt parameters (balanced for security and compatibility)
_SCRYPT_N = 2**14  # CPU/memory cost
_SCRYPT_R = 8  # Block size
_SCRYPT_P = 1  # Parallelism
_SCRYPT_DKLEN = 64  # Derived key length
_SALT_LENGTH = 16  # Salt length in bytes


def _has_argon2() -> bool:
    """Check if argon2-cffi is available."""
    try:
        import argon2  # noqa: F401

        return True
    except ImportError:
        return False


# ---------------------------------------------------------------------------
# Scrypt (stdlib fallback)
# ---------------------------------------------------------------------------


def _hash_scrypt(password: str) -> str:
    """Hash password with scrypt, returning a PHC-format string."""
    salt = os.urandom(_SALT_LENGTH)
    dk = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=_SCRYPT_DKLEN,
    )
    salt_b64 = base64.b64encode(salt).decode("ascii")
    dk_b64 = base64.b64encode(dk).decode("ascii")
    return f"$scrypt$n={_SCRYPT_N},r={_SCRYPT_R},p={_SCRYPT_P}${salt_b64}${dk_b64}"


def _verify_scrypt(password: str, phc_hash: str) -> bool:
    """Verify password against a scrypt PHC-format hash."""
    # Format: $scrypt$n=N,r=R,p=P$salt_b64$dk_b64
    parts = phc_hash.split("$")
    if len(parts) != 5 or parts[1] != "scrypt":
        return False

    try:
        params = {}
        for param in parts[2].split(","):
            key, _, value = param.partition("=")
            params[key] = int(value)

        salt = base64.b64decode(parts[3])
        expected_dk = base64.b64decode(parts[4])
    except ValueError:
        return False

    dk = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=params.get("n", _SCRYPT_N),
        r=params.get("r", _SCRYPT_R),
        p=params.get("p", _SCRYPT_P),
        dklen=len(expected_dk),
    )

    return hmac.compare_digest(dk, expected_dk)


# ---------------------------------------------------------------------------
# Argon2 (preferred)
# ---------------------------------------------------------------------------


def _hash_argon2(password: str) -> str:
    """Hash password with argon2id via argon2-cffi."""
    from argon2 import PasswordHasher

    return PasswordHasher().hash(password)


def _verify_argon2(password: str, phc_hash: str) -> bool:
    """Verify password against an argon2 hash."""
    from argon2 import PasswordHasher
    from argon2.exceptions import InvalidHashError, VerificationError

    try:
        return PasswordHasher().verify(phc_hash, password)
    except VerificationError:
        return False
    except InvalidHashError as exc:
        msg = "Stored argon2 hash is malformed."
        raise ValueError(msg) from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    """Hash a password using the best available algorithm.

    Uses argon2id if ``argon2-cffi`` is installed, otherwise falls back to
    scrypt (stdlib). Returns a PHC-format string safe for database storage.
    """
    if not password:
        msg = "Password must not be empty."
        raise ValueError(msg)

    if _has_argon2():
        return _hash_argon2(password)
    return _hash_scrypt(password)


def verify_password(password: str, phc_hash: str) -> bool:
    """Verify a password against a PHC-format hash.

    Returns ``False`` for an empty password or hash. Raises
    ``RuntimeError`` when the hash needs argon2 and it is missing, and
    ``ValueError`` for an unknown hash format. Both are deployment
    problems, not wrong passwords.
    """
    if not password or not phc_hash:
        return False

    if phc_hash.startswith(_ARGON2_PREFIX):
        if not _has_argon2():
            msg = (
                "Hash was created with argon2 but argon2-cffi is not installed. "
                "Install it with: pip install loginguard[auth]"
            )
            raise RuntimeError(msg)
        return _verify_argon2(password, phc_hash)

    if phc_hash.startswith(_SCRYPT_PREFIX):
        return _verify_scrypt(password, phc_hash)

    msg = f"Unknown hash format: {phc_hash[:8]}..."
    raise ValueError(msg)


@functools.cache
def dummy_password_hash() -> str:
    """Hash of a random throwaway password, built once per process.

    Same algorithm and parameters as ``hash_password``, so verifying
    against it costs what a real wrong-password check costs.
    """
    return hash_password(secrets.token_urlsafe(16))


async def averify_password(password: str, phc_hash: str) -> bool:
    """``verify_password`` on a worker thread.

    Any exception from the verifier becomes ``UpstreamVerificationFailure``
    so callers fail closed.
    """
    try:
        return await anyio.to_thread.run_sync(verify_password, password, phc_hash)
    except (RuntimeError, ValueError) as exc:
        msg = "password verification failed"
        raise UpstreamVerificationFailure(msg) from exc


async def measure_verify_cost(
    verify: VerifyPassword,
    reference_hash: str,
    *,
    password: str = "not-the-password",
    samples: int = 5,
) -> float:
    """Median wall-clock seconds of ``verify(password, reference_hash)``.

    Use a hash produced with the same parameters as real user hashes and
    a password that does not match it, so the measured path is the one
    an attacker times.
    """
    if samples < 1:
        msg = f"samples must be >= 1, got {samples}"
        raise ValueError(msg)

    timings: list[float] = []
    for _ in range(samples):
        started = time.perf_counter()
        await invoke(verify, password, reference_hash)
        timings.append(time.perf_counter() - started)
    return statistics.median(timings)
