"""Shared type aliases for the collaborators the login flow consumes."""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeAlias, runtime_checkable


@runtime_checkable
class UserRecord(Protocol):
    """Minimal user shape the flow needs.

    Any object with ``username`` and ``password_hash`` satisfies this.
    Applications bring their own user model (ORM class, dataclass, etc.)
    """

    @property
    def username(self) -> str: ...

    @property
    def password_hash(self) -> str: ...


# Current time as epoch seconds, injectable for tests
Clock: TypeAlias = Callable[[], float]

# username -> user or None; sync or async
LookupUser: TypeAlias = Callable[[str], UserRecord | None | Awaitable[UserRecord | None]]

# (plaintext, stored hash) -> match; sync or async
VerifyPassword: TypeAlias = Callable[[str, str], bool | Awaitable[bool]]

# user -> opaque credential (e.g. a signed token); sync or async
IssueCredential: TypeAlias = Callable[[Any], str | Awaitable[str]]
