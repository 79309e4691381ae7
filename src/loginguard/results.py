"""Login results — what ``AuthenticationFlow.attempt_login`` returns.

Each result carries the status code an HTTP layer would answer with, so
a handler can map it onto a response without inspecting the type::

    result = await flow.attempt_login(username, password, client_ip)
    return Response(status=result.status, body=result.message, headers=result.headers)
"""

from dataclasses import dataclass

from loginguard.records import Namespace


@dataclass(frozen=True, slots=True)
class Accepted:
    """Credentials verified; ``token`` comes from the issuance collaborator."""

    token: str
    username: str
    status: int = 200
    message: str = ""

    @property
    def headers(self) -> tuple[tuple[str, str], ...]:
        return ()


@dataclass(frozen=True, slots=True)
class RejectedLocked:
    """The client IP or the account is locked."""

    remaining_seconds: int
    scope: Namespace
    message: str
    status: int = 429

    @property
    def headers(self) -> tuple[tuple[str, str], ...]:
        return (("Retry-After", str(self.remaining_seconds)),)


@dataclass(frozen=True, slots=True)
class RejectedInvalid:
    """Credentials rejected. ``message`` never says why."""

    message: str
    status: int = 401

    @property
    def headers(self) -> tuple[tuple[str, str], ...]:
        return ()


@dataclass(frozen=True, slots=True)
class Errored:
    """A collaborator failed. Detail is in the server log, not here."""

    message: str
    status: int = 500

    @property
    def headers(self) -> tuple[tuple[str, str], ...]:
        return ()


type LoginResult = Accepted | RejectedLocked | RejectedInvalid | Errored
