"""Security audit events.

Small opt-in event channel for login telemetry. Applications can register
a sink to forward events to logs, metrics, or SIEM. Emission is a no-op
until a sink is set. A sink that raises is logged and otherwise ignored,
so telemetry never changes what the login flow records or returns.

Event names::

    auth.login.success      credentials accepted
    auth.login.failure      credentials rejected (any cause)
    auth.login.locked       attempt rejected because an identity is locked
    auth.login.error        collaborator failure, request answered generically
    auth.lockout.engaged    a failure pushed an identity into lockout
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from time import time
from typing import Any

logger = logging.getLogger("loginguard.audit")


@dataclass(frozen=True, slots=True)
class SecurityEvent:
    """A structured security event."""

    name: str
    timestamp: float = field(default_factory=time)
    namespace: str | None = None
    identity: str | None = None
    client_ip: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


type SecurityEventSink = Callable[[SecurityEvent], None]


_sink_lock = threading.Lock()
_sink: SecurityEventSink | None = None


def set_security_event_sink(sink: SecurityEventSink | None) -> None:
    """Set a process-wide sink for security events.

    Pass ``None`` to disable event delivery.
    """
    global _sink
    with _sink_lock:
        _sink = sink


def emit_security_event(
    name: str,
    *,
    namespace: str | None = None,
    identity: str | None = None,
    client_ip: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit a best-effort security event to the configured sink."""
    with _sink_lock:
        sink = _sink
    if sink is None:
        return

    event = SecurityEvent(
        name=name,
        namespace=None if namespace is None else str(namespace),
        identity=identity,
        client_ip=client_ip,
        details=details or {},
    )
    try:
        sink(event)
    except Exception:
        logger.exception("Security event sink failed for %s", name)
