"""
=============================================================================
RELAY HANDLER
=============================================================================

Runs once per ready client per event-loop cycle.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      relay_from(conn) Flow                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   recv(buffer_size)                                                  │
    │       │                                                              │
    │       ├── OSError ─────► close + remove   (logged as an error)      │
    │       │                                                              │
    │       ├── b"" ─────────► close + remove   (peer hung up)            │
    │       │                                                              │
    │       └── N bytes ─────► for each member, ascending handle:         │
    │                              skip the listener                       │
    │                              skip the sender                         │
    │                              send(N bytes)                           │
    │                                 └── OSError: log, keep going        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BEST-EFFORT DELIVERY
=============================================================================

A failing recipient is logged and skipped. It is not closed here: its own
next readiness event (EOF or error) takes it out of the registry.

A single send() may write fewer bytes than asked. By default that counts
as delivered and the rest of the fragment is dropped for that recipient.
Pass send_all=True to use sendall() instead.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import List

from ..config import DEFAULT_BUFFER_SIZE
from ..core.connection import Connection
from ..core.registry import ConnectionRegistry


logger = logging.getLogger(__name__)


@dataclass
class RelayResult:
    """
    What one relay_from() call did.

    Attributes:
        data: The fragment read (empty on hang-up or read error).
        delivered: Recipients the fragment was written to.
        failed: Recipients whose write raised.
        closed: True if the sender was closed and deregistered.
    """

    data: bytes = b""
    delivered: List[Connection] = field(default_factory=list)
    failed: List[Connection] = field(default_factory=list)
    closed: bool = False


def relay_from(
    registry: ConnectionRegistry,
    sender: Connection,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    send_all: bool = False,
) -> RelayResult:
    """
    Read one fragment from ``sender`` and broadcast it to every other client.

    Args:
        registry: The live registry.
        sender: The ready client connection.
        buffer_size: Largest fragment to read.
        send_all: Retry short writes until the whole fragment is sent.

    Returns:
        A RelayResult describing the outcome.
    """
    try:
        data = sender.recv(buffer_size)
    except OSError as e:
        logger.error(f"recv on socket {sender.handle}: {e}")
        _drop(registry, sender)
        return RelayResult(closed=True)

    if not data:
        logger.info(f"server: socket {sender.handle} hung up")
        _drop(registry, sender)
        return RelayResult(closed=True)

    return broadcast(registry, sender, data, send_all=send_all)


def broadcast(
    registry: ConnectionRegistry,
    sender: Connection,
    data: bytes,
    send_all: bool = False,
) -> RelayResult:
    """
    Write ``data`` to every registered client except ``sender``.

    Recipients are visited in ascending handle order. A write error is
    logged and does not stop delivery to the rest.
    """
    result = RelayResult(data=data)

    for recipient in registry.clients():
        if recipient is sender:
            continue

        try:
            sent = recipient.send(data, send_all=send_all)
        except OSError as e:
            logger.warning(f"send to socket {recipient.handle}: {e}")
            result.failed.append(recipient)
            continue

        if sent < len(data):
            logger.debug(
                f"Short write to socket {recipient.handle}: "
                f"{sent} of {len(data)} bytes"
            )
        result.delivered.append(recipient)

    return result


def _drop(registry: ConnectionRegistry, conn: Connection):
    """Close and deregister in the same step."""
    conn.close()
    registry.remove(conn)
