"""
=============================================================================
LISTENER SETUP
=============================================================================

Turns a (host, port) setting into one bound, listening socket.

=============================================================================
SOCKET LIFECYCLE (Listening Side)
=============================================================================

    1. getaddrinfo()   Resolve the bind address
                       └─ AF_UNSPEC: IPv4 and IPv6 candidates alike
                       └─ AI_PASSIVE + host=None: the wildcard address
                       └─ Failure here is fatal (exit 1)

    2. socket()        Create a socket for the candidate's family
    3. setsockopt()    SO_REUSEADDR, so a restart can rebind immediately
    4. bind()          Reserve the address
                       └─ On failure: close, try the next candidate
                       └─ No candidate left is fatal (exit 2)

    5. listen()        Start queueing inbound connections
                       └─ backlog = pending connections before refusal
                       └─ Failure here is fatal (exit 3)

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   (port 9034)         │     Never sends/receives data
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client 1  │         │ Client 2  │         │ Client 3  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
SO_REUSEADDR
=============================================================================

Without it a restarted server sees "Address already in use" for as long as
the previous run's connections linger in TIME_WAIT.

=============================================================================
"""

import socket
import logging
from typing import List, Optional, Tuple

from .connection import Connection
from ..config import RelayConfig
from ..errors import BindError, ListenError, ResolveError


logger = logging.getLogger(__name__)


# (family, type, proto, canonname, sockaddr), as returned by getaddrinfo()
AddrInfo = Tuple[int, int, int, str, tuple]


def resolve_bind_addresses(host: Optional[str], port: int) -> List[AddrInfo]:
    """
    Resolve every local address the listener could bind to.

    Args:
        host: Address or hostname to bind. None means every local address.
        port: Port to bind.

    Returns:
        Candidates in the order getaddrinfo() returned them.

    Raises:
        ResolveError: If resolution fails or yields nothing.
    """
    try:
        candidates = socket.getaddrinfo(
            host,
            port,
            socket.AF_UNSPEC,
            socket.SOCK_STREAM,
            0,
            socket.AI_PASSIVE,
        )
    except socket.gaierror as e:
        raise ResolveError(f"server: {e.strerror or e}") from e

    if not candidates:
        raise ResolveError(f"server: no addresses for {host or '*'}:{port}")

    return candidates


def bind_first(candidates: List[AddrInfo]) -> socket.socket:
    """
    Bind a socket to the first candidate that accepts it.

    Raises:
        BindError: If no candidate could be bound.
    """
    for family, socktype, proto, _canonname, sockaddr in candidates:
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError as e:
            logger.debug(f"socket() failed for {sockaddr}: {e}")
            continue

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(sockaddr)
        except OSError as e:
            logger.debug(f"bind() failed for {sockaddr}: {e}")
            sock.close()
            continue

        return sock

    raise BindError("selectserver: failed to bind")


def open_listener(config: RelayConfig) -> Connection:
    """
    Resolve, bind and listen according to ``config``.

    Returns:
        The listening Connection. Its socket is non-blocking, so a
        readiness signal with nothing left to accept fails fast instead of
        stalling the event loop.

    Raises:
        ResolveError, BindError, ListenError: The three startup-fatal cases.
    """
    candidates = resolve_bind_addresses(config.host, config.port)
    sock = bind_first(candidates)

    try:
        sock.listen(config.backlog)
    except OSError as e:
        sock.close()
        raise ListenError(f"listen: {e}") from e

    sock.setblocking(False)

    listener = Connection(socket=sock, is_listener=True)
    logger.info(f"Bound to {sock.getsockname()[:2]} (socket {listener.handle})")
    return listener
