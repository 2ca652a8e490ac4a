"""
Accept handler: runs when the listener shows up in the ready set.

One readiness signal, one accept() attempt. If the pending connection
vanished in between (reset by the peer, aborted, or simply already gone),
accept() fails, the failure is logged, and the loop moves on. The
listener itself is never touched.
"""

import logging
from typing import Optional

from ..core.address import RemoteAddress
from ..core.connection import Connection
from ..core.registry import ConnectionRegistry


logger = logging.getLogger(__name__)


def accept_connection(registry: ConnectionRegistry) -> Optional[Connection]:
    """
    Accept one pending connection and register it.

    Args:
        registry: The live registry; its listener is the socket accepted on.

    Returns:
        The new Connection, or None if accept() failed.
    """
    listener = registry.listener

    try:
        client_socket, client_address = listener.accept()
    except OSError as e:
        logger.error(f"accept: {e}")
        return None

    # Client sockets do single-shot blocking I/O after readiness.
    client_socket.setblocking(True)

    try:
        address = RemoteAddress.from_sockaddr(client_socket.family, client_address)
    except ValueError as e:
        logger.error(f"accept: {e}")
        client_socket.close()
        return None

    conn = Connection(socket=client_socket, address=address)
    registry.add(conn)

    logger.info(f"server: new connection from {address} on socket {conn.handle}")
    return conn
