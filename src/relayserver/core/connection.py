"""
=============================================================================
CONNECTION
=============================================================================

Wraps one socket held by the relay: either the listening socket or an
accepted client.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

The relay never tries to find message boundaries. Whatever one recv()
returns (at most buffer_size bytes) is a FRAGMENT, and that fragment is
forwarded as-is:

    Client sends:   "hello world, this is a long line ... (300 bytes)"

    Relay reads:    recv(256) → first 256 bytes    → broadcast
                    recv(256) → remaining 44 bytes → broadcast

    Peers observe the same bytes in the same order, possibly re-chunked
    again by their own TCP stack.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    Listening socket:

        LISTENING ───────────────────────────────► CLOSED
                      (only when the server stops)

    Client socket:

        OPEN ──► OPEN ──► ... ──► CLOSED
         │    (reads/writes)        ▲
         │                          │
         └──────────────────────────┘
           zero-byte read, read error, or server stop

=============================================================================
IDENTITY
=============================================================================

A connection is identified by its HANDLE: the descriptor number captured
when the wrapper is built. socket.fileno() turns into -1 after close(), so
the handle is kept separately and stays usable for logging and registry
removal once the socket is gone.

The OS never hands out the same descriptor to two sockets that are open
at the same time, so handles are unique among live connections.

=============================================================================
"""

import socket
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .address import RemoteAddress


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""

    LISTENING = "listening"  # The listener, for the life of the server
    OPEN = "open"            # Accepted client, readable and writable
    CLOSED = "closed"        # Socket closed, handle released


@dataclass(eq=False)
class Connection:
    """
    One socket tracked by the relay.

    Attributes:
        socket: The underlying socket.
        address: The peer address (None for the listener).
        is_listener: True only for the listening socket.
        handle: Descriptor number captured at construction.
        state: Current lifecycle state.
    """

    # Required parameters
    socket: socket.socket

    # Optional parameters
    address: Optional[RemoteAddress] = None
    is_listener: bool = False

    # Derived state
    handle: int = field(init=False)
    state: ConnectionState = field(init=False)

    def __post_init__(self):
        self.handle = self.socket.fileno()
        if self.is_listener:
            self.state = ConnectionState.LISTENING
        else:
            self.state = ConnectionState.OPEN

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def is_open(self) -> bool:
        """True until close() has been called."""
        return self.state is not ConnectionState.CLOSED

    def fileno(self) -> int:
        """Return the handle, so the wrapper can be handed to selectors."""
        return self.handle

    # =========================================================================
    # I/O
    # =========================================================================

    def accept(self) -> Tuple[socket.socket, tuple]:
        """
        Accept one pending connection on the listening socket.

        Raises:
            OSError: Including BlockingIOError when nothing is pending.
        """
        return self.socket.accept()

    def recv(self, size: int) -> bytes:
        """
        Read at most ``size`` bytes with a single recv().

        Returns:
            The bytes read. An empty result means the peer closed its side.

        Raises:
            OSError: If the read itself fails (e.g. connection reset).
        """
        return self.socket.recv(size)

    def send(self, data: bytes, send_all: bool = False) -> int:
        """
        Write ``data`` to the peer.

        With ``send_all=False`` this is one send() call and the return value
        may be smaller than ``len(data)``. With ``send_all=True`` sendall()
        keeps writing until everything is out.

        Returns:
            Number of bytes written.

        Raises:
            OSError: If the write fails (e.g. broken pipe).
        """
        if send_all:
            self.socket.sendall(data)
            return len(data)
        return self.socket.send(data)

    def close(self):
        """
        Close the socket. Safe to call more than once.
        """
        if self.state is ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSED
        try:
            self.socket.close()
        except OSError as e:
            logger.debug(f"Error closing socket {self.handle}: {e}")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __str__(self) -> str:
        if self.is_listener:
            return f"listener (socket {self.handle})"
        return f"{self.address} (socket {self.handle})"
