"""
=============================================================================
CORE RELAY COMPONENTS
=============================================================================

The low-level plumbing the event loop drives:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          LISTENER SETUP                              │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Resolves the bind address (IPv4 or IPv6)                         │
    │  • Binds the first candidate that works, listens with backlog 10    │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                       CONNECTION REGISTRY                            │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • The listener plus every open client, keyed by handle            │
    │  • Deterministic snapshots for polling and broadcast                │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                      READINESS MULTIPLEXER                           │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Sleeps until some registered socket is readable                  │
    │  • The only place the process ever blocks                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .address import AddressFamily, RemoteAddress, format_address
from .connection import Connection, ConnectionState
from .listener import open_listener, resolve_bind_addresses
from .multiplexer import ReadinessMultiplexer
from .registry import ConnectionRegistry

__all__ = [
    "AddressFamily",        # IPV4 / IPV6 tag
    "RemoteAddress",        # Tagged peer address
    "format_address",       # The one address formatter
    "Connection",           # Socket wrapper with a stable handle
    "ConnectionState",      # LISTENING / OPEN / CLOSED
    "open_listener",        # Resolve + bind + listen
    "resolve_bind_addresses",
    "ReadinessMultiplexer", # Blocks until sockets are readable
    "ConnectionRegistry",   # Live set of connections
]
