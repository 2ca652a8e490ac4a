"""
=============================================================================
CONNECTION REGISTRY
=============================================================================

The live set of connections the event loop polls: the listening socket
plus every open client.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       ConnectionRegistry                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   handle ──► Connection                                             │
    │                                                                      │
    │     3   ──►  listener       (always present, never removed)         │
    │     5   ──►  203.0.113.7:40312                                      │
    │     6   ──►  [2001:db8::1]:51000                                    │
    │     9   ──►  198.51.100.2:33110                                     │
    │                                                                      │
    │   all()      → [3, 5, 6, 9]  ascending handle, a fresh list         │
    │   clients()  → [5, 6, 9]                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The registry is a plain value owned by the RelayServer and passed to the
handlers. Enumeration is over its members only, so a broadcast costs
O(members) regardless of how high the descriptor numbers climb.

Snapshots are new lists: handlers can add or remove members while walking
a snapshot without disturbing it.

=============================================================================
"""

from typing import Dict, List

from .connection import Connection


class ConnectionRegistry:
    """
    Set of open connections keyed by handle.

    Usage:
        registry = ConnectionRegistry(listener)
        registry.add(client)
        for conn in registry.all():
            ...
        registry.remove(client)
    """

    def __init__(self, listener: Connection):
        """
        Args:
            listener: The listening connection. It joins the registry
                      immediately and stays for the registry's lifetime.
        """
        if not listener.is_listener:
            raise ValueError("ConnectionRegistry needs a listening connection")

        self._listener = listener
        self._connections: Dict[int, Connection] = {listener.handle: listener}

    @property
    def listener(self) -> Connection:
        """The listening connection."""
        return self._listener

    def add(self, connection: Connection) -> None:
        """
        Register a connection.

        Raises:
            ValueError: If another live connection already has this handle.
        """
        existing = self._connections.get(connection.handle)
        if existing is not None and existing is not connection:
            raise ValueError(f"Handle {connection.handle} is already registered")
        self._connections[connection.handle] = connection

    def remove(self, connection: Connection) -> None:
        """
        Deregister a connection. Removing a non-member is a no-op.

        Raises:
            ValueError: If asked to remove the listener.
        """
        if connection is self._listener:
            raise ValueError("The listening connection cannot be removed")
        if self._connections.get(connection.handle) is connection:
            del self._connections[connection.handle]

    def contains(self, connection: Connection) -> bool:
        """True if this exact connection is registered."""
        return self._connections.get(connection.handle) is connection

    def all(self) -> List[Connection]:
        """Snapshot of every member, listener included, by ascending handle."""
        return [self._connections[h] for h in sorted(self._connections)]

    def clients(self) -> List[Connection]:
        """Snapshot of every member except the listener, by ascending handle."""
        return [conn for conn in self.all() if conn is not self._listener]

    def __contains__(self, connection: object) -> bool:
        return isinstance(connection, Connection) and self.contains(connection)

    def __len__(self) -> int:
        return len(self._connections)
