"""
Event handlers.

The event loop dispatches each ready connection to one of these:

    listener ready  ──►  accept_connection(registry)
    client ready    ──►  relay_from(registry, conn, ...)

Both take the registry explicitly; neither keeps state of its own.
"""

from .accept import accept_connection
from .relay import RelayResult, broadcast, relay_from

__all__ = ["accept_connection", "relay_from", "broadcast", "RelayResult"]
