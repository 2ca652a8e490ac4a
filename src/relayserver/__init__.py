"""
=============================================================================
RELAYSERVER - Single-Process TCP Fan-Out Relay
=============================================================================

Every byte a connected peer sends is forwarded, unchanged, to every other
connected peer. One thread drives everything through a readiness loop:
no thread per connection, no locks.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     RELAY SERVER ARCHITECTURE                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Listener Setup ──► Event Loop ──┬──► Accept Handler               │
    │                          ▲        └──► Relay Handler                │
    │                          │                  │                        │
    │                          └── Connection Registry (mutated) ◄────────┘│
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    relayserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m relayserver)
    ├── server.py            # RelayServer: the event loop
    ├── config.py            # RelayConfig dataclass
    ├── errors.py            # Fatal errors and exit codes
    ├── log.py               # Logging setup (text / JSON)
    ├── core/                # Low-level components
    │   ├── address.py       # Tagged IPv4/IPv6 peer address
    │   ├── connection.py    # Socket wrapper with a stable handle
    │   ├── listener.py      # Resolve, bind, listen
    │   ├── multiplexer.py   # Readiness wait (selectors)
    │   └── registry.py      # Live connection set
    └── handlers/            # Event handlers
        ├── accept.py        # New connection on the listener
        └── relay.py         # Read one fragment, broadcast it

=============================================================================
QUICK START
=============================================================================

    from relayserver import RelayServer, RelayConfig

    server = RelayServer(RelayConfig(port=9034))
    server.run()   # Blocks until Ctrl+C

    # then, from two terminals:
    #   nc localhost 9034
    #   nc localhost 9034

=============================================================================
"""

__version__ = "1.0.0"

from .server import RelayServer
from .config import RelayConfig
from .errors import ExitCode, FatalError

__all__ = ["RelayServer", "RelayConfig", "ExitCode", "FatalError", "__version__"]
