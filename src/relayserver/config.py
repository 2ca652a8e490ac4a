"""
=============================================================================
RELAY CONFIGURATION
=============================================================================

Centralized configuration for the relay server.

The defaults reproduce the reference behavior exactly: every local address,
port 9034, a backlog of 10 and a 256 byte read buffer. Nothing has to be
set for the server to run.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m relayserver --port 9100                         │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── RELAY_PORT=9100 python -m relayserver                     │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_PORT = 9034
DEFAULT_BACKLOG = 10
DEFAULT_BUFFER_SIZE = 256

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")
TRUTHY = ("1", "true", "yes", "on")


@dataclass
class RelayConfig:
    """
    Configuration for the relay server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog

    RELAY SETTINGS
    - buffer_size, send_all

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: Optional[str] = None
    """
    The address to bind to.
    - None - every local address, any family (passive wildcard)
    - "127.0.0.1" / "::1" - loopback only
    """

    port: int = DEFAULT_PORT
    """
    The port number to listen on. 0 asks the OS for a free port.
    """

    backlog: int = DEFAULT_BACKLOG
    """
    Maximum number of pending connections not yet accepted.
    """

    # ─────────────────────────────────────────────────────────────────────
    # RELAY SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = DEFAULT_BUFFER_SIZE
    """
    Largest fragment read from a client per readiness event.
    A bigger logical write is relayed as several fragments.
    """

    send_all: bool = False
    """
    Loop until every byte of a fragment is written to each recipient.
    False keeps single-shot send(): a short write counts as delivered.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    log_format: str = "text"
    """
    Log format: 'text' for humans, 'json' for log aggregators.
    """

    @classmethod
    def from_env(cls) -> "RelayConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        RELAY_HOST          Bind address (default: every local address)
        RELAY_PORT          Listening port (default: 9034)
        RELAY_BACKLOG       Pending connection queue (default: 10)
        RELAY_BUFFER_SIZE   Bytes read per event (default: 256)
        RELAY_SEND_ALL      1/true/yes/on to retry short writes (default: off)
        RELAY_LOG_LEVEL     Logging level (default: INFO)
        RELAY_LOG_FORMAT    'text' or 'json' (default: text)

        =====================================================================
        """
        return cls(
            host=os.getenv("RELAY_HOST") or None,
            port=int(os.getenv("RELAY_PORT", str(DEFAULT_PORT))),
            backlog=int(os.getenv("RELAY_BACKLOG", str(DEFAULT_BACKLOG))),
            buffer_size=int(os.getenv("RELAY_BUFFER_SIZE", str(DEFAULT_BUFFER_SIZE))),
            send_all=os.getenv("RELAY_SEND_ALL", "").lower() in TRUTHY,
            log_level=os.getenv("RELAY_LOG_LEVEL", "INFO"),
            log_format=os.getenv("RELAY_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by RelayServer at construction so a bad setting fails
        before any socket is created.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 0:
            raise ValueError("backlog must be >= 0")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
