"""
=============================================================================
RELAY SERVER (EVENT LOOP)
=============================================================================

Ties the components together into the relay's single control flow.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          RelayServer                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start()                                                           │
    │        ├──► open_listener()        resolve + bind + listen           │
    │        ├──► ConnectionRegistry     owned by this instance            │
    │        └──► ReadinessMultiplexer                                     │
    │                                                                      │
    │    serve_forever()                                                   │
    │        └──► while running:                                           │
    │                run_once()                                            │
    │                    ├──► snapshot = registry.all()                    │
    │                    ├──► ready = multiplexer.wait(snapshot)  BLOCKS   │
    │                    └──► for conn in ready:                           │
    │                            listener?  accept_connection()            │
    │                            client?    relay_from()                   │
    │                                                                      │
    │    shutdown()          flag + wake the multiplexer                   │
    │    close()             close clients, listener, multiplexer          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is exactly one thread of execution. The registry and every
connection are only touched inside run_once(), so nothing needs a lock.
shutdown() is the one entry point meant for other threads and signal
handlers, and it only sets a flag and writes a byte.

=============================================================================
SIGNAL HANDLING
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) trigger shutdown(): the
current cycle finishes, every socket is closed, and run() returns
normally. SIGKILL cannot be caught; the OS reclaims the descriptors.

Python only allows installing handlers from the main thread, so a server
run from a worker thread (as the tests do) skips that step.

=============================================================================
"""

import signal
import logging
import threading
from typing import Optional, Tuple

from .config import RelayConfig
from .core import ConnectionRegistry, ReadinessMultiplexer, open_listener
from .handlers import accept_connection, relay_from
from .log import configure_logging


logger = logging.getLogger(__name__)


class RelayServer:
    """
    Single-threaded TCP fan-out relay.

    Usage:
        server = RelayServer(RelayConfig(port=9034))
        server.run()  # Blocks until SIGINT/SIGTERM

    Or, driving the loop by hand:
        server.start()
        while ...:
            server.run_once()
        server.close()
    """

    def __init__(self, config: Optional[RelayConfig] = None):
        """
        Args:
            config: Relay configuration. Defaults reproduce the reference
                    server (port 9034, backlog 10, 256 byte fragments).
        """
        self.config = config or RelayConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._registry: Optional[ConnectionRegistry] = None
        self._multiplexer: Optional[ReadinessMultiplexer] = None

        self._running = False
        self._original_handlers: dict = {}

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def registry(self) -> ConnectionRegistry:
        """The live registry. Only valid after start()."""
        if self._registry is None:
            raise RuntimeError("Server has not been started")
        return self._registry

    @property
    def address(self) -> Tuple:
        """The listener's bound address, e.g. ('0.0.0.0', 9034)."""
        return self.registry.listener.socket.getsockname()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self):
        """
        Open the listener and prepare the loop.

        Raises:
            ResolveError, BindError, ListenError: Fatal startup failures.
        """
        listener = open_listener(self.config)
        self._registry = ConnectionRegistry(listener)
        self._multiplexer = ReadinessMultiplexer()
        self._running = True

        logger.info("selectserver: listening for connections...")

    def run(self):
        """
        Configure logging, start, and serve until shut down.

        Raises:
            FatalError: Startup or readiness-wait failure. Carries the
                        process exit code.
        """
        configure_logging(self.config.log_level, self.config.log_format)

        try:
            self.start()
            self._setup_signals()
            self.serve_forever()
        finally:
            self.close()

    def serve_forever(self):
        """Run cycles until shutdown() is called."""
        while self._running:
            self.run_once()

    def run_once(self, timeout: Optional[float] = None) -> int:
        """
        One event-loop cycle: wait for readiness, then dispatch.

        Args:
            timeout: Seconds to wait. None blocks until something happens.

        Returns:
            Number of ready connections dispatched.

        Raises:
            PollError: If the readiness wait fails.
        """
        registry = self.registry
        ready = self._multiplexer.wait(registry.all(), timeout=timeout)

        for conn in ready:
            if conn.is_listener:
                accept_connection(registry)
            elif registry.contains(conn):
                relay_from(
                    registry,
                    conn,
                    buffer_size=self.config.buffer_size,
                    send_all=self.config.send_all,
                )

        return len(ready)

    def shutdown(self):
        """
        Ask the loop to stop after the current cycle.

        Safe to call from a signal handler or another thread, and safe to
        call more than once.
        """
        if not self._running:
            return
        logger.info("Shutting down relay server...")
        self._running = False
        multiplexer = self._multiplexer
        if multiplexer is not None:
            multiplexer.wakeup()

    def close(self):
        """Close every connection and release the multiplexer."""
        self._running = False
        self._restore_signals()

        if self._registry is not None:
            for conn in self._registry.clients():
                conn.close()
                self._registry.remove(conn)
            self._registry.listener.close()

        if self._multiplexer is not None:
            self._multiplexer.close()
            self._multiplexer = None

        logger.info("Relay server stopped")

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        """Install SIGINT/SIGTERM handlers that call shutdown()."""
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        # Save original handlers so we can restore them later
        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self) -> "RelayServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
