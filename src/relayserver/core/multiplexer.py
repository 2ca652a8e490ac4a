"""
=============================================================================
READINESS MULTIPLEXER
=============================================================================

One thread, many sockets. Instead of a thread blocked in recv() per client,
the relay asks the OS a single question:

    "Of all these sockets, which ones have something for me to read?"

and sleeps until the answer is "at least one".

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         wait(snapshot)                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   snapshot:  listener(3)  c(5)  c(6)  c(9)                          │
    │                  │          │     │     │                            │
    │                  ▼          ▼     ▼     ▼                            │
    │            ┌───────────────────────────────────┐                    │
    │            │   selector.select()  (BLOCKS)     │                    │
    │            └───────────────────────────────────┘                    │
    │                  │                │                                  │
    │                  ▼                ▼                                  │
    │   ready:     listener(3)        c(6)                                │
    │              (pending accept)   (bytes to read, or EOF)             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY selectors?
=============================================================================

select() scans every descriptor up to the highest one on every call and
cannot go past FD_SETSIZE. selectors.DefaultSelector picks the best
mechanism the platform has (epoll on Linux, kqueue on BSD/macOS) and
falls back to select() elsewhere.

Registrations are kept in sync with the registry snapshot on each wait:
new handles are registered, departed handles dropped. A handle number the
OS reused for a freshly accepted socket is registered again for the new
connection.

=============================================================================
WAKING A BLOCKED WAIT
=============================================================================

The wait has no timeout. To stop the loop from a signal handler or
another thread, wakeup() writes one byte into a socketpair whose read end
is always registered. The wait returns, the byte is drained, and the wake
channel never shows up in the ready list.

=============================================================================
"""

import socket
import logging
import selectors
from typing import Callable, Dict, Iterable, List, Optional

from .connection import Connection
from ..errors import PollError


logger = logging.getLogger(__name__)


class ReadinessMultiplexer:
    """
    Blocks until registered connections are readable.

    Usage:
        mux = ReadinessMultiplexer()
        ready = mux.wait(registry.all())   # sleeps here
        ...
        mux.close()
    """

    def __init__(
        self,
        selector_factory: Callable[[], selectors.BaseSelector] = selectors.DefaultSelector,
    ):
        """
        Args:
            selector_factory: Builds the underlying selector.
        """
        self._selector = selector_factory()
        self._registered: Dict[int, Connection] = {}

        self._wake_reader, self._wake_writer = socket.socketpair()
        self._wake_reader.setblocking(False)
        self._wake_writer.setblocking(False)
        self._selector.register(self._wake_reader, selectors.EVENT_READ, data=None)

    def wait(
        self,
        connections: Iterable[Connection],
        timeout: Optional[float] = None,
    ) -> List[Connection]:
        """
        Block until at least one connection is readable.

        Args:
            connections: The registry snapshot to watch.
            timeout: Seconds to wait. None blocks until something is ready
                     or wakeup() is called.

        Returns:
            The ready connections, by ascending handle. Empty if the wait
            was woken or timed out with nothing ready.

        Raises:
            PollError: If the underlying wait primitive fails.
        """
        self._sync(connections)

        try:
            events = self._selector.select(timeout)
        except (OSError, ValueError) as e:
            raise PollError(f"select: {e}") from e

        ready = []
        for key, _mask in events:
            if key.data is None:
                self._drain_wakeup()
                continue
            ready.append(key.data)

        ready.sort(key=lambda conn: conn.handle)
        return ready

    def wakeup(self):
        """
        Make a blocked wait() return. Safe from signal handlers and other
        threads.
        """
        try:
            self._wake_writer.send(b"\0")
        except BlockingIOError:
            pass  # Buffer full, a wakeup is already pending
        except OSError as e:
            logger.debug(f"Wakeup failed: {e}")

    def close(self):
        """Release the selector and the wake channel."""
        self._selector.close()
        self._registered.clear()
        self._wake_reader.close()
        self._wake_writer.close()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _sync(self, connections: Iterable[Connection]):
        """Bring the selector's registrations in line with the snapshot."""
        wanted = {conn.handle: conn for conn in connections}

        for handle, conn in list(self._registered.items()):
            if wanted.get(handle) is not conn:
                self._unregister(handle)

        for handle, conn in wanted.items():
            if handle not in self._registered:
                self._selector.register(handle, selectors.EVENT_READ, data=conn)
                self._registered[handle] = conn

    def _unregister(self, handle: int):
        del self._registered[handle]
        try:
            self._selector.unregister(handle)
        except (KeyError, ValueError):
            pass

    def _drain_wakeup(self):
        try:
            while self._wake_reader.recv(4096):
                pass
        except BlockingIOError:
            pass
