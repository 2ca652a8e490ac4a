"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import Generator, List, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from relayserver import RelayServer, RelayConfig
from relayserver.core import (
    AddressFamily,
    Connection,
    ConnectionRegistry,
    RemoteAddress,
    open_listener,
)


# =============================================================================
# HELPERS
# =============================================================================

def make_client(port: int = 40000) -> Tuple[Connection, socket.socket]:
    """
    Build a registered-style client without a real accept().

    Returns:
        (server-side Connection, the peer socket a test reads and writes)
    """
    server_end, peer_end = socket.socketpair()
    peer_end.settimeout(2.0)
    conn = Connection(
        socket=server_end,
        address=RemoteAddress(AddressFamily.IPV4, "127.0.0.1", port),
    )
    return conn, peer_end


def recv_exactly(sock: socket.socket, size: int) -> bytes:
    """Read exactly ``size`` bytes or fail on timeout/EOF."""
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            raise ConnectionError(f"EOF after {len(data)} of {size} bytes")
        data += chunk
    return data


def assert_nothing_received(sock: socket.socket, wait: float = 0.2):
    """Assert that no bytes arrive on ``sock`` within ``wait`` seconds."""
    previous = sock.gettimeout()
    sock.settimeout(wait)
    try:
        data = sock.recv(4096)
    except socket.timeout:
        return
    finally:
        sock.settimeout(previous)
    raise AssertionError(f"Unexpected data received: {data!r}")


class FakeSocket:
    """
    Stand-in socket whose recv/send/accept behavior is scripted.

    fileno() returns a high number no real descriptor in the test process
    will collide with.
    """

    _next_fd = 10_000

    def __init__(self, recv_error=None, send_error=None, accept_error=None, send_limit=None):
        FakeSocket._next_fd += 1
        self._fd = FakeSocket._next_fd
        self.recv_error = recv_error
        self.send_error = send_error
        self.accept_error = accept_error
        self.send_limit = send_limit
        self.sent: List[bytes] = []
        self.closed = False

    def fileno(self) -> int:
        return -1 if self.closed else self._fd

    def recv(self, size: int) -> bytes:
        if self.recv_error:
            raise self.recv_error
        return b""

    def send(self, data: bytes) -> int:
        if self.send_error:
            raise self.send_error
        if self.send_limit is not None:
            data = data[:self.send_limit]
        self.sent.append(bytes(data))
        return len(data)

    def sendall(self, data: bytes) -> None:
        if self.send_error:
            raise self.send_error
        self.sent.append(bytes(data))

    def accept(self):
        raise self.accept_error or BlockingIOError()

    def close(self):
        self.closed = True


class ServerThread:
    """Relay server running its loop in a background thread."""

    def __init__(self, server: RelayServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Bind, then run the loop in a daemon thread."""
        self.server.start()
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

    def stop(self):
        """Stop the loop and release every socket."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        self.server.close()

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def client_count(self) -> int:
        # len() of the registry is a single dict length read
        return len(self.server.registry) - 1

    def wait_for_clients(self, count: int, timeout: float = 5.0):
        """Block until the server has registered exactly ``count`` clients."""
        deadline = time.time() + timeout
        while time.time() < deadline:
            if self.client_count() == count:
                return
            time.sleep(0.01)
        raise AssertionError(f"Expected {count} clients, have {self.client_count()}")

    def connect(self) -> socket.socket:
        """Open a client connection and wait until the server has accepted it."""
        expected = self.client_count() + 1
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=2.0)
        self.wait_for_clients(expected)
        return sock


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def config() -> RelayConfig:
    """Loopback configuration on an OS-assigned port."""
    return RelayConfig(host="127.0.0.1", port=0, log_level="WARNING")


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def listener(config: RelayConfig) -> Generator[Connection, None, None]:
    """A real listening Connection on 127.0.0.1."""
    conn = open_listener(config)
    yield conn
    conn.close()


@pytest.fixture
def registry(listener: Connection) -> ConnectionRegistry:
    """Registry holding only the listener."""
    return ConnectionRegistry(listener)


@pytest.fixture
def clients(registry: ConnectionRegistry) -> Generator[List[Tuple[Connection, socket.socket]], None, None]:
    """Three registered clients (c1, c2, c3) backed by socket pairs."""
    pairs = [make_client(40001 + i) for i in range(3)]
    for conn, _peer in pairs:
        registry.add(conn)

    yield pairs

    for conn, peer in pairs:
        conn.close()
        peer.close()


@pytest.fixture
def running_server(config: RelayConfig) -> Generator[ServerThread, None, None]:
    """A relay server serving on 127.0.0.1 in a background thread."""
    server_thread = ServerThread(RelayServer(config))
    server_thread.start()

    yield server_thread

    server_thread.stop()
