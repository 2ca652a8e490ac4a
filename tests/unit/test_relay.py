"""
Unit tests for the relay handler.

Clients are socket pairs: the server-side end is wrapped in a Connection
and registered, the peer end plays the remote client.
"""

import pytest

from relayserver.core import Connection, ConnectionState
from relayserver.handlers import broadcast, relay_from

from conftest import FakeSocket, assert_nothing_received, make_client, recv_exactly


class TestBroadcast:
    """A fragment reaches every other client and never the sender."""

    def test_hello_reaches_everyone_but_sender(self, registry, clients):
        (c1, p1), (c2, p2), (c3, p3) = clients

        p1.sendall(b"hello")
        result = relay_from(registry, c1)

        assert result.data == b"hello"
        assert not result.closed
        assert recv_exactly(p2, 5) == b"hello"
        assert recv_exactly(p3, 5) == b"hello"
        assert_nothing_received(p1)

    def test_delivery_follows_handle_order(self, registry, clients):
        (c1, p1), (c2, _), (c3, _) = clients

        p1.sendall(b"x")
        result = relay_from(registry, c1)

        handles = [conn.handle for conn in result.delivered]
        assert handles == sorted(handles)
        assert set(result.delivered) == {c2, c3}

    def test_listener_never_written(self, registry, clients):
        (c1, p1), _, _ = clients

        p1.sendall(b"ping")
        result = relay_from(registry, c1)

        assert registry.listener not in result.delivered
        assert registry.listener in registry

    def test_single_client_sends_to_nobody(self, registry):
        conn, peer = make_client()
        registry.add(conn)

        peer.sendall(b"alone")
        result = relay_from(registry, conn)

        assert result.data == b"alone"
        assert result.delivered == []
        assert_nothing_received(peer)
        conn.close()
        peer.close()


class TestFragmentation:
    """Reads are capped at the buffer size; fragments keep byte order."""

    def test_exactly_256_bytes_is_one_fragment(self, registry, clients):
        (c1, p1), (_, p2), (_, p3) = clients
        payload = bytes(range(256))

        p1.sendall(payload)
        result = relay_from(registry, c1)

        assert len(result.data) == 256
        assert recv_exactly(p2, 256) == payload
        assert recv_exactly(p3, 256) == payload

    def test_300_bytes_is_two_fragments(self, registry, clients):
        (c1, p1), (_, p2), (_, p3) = clients
        payload = bytes(i % 251 for i in range(300))

        p1.sendall(payload)
        first = relay_from(registry, c1)
        second = relay_from(registry, c1)

        assert len(first.data) == 256
        assert len(second.data) == 44
        assert first.data + second.data == payload
        assert recv_exactly(p2, 300) == payload
        assert recv_exactly(p3, 300) == payload

    def test_custom_buffer_size(self, registry, clients):
        (c1, p1), (_, p2), _ = clients

        p1.sendall(b"abcdef")
        result = relay_from(registry, c1, buffer_size=4)

        assert result.data == b"abcd"
        assert recv_exactly(p2, 4) == b"abcd"


class TestTeardown:
    """End-of-stream and read errors close and deregister the sender."""

    def test_hang_up_removes_sender(self, registry, clients):
        (c1, p1), (c2, p2), _ = clients

        p2.close()
        result = relay_from(registry, c2)

        assert result.closed
        assert result.data == b""
        assert c2.state is ConnectionState.CLOSED
        assert c2 not in registry
        assert_nothing_received(p1)

    def test_read_error_removes_sender(self, registry, clients):
        conn = Connection(socket=FakeSocket(recv_error=ConnectionResetError("reset")))
        registry.add(conn)

        result = relay_from(registry, conn)

        assert result.closed
        assert conn.state is ConnectionState.CLOSED
        assert conn not in registry

    def test_hang_up_and_error_log_differently(self, registry, caplog):
        hung_up = Connection(socket=FakeSocket())
        broken = Connection(socket=FakeSocket(recv_error=OSError("boom")))
        registry.add(hung_up)
        registry.add(broken)

        with caplog.at_level("INFO", logger="relayserver"):
            relay_from(registry, hung_up)
            relay_from(registry, broken)

        levels = {r.getMessage(): r.levelname for r in caplog.records}
        assert levels[f"server: socket {hung_up.handle} hung up"] == "INFO"
        assert any(level == "ERROR" and "boom" in message for message, level in levels.items())

    def test_closed_client_gets_no_later_broadcast(self, registry, clients):
        (c1, p1), (c2, p2), (c3, p3) = clients

        p2.close()
        relay_from(registry, c2)

        p1.sendall(b"bye")
        result = relay_from(registry, c1)

        assert result.delivered == [c3]
        assert recv_exactly(p3, 3) == b"bye"


class TestWriteFailures:
    """A failing recipient is skipped, logged, and left registered."""

    def test_failure_does_not_stop_delivery(self, registry, clients):
        (c1, p1), (_, p2), (_, p3) = clients
        broken = Connection(socket=FakeSocket(send_error=BrokenPipeError("gone")))
        registry.add(broken)

        p1.sendall(b"still here")
        result = relay_from(registry, c1)

        assert result.failed == [broken]
        assert recv_exactly(p2, 10) == b"still here"
        assert recv_exactly(p3, 10) == b"still here"

    def test_failing_recipient_stays_open(self, registry, clients):
        (c1, p1), _, _ = clients
        broken = Connection(socket=FakeSocket(send_error=OSError("nope")))
        registry.add(broken)

        p1.sendall(b"x")
        relay_from(registry, c1)

        assert broken in registry
        assert broken.state is ConnectionState.OPEN

    def test_short_write_counts_as_delivered(self, registry):
        sender = Connection(socket=FakeSocket())
        slow_socket = FakeSocket(send_limit=2)
        slow = Connection(socket=slow_socket)
        registry.add(sender)
        registry.add(slow)

        result = broadcast(registry, sender, b"hello")

        assert result.delivered == [slow]
        assert slow_socket.sent == [b"he"]

    def test_send_all_writes_whole_fragment(self, registry):
        sender = Connection(socket=FakeSocket())
        slow_socket = FakeSocket(send_limit=2)
        slow = Connection(socket=slow_socket)
        registry.add(sender)
        registry.add(slow)

        result = broadcast(registry, sender, b"hello", send_all=True)

        assert result.delivered == [slow]
        assert slow_socket.sent == [b"hello"]


@pytest.mark.parametrize("size", [1, 255, 256])
def test_fragment_is_forwarded_unchanged(registry, clients, size):
    (c1, p1), (_, p2), _ = clients
    payload = bytes((i * 7) % 256 for i in range(size))

    p1.sendall(payload)
    relay_from(registry, c1)

    assert recv_exactly(p2, size) == payload
