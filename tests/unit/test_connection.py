"""
Unit tests for Connection and ReceiveBuffer.
"""

import socket
import pytest

from rawserver.core.connection import Connection, ConnectionState, ReceiveBuffer


@pytest.fixture
def socket_pair():
    """Connected (server side, client side) sockets."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    server_side.close()
    client_side.close()


class TestReceiveBuffer:
    """Tests for ReceiveBuffer."""

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            ReceiveBuffer(0)

    def test_starts_empty(self):
        buffer = ReceiveBuffer(16)
        assert buffer.is_empty
        assert buffer.raw == bytes(16)

    def test_read_from(self, socket_pair):
        server_side, client_side = socket_pair
        buffer = ReceiveBuffer(16)

        client_side.sendall(b"hello")
        count = buffer.read_from(server_side)

        assert count == 5
        assert buffer.size == 5
        assert buffer.contents == b"hello"
        assert not buffer.is_empty

    def test_read_is_capped_at_capacity(self, socket_pair):
        server_side, client_side = socket_pair
        buffer = ReceiveBuffer(4)

        client_side.sendall(b"abcdefgh")

        assert buffer.read_from(server_side) == 4
        assert buffer.contents == b"abcd"

    def test_clear_zeroes_everything(self, socket_pair):
        server_side, client_side = socket_pair
        buffer = ReceiveBuffer(8)
        client_side.sendall(b"xxxxxxxx")
        buffer.read_from(server_side)

        buffer.clear()

        assert buffer.is_empty
        assert buffer.contents == b""
        assert buffer.raw == bytes(8)

    def test_hex_preview_limit(self, socket_pair):
        server_side, client_side = socket_pair
        buffer = ReceiveBuffer(64)
        client_side.sendall(b"\x01\x02\x03")
        buffer.read_from(server_side)

        assert buffer.hex_preview() == "01 02 03"
        assert buffer.hex_preview(limit=2) == "01 02"


class TestConnection:
    """Tests for Connection."""

    def test_initial_state(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 5555))

        assert conn.state == ConnectionState.ACCEPTED
        assert conn.client_ip == "127.0.0.1"
        assert conn.client_port == 5555
        assert len(conn.id) == 8

    def test_receive_and_send(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))
        buffer = ReceiveBuffer(32)

        client_side.sendall(b"ping")
        assert conn.receive_into(buffer) == 4
        assert conn.state == ConnectionState.RECEIVED

        conn.send(b"pong")
        assert conn.state == ConnectionState.RESPONDED
        assert client_side.recv(4) == b"pong"

    def test_zero_byte_read_keeps_state(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))

        client_side.shutdown(socket.SHUT_WR)

        assert conn.receive_into(ReceiveBuffer(8)) == 0
        assert conn.state == ConnectionState.ACCEPTED

    def test_receive_timeout(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))
        conn.set_receive_timeout(0.05)

        with pytest.raises(socket.timeout):
            conn.receive_into(ReceiveBuffer(8))

    def test_close_signals_eof(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))

        conn.close()

        assert conn.closed
        assert server_side.fileno() == -1
        assert client_side.recv(1) == b""

    def test_close_is_idempotent(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))

        conn.close()
        conn.close()

        assert conn.state == ConnectionState.CLOSED

    def test_context_manager_closes(self, socket_pair):
        server_side, _ = socket_pair

        with Connection(socket=server_side, address=("127.0.0.1", 1)) as conn:
            assert not conn.closed

        assert conn.closed
