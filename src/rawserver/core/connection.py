"""
=============================================================================
CONNECTION AND RECEIVE BUFFER
=============================================================================

One accepted client, one read, one write, one close.

    accept() ──► Connection(ACCEPTED)
                     │
                     ├──► receive_into(buffer)   ──► RECEIVED
                     ├──► send(response)         ──► RESPONDED
                     └──► close()                ──► CLOSED

The server reads each request with a SINGLE recv() into a fixed-size
buffer. TCP is a byte stream, so a large request may arrive in pieces and
only the first piece is seen. That is fine here: the response does not
depend on the request.

The buffer is allocated once and reused for every connection. It is
zero-filled before each read so bytes from the previous client can never
leak into the next one.

=============================================================================
"""

import socket
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    ACCEPTED = "accepted"    # Returned by accept(), nothing read yet
    RECEIVED = "received"    # Request bytes are in the buffer
    RESPONDED = "responded"  # Response written
    CLOSED = "closed"        # Socket released


class ReceiveBuffer:
    """
    Fixed-capacity byte buffer reused across connections.

    Attributes:
        capacity: Maximum bytes one read can return.
        size: Bytes received by the last read.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        self.capacity = capacity
        self.size = 0
        self._data = bytearray(capacity)

    def clear(self):
        """Zero every byte and forget the last read."""
        self._data[:] = bytes(self.capacity)
        self.size = 0

    def read_from(self, sock: socket.socket) -> int:
        """
        One recv_into() up to capacity.

        Returns:
            Number of bytes read. 0 means the peer closed without sending.

        Raises:
            OSError: On receive failure, including socket.timeout.
        """
        self.size = sock.recv_into(self._data, self.capacity)
        return self.size

    @property
    def contents(self) -> bytes:
        """The bytes received by the last read."""
        return bytes(self._data[:self.size])

    @property
    def raw(self) -> bytes:
        """The whole buffer, including the zeroed tail."""
        return bytes(self._data)

    @property
    def is_empty(self) -> bool:
        return self.size == 0

    def hex_preview(self, limit: int = 50) -> str:
        """First `limit` received bytes as space separated hex."""
        return self._data[:min(self.size, limit)].hex(" ")


@dataclass
class Connection:
    """
    A client socket returned by accept().

    The connection exclusively owns its socket. Whatever happens during
    the iteration, close() must be called before the next accept().

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier for log lines.
        state: Current ConnectionState.
    """

    socket: socket.socket
    address: Tuple[str, int]
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.ACCEPTED

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def set_receive_timeout(self, timeout: Optional[float]):
        """Bound how long the next read may block. None = block forever."""
        self.socket.settimeout(timeout)

    def receive_into(self, buffer: ReceiveBuffer) -> int:
        """
        Read once from the socket into buffer.

        Returns:
            Bytes read (0 = peer closed).

        Raises:
            OSError: On receive failure or timeout.
        """
        count = buffer.read_from(self.socket)
        if count:
            self.state = ConnectionState.RECEIVED
        return count

    def send(self, data: bytes):
        """
        Send all of data.

        sendall() keeps calling send() until every byte is out, so a
        partial write never reaches the caller.

        Raises:
            OSError: If the client went away.
        """
        self.socket.sendall(data)
        self.state = ConnectionState.RESPONDED

    def close(self, shutdown: bool = True):
        """
        Release the socket.

        With shutdown=True both directions are shut down first (FIN to the
        client), so a client reading after the response sees EOF at once.
        """
        if self.closed:
            return

        if shutdown:
            try:
                self.socket.shutdown(socket.SHUT_RDWR)
            except OSError as e:
                # Peer already gone
                logger.debug(f"[{self.id}] shutdown: {e}")

        self.socket.close()
        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
