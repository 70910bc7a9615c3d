"""
=============================================================================
FIXED-RESPONSE SERVER
=============================================================================

The one concrete server: whatever the client sends, it answers with the
same HTTP-shaped bytes and hangs up.

    $ curl -v http://localhost:3000/anything
    < HTTP/1.1 200 OK
    < Content-Type: text/plain
    < Connection: close
    < Content-Length: 19
    <
    Hello from Server!

=============================================================================
FAILURE POLICY
=============================================================================

    ┌──────────────────────────┬────────────────────────────────────────┐
    │ What failed              │ What happens                           │
    ├──────────────────────────┼────────────────────────────────────────┤
    │ socket / bind / listen   │ SocketSetupError from the constructor  │
    │ accept()                 │ logged, iteration skipped              │
    │ recv() error / timeout   │ logged, connection closed, skipped     │
    │ recv() returns 0 bytes   │ logged, connection closed, skipped     │
    │ sendall()                │ logged, connection still closed        │
    └──────────────────────────┴────────────────────────────────────────┘

One bad client never affects the next one.

=============================================================================
"""

import socket
import logging
from typing import Optional

from .config import ServerConfig
from .core import (
    Connection,
    ConnectionPipeline,
    ListeningSocket,
    ReceiveBuffer,
    SimpleServer,
)


logger = logging.getLogger(__name__)


FIXED_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/plain\r\n"
    b"Connection: close\r\n"
    b"Content-Length: 19\r\n"
    b"\r\n"
    b"Hello from Server!\r\n"
)


class FixedResponsePipeline(ConnectionPipeline):
    """
    accept/handle/respond with a reusable buffer and a canned response.

    Args:
        buffer_size: Receive buffer capacity.
        receive_timeout: Seconds a read may block on an accepted socket.
        response: Bytes written to every client.
    """

    def __init__(
        self,
        buffer_size: int = 30000,
        receive_timeout: Optional[float] = 5.0,
        response: bytes = FIXED_RESPONSE,
    ):
        self.buffer = ReceiveBuffer(buffer_size)
        self.receive_timeout = receive_timeout
        self.response = response

    def accept(self, listener: ListeningSocket) -> Optional[Connection]:
        """
        Block until a client connects, then read its request once.

        The listening socket has no timeout: this is where the server
        sits between clients.
        """
        logger.info("Attempting to accept connection...")
        try:
            client_socket, client_address = listener.sock.accept()
        except OSError as e:
            logger.error(f"Accept failed: {e}")
            return None

        conn = Connection(socket=client_socket, address=client_address)
        logger.info(f"[{conn.id}] Connection accepted from "
                    f"{conn.client_ip}:{conn.client_port} (fd {client_socket.fileno()})")

        self.buffer.clear()
        conn.set_receive_timeout(self.receive_timeout)

        try:
            count = conn.receive_into(self.buffer)
        except socket.timeout:
            logger.warning(f"[{conn.id}] Read timed out after {self.receive_timeout}s")
            conn.close(shutdown=False)
            return None
        except OSError as e:
            logger.error(f"[{conn.id}] Read failed: {e}")
            conn.close(shutdown=False)
            return None

        if count == 0:
            logger.warning(f"[{conn.id}] Client closed connection before sending data")
            conn.close(shutdown=False)
            return None

        logger.info(f"[{conn.id}] Bytes read: {count}")
        logger.debug(f"[{conn.id}] Raw received data (hex): {self.buffer.hex_preview()}")
        return conn

    def handle(self, conn: Connection) -> None:
        """Log what the client sent. The request is never parsed."""
        if self.buffer.is_empty:
            logger.info(f"[{conn.id}] Empty request received")
            return

        logger.info(f"[{conn.id}] Received request ({self.buffer.size} bytes)")
        logger.debug(
            f"[{conn.id}] --- Begin Request ---\n"
            f"{self.buffer.contents.decode('utf-8', errors='replace')}\n"
            f"--- End Request ---"
        )

    def respond(self, conn: Connection) -> None:
        """Write the fixed response, then shut down and close the socket."""
        try:
            conn.send(self.response)
        except OSError as e:
            logger.error(f"[{conn.id}] Failed to send response: {e}")
        else:
            logger.info(f"[{conn.id}] Sent {len(self.response)} bytes as response")
        finally:
            conn.close()


class FixedResponseServer(SimpleServer):
    """
    SimpleServer wired to a FixedResponsePipeline from a ServerConfig.

    Construction opens the listening socket, so a SocketSetupError
    surfaces here, before launch() is ever called.

    Usage:
        server = FixedResponseServer(ServerConfig(port=3000))
        server.launch()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        listener = ListeningSocket.open(
            self.config.family,
            self.config.sock_type,
            self.config.protocol,
            self.config.port,
            self.config.host,
            self.config.backlog,
            reuse_address=self.config.reuse_address,
        )
        pipeline = FixedResponsePipeline(
            buffer_size=self.config.buffer_size,
            receive_timeout=self.config.receive_timeout,
        )
        super().__init__(listener, pipeline)

    @property
    def port(self) -> int:
        """The port actually listened on."""
        return self.listener.bound_address[1]

    def close(self):
        """Release the listening socket."""
        self.listener.close()
