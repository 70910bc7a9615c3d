"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, List
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rawserver import FixedResponseServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /hello HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def config() -> ServerConfig:
    """Test configuration: localhost, OS-picked port, short timeout."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        backlog=5,
        buffer_size=1024,
        receive_timeout=1.0,
        log_level="DEBUG",
    )


class BackgroundServer:
    """
    Runs serve_once() a fixed number of times in a background thread.

    The real loop never ends, so tests decide up front how many
    iterations they need and join the thread afterwards.
    """

    def __init__(self, server: FixedResponseServer):
        self.server = server
        self.results: List[bool] = []
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.port

    def serve(self, iterations: int):
        def run():
            for _ in range(iterations):
                self.results.append(self.server.serve_once())

        self._thread = threading.Thread(target=run, daemon=True)
        self._thread.start()

    def join(self, timeout: float = 5.0):
        self._thread.join(timeout)
        assert not self._thread.is_alive(), "server thread did not finish"


@pytest.fixture
def background_server(config: ServerConfig) -> Generator[BackgroundServer, None, None]:
    """A listening FixedResponseServer on a free localhost port."""
    server = FixedResponseServer(config)
    yield BackgroundServer(server)
    server.close()


class Client:
    """Plain client sockets to localhost, closed at teardown."""

    def __init__(self):
        self._sockets: List[socket.socket] = []

    def connect(self, port: int, timeout: float = 5.0) -> socket.socket:
        sock = socket.create_connection(("127.0.0.1", port), timeout=timeout)
        self._sockets.append(sock)
        return sock

    @staticmethod
    def read_all(sock: socket.socket) -> bytes:
        """Read until the peer closes."""
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def close_all(self):
        for sock in self._sockets:
            sock.close()


@pytest.fixture
def client() -> Generator[Client, None, None]:
    c = Client()
    yield c
    c.close_all()
