"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All knobs of the server in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m rawserver --port 3000                            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── RAWSERVER_PORT=3000 python -m rawserver                    │
    │                                                                      │
    │   3. Defaults (below)                                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Values are validated once, at startup. A bad port should stop the
process before any socket exists, not show up as a bind error.

=============================================================================
"""

import os
import socket
import logging
from dataclasses import dataclass
from typing import Optional


DEFAULT_PORT = 3000
DEFAULT_BACKLOG = 10
DEFAULT_BUFFER_SIZE = 30000
DEFAULT_RECEIVE_TIMEOUT = 5.0

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class ServerConfig:
    """
    Configuration for the server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    SOCKET
    - family, sock_type, protocol, host, port, backlog, reuse_address

    CONNECTION
    - buffer_size, receive_timeout

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # SOCKET SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    Interface to bind to.
    - "0.0.0.0" - Every interface (INADDR_ANY)
    - "127.0.0.1" - Localhost only
    """

    port: int = DEFAULT_PORT
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = DEFAULT_BACKLOG
    """Pending connections the kernel queues before refusing new ones."""

    family: int = socket.AF_INET
    sock_type: int = socket.SOCK_STREAM
    protocol: int = 0

    reuse_address: bool = True
    """Set SO_REUSEADDR so a restart does not fail on TIME_WAIT sockets."""

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTION SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = DEFAULT_BUFFER_SIZE
    """Receive buffer capacity in bytes. One read per connection."""

    receive_timeout: Optional[float] = DEFAULT_RECEIVE_TIMEOUT
    """
    Seconds a read on an accepted socket may block.
    None = block forever (a silent client then stalls the whole server).
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG also dumps request bodies and hex previews."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        RAWSERVER_HOST          Interface (default: 0.0.0.0)
        RAWSERVER_PORT          Port (default: 3000)
        RAWSERVER_BACKLOG       Listen backlog (default: 10)
        RAWSERVER_BUFFER_SIZE   Receive buffer bytes (default: 30000)
        RAWSERVER_TIMEOUT       Receive timeout seconds (default: 5)
        RAWSERVER_LOG_LEVEL     Logging level (default: INFO)
        """
        return cls(
            host=os.getenv("RAWSERVER_HOST", "0.0.0.0"),
            port=int(os.getenv("RAWSERVER_PORT", str(DEFAULT_PORT))),
            backlog=int(os.getenv("RAWSERVER_BACKLOG", str(DEFAULT_BACKLOG))),
            buffer_size=int(os.getenv("RAWSERVER_BUFFER_SIZE", str(DEFAULT_BUFFER_SIZE))),
            receive_timeout=float(os.getenv("RAWSERVER_TIMEOUT", str(DEFAULT_RECEIVE_TIMEOUT))),
            log_level=os.getenv("RAWSERVER_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid value.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 0:
            raise ValueError("backlog must be >= 0")

        if self.buffer_size <= 0:
            raise ValueError("buffer_size must be > 0")

        if self.receive_timeout is not None and self.receive_timeout <= 0:
            raise ValueError("receive_timeout must be > 0")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {self.log_level}")


def setup_logging(level: str = "INFO"):
    """Configure console logging for the rawserver loggers."""
    numeric = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )

    logging.getLogger("rawserver").setLevel(numeric)
