"""
=============================================================================
RAWSERVER - A Single-Connection TCP Server on Raw Sockets
=============================================================================

The smallest useful server: socket, bind, listen, then accept → read →
respond → close, one client at a time, forever.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    rawserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m rawserver)
    ├── config.py            # ServerConfig dataclass, logging setup
    ├── server.py            # FixedResponsePipeline, FixedResponseServer
    ├── client.py            # send_request() over a connected socket
    └── core/
        ├── sockets.py       # SocketHandle → AssociatedSocket → ListeningSocket
        ├── connection.py    # Connection wrapper, ReceiveBuffer
        └── pipeline.py      # ConnectionPipeline contract, SimpleServer loop

=============================================================================
QUICK START
=============================================================================

    from rawserver import FixedResponseServer, ServerConfig

    server = FixedResponseServer(ServerConfig(port=3000))
    server.launch()  # Blocks forever

Or plug in your own stages:

    from rawserver.core import ConnectionPipeline, ListeningSocket, SimpleServer

    class EchoPipeline(ConnectionPipeline):
        ...

    SimpleServer(ListeningSocket.open(...), EchoPipeline()).launch()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .core import SocketSetupError, SimpleServer, ConnectionPipeline
from .server import FixedResponseServer, FixedResponsePipeline, FIXED_RESPONSE

__all__ = [
    "ServerConfig",
    "SocketSetupError",
    "SimpleServer",
    "ConnectionPipeline",
    "FixedResponseServer",
    "FixedResponsePipeline",
    "FIXED_RESPONSE",
    "__version__",
]
