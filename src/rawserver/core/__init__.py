"""
=============================================================================
CORE - Socket Layers and the Server Loop
=============================================================================

    sockets.py      SocketHandle → AssociatedSocket → ListeningSocket
    connection.py   Connection (one client) and ReceiveBuffer
    pipeline.py     ConnectionPipeline contract and the SimpleServer loop

=============================================================================
"""

from .sockets import (
    SetupStage,
    SocketSetupError,
    SocketAddress,
    SocketHandle,
    NetworkAssociation,
    Associator,
    BindAssociator,
    ConnectAssociator,
    AssociatedSocket,
    ListeningSocket,
    bind_socket,
    connect_socket,
)
from .connection import Connection, ConnectionState, ReceiveBuffer
from .pipeline import ConnectionPipeline, SimpleServer, LoopStage

__all__ = [
    "SetupStage",
    "SocketSetupError",
    "SocketAddress",
    "SocketHandle",
    "NetworkAssociation",
    "Associator",
    "BindAssociator",
    "ConnectAssociator",
    "AssociatedSocket",
    "ListeningSocket",
    "bind_socket",
    "connect_socket",
    "Connection",
    "ConnectionState",
    "ReceiveBuffer",
    "ConnectionPipeline",
    "SimpleServer",
    "LoopStage",
]
