"""
=============================================================================
CONNECTION PIPELINE AND SERVER LOOP
=============================================================================

The server does the same three things for every client, in order:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         ONE LOOP ITERATION                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   WAIT_CONNECTION                                                    │
    │        │                                                             │
    │        ▼                                                             │
    │   ACCEPTING   pipeline.accept(listener)  ──► None? back to WAIT     │
    │        │                                                             │
    │        ▼                                                             │
    │   HANDLING    pipeline.handle(conn)                                  │
    │        │                                                             │
    │        ▼                                                             │
    │   RESPONDING  pipeline.respond(conn)                                 │
    │        │                                                             │
    │        └──────────────► WAIT_CONNECTION                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

What happens in each stage is the pipeline's business. SimpleServer only
owns the listening socket and runs the stages in order, one connection
at a time. Swapping the pipeline (a test double, a different protocol)
needs no subclassing of the server.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from .connection import Connection
from .sockets import ListeningSocket


logger = logging.getLogger(__name__)


class LoopStage(Enum):
    """Where the server loop currently is."""
    WAIT_CONNECTION = "wait_connection"
    ACCEPTING = "accepting"
    HANDLING = "handling"
    RESPONDING = "responding"


class ConnectionPipeline(ABC):
    """
    The three per-connection stages.

    accept() returns the connection to work on, or None when the
    iteration should be abandoned (accept failed, nothing was read).
    A pipeline that returns None is responsible for having closed
    whatever it opened.
    """

    @abstractmethod
    def accept(self, listener: ListeningSocket) -> Optional[Connection]:
        """Wait for a client and read its request."""

    @abstractmethod
    def handle(self, conn: Connection) -> None:
        """Look at the request."""

    @abstractmethod
    def respond(self, conn: Connection) -> None:
        """Write the response and close the connection."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class SimpleServer:
    """
    Drives a ConnectionPipeline over one listening socket.

    The listening socket is created by the caller, handed over here and
    never replaced. Connections are served strictly one after another:
    the next accept() only starts once respond() for the previous
    connection has returned.

    Usage:
        listener = ListeningSocket.open(...)
        server = SimpleServer(listener, MyPipeline())
        server.launch()  # Never returns
    """

    def __init__(self, listener: ListeningSocket, pipeline: ConnectionPipeline):
        if not listener.listening:
            raise ValueError("SimpleServer needs a socket that is already listening")
        self._listener = listener
        self._pipeline = pipeline
        self.stage = LoopStage.WAIT_CONNECTION
        self.connections_served = 0

    @property
    def listener(self) -> ListeningSocket:
        return self._listener

    @property
    def pipeline(self) -> ConnectionPipeline:
        return self._pipeline

    def serve_once(self) -> bool:
        """
        Run one accept → handle → respond iteration.

        Returns:
            True if a connection went through all three stages.
        """
        self.stage = LoopStage.ACCEPTING
        conn = self._pipeline.accept(self._listener)

        if conn is None:
            self.stage = LoopStage.WAIT_CONNECTION
            return False

        self.stage = LoopStage.HANDLING
        self._pipeline.handle(conn)

        self.stage = LoopStage.RESPONDING
        self._pipeline.respond(conn)

        self.connections_served += 1
        self.stage = LoopStage.WAIT_CONNECTION
        return True

    def launch(self):
        """
        Serve connections forever.

        There is no stop condition: the loop ends only when the process
        is terminated (or an exception escapes the pipeline).
        """
        logger.info(f"Serving with {self._pipeline.name}")
        while True:
            logger.info("=== Waiting for new connection ===")
            if self.serve_once():
                logger.info("=== Connection handled ===")
