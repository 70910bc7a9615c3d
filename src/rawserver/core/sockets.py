"""
=============================================================================
SOCKET LAYERS
=============================================================================

This module builds a server socket in explicit stages. Each stage either
succeeds and hands a more capable object to the next one, or raises
SocketSetupError and nothing further happens.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        SOCKET SETUP STAGES                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketHandle.create()      socket()     family/type/protocol      │
    │          │                                                           │
    │          ▼                                                           │
    │   AssociatedSocket.open()    bind()  ──── NetworkAssociation.BIND   │
    │          │                   connect() ── NetworkAssociation.CONNECT│
    │          ▼                                                           │
    │   ListeningSocket.open()     listen()     backlog                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BIND VS CONNECT
=============================================================================

Both steps do the same thing from the socket's point of view: they tie the
descriptor to an address. A server binds (the address is OURS), a client
connects (the address is THEIRS). Instead of a subclass per direction,
the direction is a value:

    AssociatedSocket.open(..., association=NetworkAssociation.BIND)
    AssociatedSocket.open(..., association=NetworkAssociation.CONNECT)

and the matching Associator does the system call.

=============================================================================
FAILURES
=============================================================================

Setup errors are not recoverable at this level. Every stage raises
SocketSetupError with the failing stage and the OSError as __cause__.
Whoever started the server decides what to do with it; the CLI exits
with status 1.

=============================================================================
"""

import socket
import struct
import logging
from abc import ABC, abstractmethod
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union


logger = logging.getLogger(__name__)


class SetupStage(Enum):
    """Where socket setup failed."""
    CREATE = "create"
    BIND = "bind"
    CONNECT = "connect"
    LISTEN = "listen"


class SocketSetupError(Exception):
    """
    Raised when a socket cannot be created, associated or put in listening mode.

    Attributes:
        stage: The SetupStage that failed.
        address: The SocketAddress involved, if one was known.
    """

    def __init__(self, stage: SetupStage, message: str, address: Optional["SocketAddress"] = None):
        super().__init__(f"{stage.value} failed: {message}")
        self.stage = stage
        self.address = address


# =============================================================================
# ADDRESS
# =============================================================================

@dataclass(frozen=True)
class SocketAddress:
    """
    Family, port and interface of a socket endpoint.

    `interface` may be a host string ("0.0.0.0", "127.0.0.1", "::1") or an
    integer IPv4 address in host byte order, like socket.INADDR_ANY.
    Integers are packed in network byte order and turned into a dotted
    string, which is what Python's socket API wants.
    """

    family: int
    port: int
    interface: Union[str, int] = socket.INADDR_ANY

    @property
    def host(self) -> str:
        """The interface as a host string."""
        if isinstance(self.interface, int):
            return socket.inet_ntoa(struct.pack("!I", self.interface))
        return self.interface

    @property
    def sockaddr(self) -> Tuple[str, int]:
        """The (host, port) tuple passed to bind() / connect()."""
        return (self.host, self.port)

    @property
    def packed(self) -> bytes:
        """
        Port and interface in network byte order (sin_port + sin_addr).

            port 3000, interface 0.0.0.0  ->  b"\\x0b\\xb8" + b"\\x00\\x00\\x00\\x00"
        """
        return struct.pack("!H", self.port) + socket.inet_pton(self.family, self.host)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


# =============================================================================
# STAGE 1: SOCKET HANDLE
# =============================================================================

class SocketHandle:
    """
    Owns one OS socket and the address it will be associated with.

    A SocketHandle is only ever returned in a valid state. If the kernel
    refuses to give us a descriptor, create() raises instead.
    """

    def __init__(self, sock: socket.socket, address: SocketAddress):
        self.sock = sock
        self.address = address

    @classmethod
    def create(
        cls,
        family: int,
        sock_type: int,
        protocol: int,
        port: int,
        interface: Union[str, int] = socket.INADDR_ANY,
    ) -> "SocketHandle":
        """
        Create the OS socket and populate its address.

        Args:
            family: Address family, e.g. socket.AF_INET.
            sock_type: Transport type, e.g. socket.SOCK_STREAM.
            protocol: Protocol number, usually 0.
            port: Port number.
            interface: Interface to associate with (host string or int).

        Raises:
            SocketSetupError: stage CREATE, if socket() fails.
        """
        address = SocketAddress(family=family, port=port, interface=interface)

        try:
            sock = socket.socket(family, sock_type, protocol)
        except OSError as e:
            logger.error(f"Failed to create socket: {e}")
            raise SocketSetupError(SetupStage.CREATE, str(e), address) from e

        if sock.fileno() < 0:
            raise SocketSetupError(SetupStage.CREATE, "invalid descriptor", address)

        logger.debug(f"Created socket fd={sock.fileno()} for {address}")
        return cls(sock, address)

    @property
    def descriptor(self) -> int:
        """The OS file descriptor (-1 once closed)."""
        return self.sock.fileno()

    def close(self):
        self.sock.close()


# =============================================================================
# STAGE 2: NETWORK ASSOCIATION
# =============================================================================

class NetworkAssociation(Enum):
    """How a socket is tied to its address."""
    BIND = "bind"        # Server side: claim the local address
    CONNECT = "connect"  # Client side: reach the remote address


class Associator(ABC):
    """Performs one kind of network association on a SocketHandle."""

    stage: SetupStage

    @abstractmethod
    def associate(self, handle: SocketHandle) -> None:
        """Tie handle.sock to handle.address. Raises OSError on failure."""


class BindAssociator(Associator):
    """
    bind(): tell the OS that packets for this IP:PORT belong to us.

    Common errors:
    - Address already in use: another socket is listening on the port
    - Permission denied: ports < 1024 need privileges
    """

    stage = SetupStage.BIND

    def associate(self, handle: SocketHandle) -> None:
        handle.sock.bind(handle.address.sockaddr)


class ConnectAssociator(Associator):
    """connect(): run the TCP handshake with the remote address."""

    stage = SetupStage.CONNECT

    def associate(self, handle: SocketHandle) -> None:
        handle.sock.connect(handle.address.sockaddr)


ASSOCIATORS: Dict[NetworkAssociation, Associator] = {
    NetworkAssociation.BIND: BindAssociator(),
    NetworkAssociation.CONNECT: ConnectAssociator(),
}


class AssociatedSocket:
    """
    A SocketHandle that has been bound or connected.

    Construct it with open(); the constructor itself assumes the
    association already succeeded.
    """

    def __init__(self, handle: SocketHandle, association: NetworkAssociation):
        self.handle = handle
        self.association = association
        self.associated = True

    @classmethod
    def open(
        cls,
        family: int,
        sock_type: int,
        protocol: int,
        port: int,
        interface: Union[str, int] = socket.INADDR_ANY,
        association: NetworkAssociation = NetworkAssociation.BIND,
        reuse_address: bool = False,
        timeout: Optional[float] = None,
    ) -> "AssociatedSocket":
        """
        Create a socket and associate it with its address.

        Args:
            reuse_address: Set SO_REUSEADDR before binding, so a restarted
                server does not trip over connections in TIME_WAIT.
            timeout: Socket timeout applied before connect(). None = blocking.

        Raises:
            SocketSetupError: stage CREATE, BIND or CONNECT.
        """
        handle = SocketHandle.create(family, sock_type, protocol, port, interface)
        associator = ASSOCIATORS[association]

        try:
            if reuse_address:
                handle.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            handle.sock.settimeout(timeout)
            associator.associate(handle)
        except OSError as e:
            logger.error(f"Failed to {association.value} {handle.address}: {e}")
            handle.close()
            raise SocketSetupError(associator.stage, str(e), handle.address) from e

        logger.debug(f"Socket fd={handle.descriptor} {association.value} {handle.address}")
        return cls(handle, association)

    @property
    def sock(self) -> socket.socket:
        return self.handle.sock

    @property
    def address(self) -> SocketAddress:
        return self.handle.address

    @property
    def descriptor(self) -> int:
        return self.handle.descriptor

    def close(self):
        self.handle.close()


def bind_socket(family, sock_type, protocol, port, interface=socket.INADDR_ANY,
                reuse_address: bool = False) -> AssociatedSocket:
    """Create a socket and bind it."""
    return AssociatedSocket.open(
        family, sock_type, protocol, port, interface,
        association=NetworkAssociation.BIND,
        reuse_address=reuse_address,
    )


def connect_socket(family, sock_type, protocol, port, interface,
                   timeout: Optional[float] = None) -> AssociatedSocket:
    """Create a socket and connect it to interface:port."""
    return AssociatedSocket.open(
        family, sock_type, protocol, port, interface,
        association=NetworkAssociation.CONNECT,
        timeout=timeout,
    )


# =============================================================================
# STAGE 3: LISTENING SOCKET
# =============================================================================

class ListeningSocket:
    """
    A bound socket marked passive with a fixed backlog.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   backlog = how many finished handshakes the kernel queues for us   │
    │   before accept() picks them up. Past that, clients are refused.    │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        listener = ListeningSocket.open(socket.AF_INET, socket.SOCK_STREAM,
                                        0, 3000, socket.INADDR_ANY, backlog=10)
        client_sock, client_addr = listener.sock.accept()
    """

    def __init__(self, bound: AssociatedSocket, backlog: int):
        if bound.association is not NetworkAssociation.BIND:
            raise ValueError("Only a bound socket can listen")
        self.bound = bound
        self.backlog = backlog
        self.listening = False

    @classmethod
    def open(
        cls,
        family: int,
        sock_type: int,
        protocol: int,
        port: int,
        interface: Union[str, int],
        backlog: int,
        reuse_address: bool = False,
    ) -> "ListeningSocket":
        """
        Create, bind and listen in one go.

        Raises:
            SocketSetupError: from whichever stage failed.
        """
        bound = bind_socket(family, sock_type, protocol, port, interface,
                            reuse_address=reuse_address)
        listener = cls(bound, backlog)
        listener.start_listening()
        return listener

    def start_listening(self):
        """
        Put the socket in listening state.

        Raises:
            SocketSetupError: stage LISTEN, if listen() fails.
        """
        try:
            self.bound.sock.listen(self.backlog)
        except OSError as e:
            logger.error(f"Failed to listen on {self.address}: {e}")
            self.bound.close()
            raise SocketSetupError(SetupStage.LISTEN, str(e), self.address) from e

        self.listening = True
        logger.info(f"Listening on {self.bound_address[0]}:{self.bound_address[1]} "
                    f"(backlog {self.backlog})")

    @property
    def sock(self) -> socket.socket:
        return self.bound.sock

    @property
    def address(self) -> SocketAddress:
        """The requested address."""
        return self.bound.address

    @property
    def bound_address(self) -> Tuple[str, int]:
        """The address the OS actually assigned (differs when port 0 was asked for)."""
        return self.bound.sock.getsockname()[:2]

    @property
    def descriptor(self) -> int:
        return self.bound.descriptor

    def close(self):
        self.listening = False
        self.bound.close()
