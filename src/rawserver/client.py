"""
=============================================================================
CLIENT HELPER
=============================================================================

A tiny client built from the same socket layers as the server, using the
CONNECT association instead of BIND.

    $ rawserver-client --port 3000 "GET / HTTP/1.1"
    HTTP/1.1 200 OK
    ...

=============================================================================
"""

import argparse
import socket
import sys
import logging

from .core import SocketSetupError, connect_socket


logger = logging.getLogger(__name__)


def send_request(
    host: str,
    port: int,
    payload: bytes,
    timeout: float = 5.0,
    chunk_size: int = 4096,
) -> bytes:
    """
    Connect, send payload, read until the server closes.

    Returns:
        Everything the server sent back.

    Raises:
        SocketSetupError: If the connection cannot be made.
        OSError: On send/receive failure.
    """
    conn = connect_socket(socket.AF_INET, socket.SOCK_STREAM, 0, port, host, timeout=timeout)
    try:
        if payload:
            conn.sock.sendall(payload)

        chunks = []
        while True:
            chunk = conn.sock.recv(chunk_size)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)
    finally:
        conn.close()


def main():
    parser = argparse.ArgumentParser(description="Send one request to a rawserver")
    parser.add_argument("payload", nargs="?", default="GET / HTTP/1.1\r\n\r\n",
                        help="Text to send (default: a bare GET request)")
    parser.add_argument("--host", "-H", default="127.0.0.1")
    parser.add_argument("--port", "-p", type=int, default=3000)
    parser.add_argument("--timeout", "-t", type=float, default=5.0)
    args = parser.parse_args()

    try:
        reply = send_request(args.host, args.port, args.payload.encode(), timeout=args.timeout)
    except SocketSetupError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        # Timeout or reset after the connection was made
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.stdout.write(reply.decode("utf-8", errors="replace"))


if __name__ == "__main__":
    main()
