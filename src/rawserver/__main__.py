"""
=============================================================================
RAWSERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (0.0.0.0:3000, backlog 10)
    python -m rawserver

    # Localhost only, custom port
    python -m rawserver --host 127.0.0.1 --port 8080

    # See request bodies and hex dumps
    python -m rawserver --log-level DEBUG

Environment variables (RAWSERVER_PORT, ...) provide the defaults, command
line arguments override them.

=============================================================================
EXIT STATUS
=============================================================================

    1   socket creation, bind or listen failed, or the configuration
        is invalid

Otherwise the server runs until it is killed (Ctrl+C exits quietly).

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig, setup_logging
from .core import SocketSetupError
from .server import FixedResponseServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rawserver",
        description="Single-connection TCP server that answers every request with a fixed response",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m rawserver                        # 0.0.0.0:3000
  python -m rawserver --port 8080            # Custom port
  python -m rawserver --host 127.0.0.1       # Localhost only
  python -m rawserver --log-level DEBUG      # Dump requests
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Interface to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--backlog", "-b",
        type=int,
        default=defaults.backlog,
        help=f"Listen backlog (default: {defaults.backlog})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTION ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--buffer-size",
        type=int,
        default=defaults.buffer_size,
        help=f"Receive buffer size in bytes (default: {defaults.buffer_size})"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=defaults.receive_timeout,
        help=f"Receive timeout in seconds (default: {defaults.receive_timeout})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"rawserver {__version__}"
    )

    return parser


def main(argv=None):
    """Parse arguments, open the listening socket, serve forever."""
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        sys.exit(1)

    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        backlog=args.backlog,
        buffer_size=args.buffer_size,
        receive_timeout=args.timeout,
        log_level=args.log_level,
    )

    setup_logging(config.log_level)

    # Setup failures are fatal: no retry, no partial server
    try:
        server = FixedResponseServer(config)
    except (SocketSetupError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.launch()
    except KeyboardInterrupt:
        pass
    finally:
        server.close()


if __name__ == "__main__":
    main()
