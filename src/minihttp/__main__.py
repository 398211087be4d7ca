"""
=============================================================================
HTTP SERVER CLI ENTRY POINT
=============================================================================

Command-line interface for running the server.

=============================================================================
USAGE
=============================================================================

    # Run with defaults (all interfaces, port 9999, files from ./public)
    python -m minihttp

    # Custom port
    python -m minihttp --port 8080

    # Only listen on loopback
    python -m minihttp --host 127.0.0.1

    # Smaller worker pool
    python -m minihttp --workers 8

    # Serve files from another directory
    python -m minihttp --public ./site

    # JSON access logs
    python -m minihttp --log-format json

Settings not given on the command line come from the environment
(HTTP_PORT, HTTP_WORKERS, ...; see ServerConfig.from_env), then from
the defaults.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import HTTPServer
from .config import ServerConfig
from .http import HTTPStatus


def register_message_handlers(server: HTTPServer) -> None:
    """
    The /messages endpoints.

    There is no message store behind them yet: listing reports
    404 Not Found, posting reports 503 Service Unavailable.
    """

    @server.get("/messages")
    def list_messages(request, writer):
        writer.write_status_only(HTTPStatus.NOT_FOUND)

    @server.post("/messages")
    def post_message(request, writer):
        writer.write_status_only(HTTPStatus.SERVICE_UNAVAILABLE)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.1 server with allowlisted static files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttp                        # Run with defaults
  python -m minihttp --port 8080            # Custom port
  python -m minihttp --host 127.0.0.1       # Loopback only
  python -m minihttp --workers 8            # 8 worker threads
  python -m minihttp --public ./site        # Another document root
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: all interfaces, IPv6 and IPv4)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 9999)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (default: 64)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--public", "-d",
        default=None,
        help="Document root for static files (default: ./public)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: text)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then any flag given on the command line wins."""
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.workers = args.workers
    if args.public is not None:
        config.public_dir = args.public
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv=None):
    """Parse arguments, build the server, serve until Ctrl+C."""
    args = build_parser().parse_args(argv)

    try:
        server = HTTPServer(config_from_args(args))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    register_message_handlers(server)

    # Blocks until Ctrl+C
    try:
        server.start()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
