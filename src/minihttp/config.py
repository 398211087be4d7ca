"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables in one dataclass, with three ways to fill it in:

    1. Defaults           ServerConfig()
    2. Environment        ServerConfig.from_env()     (containers, 12-factor)
    3. Command line       python -m minihttp --port 8080 --workers 16

Whatever the source, validate() runs before the server starts. Bad
values fail at startup with a clear message instead of surfacing later
as a confusing runtime error.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


# Files the server is willing to serve from the document root. Anything
# else is a 404, even if it exists on disk.
DEFAULT_STATIC_PATHS: Tuple[str, ...] = (
    "/index.html",
    "/spring.svg",
    "/spring.png",
    "/resources.html",
    "/styles.css",
    "/app.js",
    "/links.html",
    "/forms.html",
    "/classic.html",
    "/events.html",
    "/events.js",
)

# Served with "{time}" replaced by the current time on every request.
DEFAULT_TEMPLATED_PATHS: Tuple[str, ...] = ("/classic.html",)

LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK      host, port, backlog, buffer_size, timeout
    CONCURRENCY  workers
    HTTP         max_request_line
    STATIC FILES public_dir, static_paths, templated_paths
    LOGGING      log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = ""
    """
    Address to bind. "" (the default) listens on every interface, IPv6
    and IPv4 where the OS supports dual-stack sockets. "0.0.0.0" is IPv4
    only.
    """

    port: int = 9999
    """TCP port. 0 lets the OS pick a free one (handy in tests)."""

    backlog: int = 128
    """Kernel accept queue length before new connections are refused."""

    buffer_size: int = 8192
    """Buffer size of each connection's read and write streams."""

    timeout: Optional[float] = None
    """
    Socket timeout for client reads and writes, in seconds.

    None (the default) means no timeout: a client that never sends its
    request line holds a worker until it disconnects. Set this when the
    server faces untrusted clients.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 64
    """Worker threads: the maximum number of connections handled at once."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_request_line: int = 8192
    """Longest request line accepted, in bytes. Longer lines get a 400."""

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    public_dir: str = "public"
    """Document root for static files, relative to the working directory."""

    static_paths: Tuple[str, ...] = field(default=DEFAULT_STATIC_PATHS)
    """Allowlist of servable paths under public_dir."""

    templated_paths: Tuple[str, ...] = field(default=DEFAULT_TEMPLATED_PATHS)
    """Allowlisted paths whose "{time}" marker is filled in per request."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: 'text' (one line per request) or 'json'."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST        Bind address        (default: all interfaces)
        HTTP_PORT        Port                (default: 9999)
        HTTP_WORKERS     Worker threads      (default: 64)
        HTTP_TIMEOUT     Socket timeout, s   (default: none)
        HTTP_PUBLIC_DIR  Document root       (default: public)
        HTTP_LOG_LEVEL   Logging level       (default: INFO)
        HTTP_LOG_FORMAT  text or json        (default: text)

        =====================================================================
        """
        timeout = os.getenv("HTTP_TIMEOUT")
        return cls(
            host=os.getenv("HTTP_HOST", ""),
            port=int(os.getenv("HTTP_PORT", "9999")),
            workers=int(os.getenv("HTTP_WORKERS", "64")),
            timeout=float(timeout) if timeout else None,
            public_dir=os.getenv("HTTP_PUBLIC_DIR", "public"),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: The first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_line < 16:
            raise ValueError("max_request_line must be >= 16")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")

        for path in self.static_paths:
            if not path.startswith("/"):
                raise ValueError(f"Static path must start with '/': {path!r}")

        for path in self.templated_paths:
            if path not in self.static_paths:
                raise ValueError(f"Templated path is not in static_paths: {path!r}")
