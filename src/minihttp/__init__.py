"""
=============================================================================
MINIHTTP - Minimal HTTP/1.1 Server on Raw Sockets
=============================================================================

A small, thread-pooled HTTP/1.1 server. Application code registers
handlers for exact (method, path) pairs; every other request falls
through to an allowlist of static files.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        MINIHTTP ARCHITECTURE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   1. ACCEPT LOOP                                                    │
    │      - One listening TCP socket, one accept thread                  │
    │      - Each client socket is wrapped in a Connection                │
    │                                                                     │
    │   2. WORKER POOL                                                    │
    │      - Fixed number of worker threads (default 64)                  │
    │      - Connections queue up when every worker is busy               │
    │                                                                     │
    │   3. REQUEST LINE ONLY                                              │
    │      - "METHOD PATH VERSION" is all we read                         │
    │      - Headers and bodies are never parsed                          │
    │                                                                     │
    │   4. ROUTING                                                        │
    │      - Exact (method, path) match to a handler                      │
    │      - Unknown method → 400, unknown path → static files            │
    │                                                                     │
    │   5. STATIC FILES                                                   │
    │      - Fixed allowlist, everything else 404                         │
    │      - "{time}" substituted into templated pages                    │
    │                                                                     │
    │   Every response carries Content-Length and Connection: close.     │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m minihttp)
    ├── server.py            # HTTPServer: wiring and per-connection pipeline
    ├── config.py            # ServerConfig dataclass
    ├── access.py            # Access log records
    ├── core/                # Networking plumbing
    │   ├── socket_server.py # Listening socket and accept loop
    │   ├── connection.py    # Connection wrapper and lifecycle
    │   └── thread_pool.py   # Fixed-size worker pool
    ├── http/                # HTTP protocol pieces
    │   ├── request.py       # Request line parsing
    │   ├── response.py      # Response framing
    │   ├── router.py        # (method, path) routing table
    │   ├── status_codes.py  # HTTP status enum
    │   └── mime_types.py    # MIME type detection
    └── handlers/
        └── static.py        # Allowlisted static files

=============================================================================
QUICK START
=============================================================================

    from minihttp import HTTPServer, ServerConfig, HTTPStatus

    server = HTTPServer(ServerConfig(public_dir="public"))

    @server.get("/messages")
    def list_messages(request, writer):
        writer.write_with_body(HTTPStatus.OK, "application/json", b"[]")

    @server.post("/messages")
    def post_message(request, writer):
        writer.write_status_only(HTTPStatus.SERVICE_UNAVAILABLE)

    server.start(9999)   # blocks; GET /index.html is served from public/

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig
from .http import Request, ResponseWriter, HTTPStatus, RoutingTable
from .handlers import StaticFileResolver

__all__ = [
    "HTTPServer",
    "create_app",
    "ServerConfig",
    "Request",
    "ResponseWriter",
    "HTTPStatus",
    "RoutingTable",
    "StaticFileResolver",
    "__version__",
]
