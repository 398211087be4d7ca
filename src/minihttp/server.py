"""
=============================================================================
HTTP SERVER
=============================================================================

Wires the components together and runs the per-connection pipeline.

=============================================================================
REQUEST FLOW
=============================================================================

    accept thread                      worker thread
    ─────────────                      ─────────────
    SocketServer.accept()
        │
        └─► _handle_connection(conn)
                │ pool.submit
                └──────────────────► _process_connection(conn)
                                         │
                                         ├─ PARSING     request line
                                         │     └─ malformed ──────► 400
                                         │
                                         ├─ ROUTING     method known?
                                         │     └─ no ─────────────► 400
                                         │
                                         ├─ RESPONDING
                                         │     ├─ handler found ──► handler(request, writer)
                                         │     └─ otherwise ──────► static files (200 / 404)
                                         │
                                         └─ CLOSED      always, via `with conn`

=============================================================================
ERROR ISOLATION
=============================================================================

A connection that raises (socket reset, unreadable file, handler bug)
is marked ERROR, closed, and the exception is re-raised into the worker
pool, which logs it with its traceback. Other connections, the pool and
the listener carry on. No error response is attempted: by then the
response may be half-written, or the socket may be gone.

=============================================================================
"""

import logging
from typing import Optional, Callable

from .access import AccessLogEntry, log_access
from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool
from .handlers import StaticFileResolver
from .http import (
    Request, RequestParser, HTTPParseError,
    HTTPStatus, RoutingTable, Handler,
)


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Minimal HTTP/1.1 server: registered handlers first, static files second.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(public_dir="public"))

        @server.get("/messages")
        def list_messages(request, writer):
            writer.write_status_only(HTTPStatus.NOT_FOUND)

        server.register("POST", "/messages", post_message)

        server.start(9999)   # blocks

    Handlers take (Request, ResponseWriter) and write one complete
    response. Every response closes the connection.

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().

        Raises:
            ValueError: Invalid configuration, or the document root does
                        not exist.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(workers=self.config.workers)
        self._parser = RequestParser(max_line=self.config.max_request_line)

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._router = RoutingTable()
        self._static = StaticFileResolver(
            root_dir=self.config.public_dir,
            allowed_paths=self.config.static_paths,
            templated_paths=self.config.templated_paths,
        )

        self._running = False

    # =========================================================================
    # HANDLER REGISTRATION
    # =========================================================================

    @property
    def router(self) -> RoutingTable:
        return self._router

    @property
    def static(self) -> StaticFileResolver:
        return self._static

    def register(self, method: str, path: str, handler: Handler) -> None:
        """
        Register a handler for an exact (method, path) pair.

        Last registration wins. Safe to call while the server is running.
        """
        self._router.register(method, path, handler)

    def route(self, method: str, path: str) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""
        return self._router.route(method, path)

    def get(self, path: str) -> Callable[[Handler], Handler]:
        """Register a GET handler."""
        return self._router.get(path)

    def post(self, path: str) -> Callable[[Handler], Handler]:
        """Register a POST handler."""
        return self._router.post(path)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self):
        """Bound (host, port); the real port once the server is listening."""
        return self._socket_server.address

    def start(self, port: Optional[int] = None) -> None:
        """
        Bind to all configured interfaces and serve. Blocks until
        shutdown() or Ctrl+C.

        Args:
            port: Overrides config.port.

        Raises:
            OSError: The port could not be bound.
        """
        if port is not None:
            self.config.port = port
            self.config.validate()

        self._setup_logging()

        self._running = True
        self._thread_pool.start()
        self._log_routes()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """
        Stop accepting connections. start() returns once in-flight and
        queued connections have been handled.
        """
        self._socket_server.shutdown()

    def wait_until_serving(self, timeout: Optional[float] = None) -> bool:
        """Block until the listener is bound and accepting. False on timeout."""
        return self._socket_server.wait_for_startup(timeout)

    def wait_until_stopped(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited. False on timeout."""
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("minihttp").setLevel(level)

    def _log_routes(self):
        for method, path in self._router.routes():
            logger.info(f"Route {method} {path}")
        logger.info(
            f"Serving {len(self._static.allowed_paths)} static paths from {self._static.root_dir}"
        )

    def _shutdown(self):
        """Drain the pool after the listener has closed."""
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand a new connection to the worker pool (runs on the accept thread).

        submit() never blocks: if every worker is busy the connection
        waits in the queue.
        """
        self._thread_pool.submit(self._process_connection, args=(conn,))

    def _process_connection(self, conn: Connection):
        """
        Handle one connection end to end (runs in a worker thread).

        Exceptions propagate to the pool after the connection is closed.
        """
        request: Optional[Request] = None

        try:
            with conn:
                conn.state = ConnectionState.PARSING
                try:
                    request = self._parser.parse(conn.reader)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Bad request: {e}")
                    conn.writer.write_status_only(HTTPStatus.BAD_REQUEST)
                    return

                conn.state = ConnectionState.ROUTING
                if not self._router.has_method(request.method):
                    logger.debug(f"[{conn.id}] Unknown method: {request.method}")
                    conn.writer.write_status_only(HTTPStatus.BAD_REQUEST)
                    return

                handler = self._router.lookup(request.method, request.path)

                conn.state = ConnectionState.RESPONDING
                if handler is not None:
                    handler(request, conn.writer)
                else:
                    self._static.serve(request, conn.writer)
        finally:
            self._log_access(conn, request)

    def _log_access(self, conn: Connection, request: Optional[Request]):
        writer = conn.writer
        log_access(
            AccessLogEntry(
                connection_id=conn.id,
                client_ip=conn.client_ip,
                method=request.method if request else "-",
                path=request.path if request else "-",
                status=writer.status or "-",
                bytes_sent=writer.bytes_sent,
                duration_ms=conn.age * 1000,
                failed=conn.failed,
            ),
            self.config.log_format,
        )


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a server instance.

        app = create_app(ServerConfig(port=8080))
        app.register("GET", "/messages", list_messages)
        app.start()
    """
    return HTTPServer(config)
