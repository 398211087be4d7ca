"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket: bind, listen, and the accept loop that hands
every new client to a callback.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create the TCP socket
    2. bind()      Claim HOST:PORT      ◄── failure here is fatal
    3. listen()    Start the kernel's accept queue (backlog)
    4. accept()    Wait for a client, get a NEW socket for it
                   (the listening socket keeps listening)
    5. close()     Release the port

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Bound to [::]:9999
                    └───────────┬───────────┘     Never sends/receives data
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client 1  │         │ Client 2  │         │ Client 3  │
    └───────────┘         └───────────┘         └───────────┘

The accept loop does nothing but accept and hand off. It never reads
from a client, so one slow client cannot hold up the next accept().

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR   Rebind right after a restart instead of waiting out
               TIME_WAIT ("Address already in use" for ~60s).

TCP_NODELAY    Disable Nagle's algorithm: send small writes at once.

SO_REUSEPORT is NOT set. With it, a second server could silently share
our port; without it, a taken port is a bind error and startup fails.

=============================================================================
ADDRESS FAMILY
=============================================================================

The default host "" means every interface. Where the OS supports it that
is one IPv6 socket on "::" with IPV6_V6ONLY off, so IPv4 clients arrive
as v4-mapped addresses (::ffff:127.0.0.1). Without IPv6 it falls back
to "0.0.0.0". An explicit host picks its own family.

=============================================================================
"""

import socket
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP listener.

    Usage:
        def handle_connection(conn: Connection):
            pool.submit(process, args=(conn,))

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, ...).

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening / once the loop has exited
        self._startup_event = threading.Event()
        self._shutdown_event = threading.Event()

        # Set by shutdown(), even before start(); cleared once start() returns
        self._stop_requested = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        After start() this is the real address, so a config with port 0
        reports the port the OS picked.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _bind_address(self) -> Tuple[int, str]:
        """
        Pick the address family and bind host for config.host.

            ""           all interfaces: "::" dual-stack if the OS supports
                         it, otherwise "0.0.0.0"
            "0.0.0.0"    all IPv4 interfaces
            "::1", ...   IPv6 only
        """
        host = self.config.host
        if not host:
            if socket.has_dualstack_ipv6():
                return socket.AF_INET6, "::"
            return socket.AF_INET, "0.0.0.0"
        if ":" in host:
            return socket.AF_INET6, host
        return socket.AF_INET, host

    def _create_socket(self, family: int = socket.AF_INET) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(family, socket.SOCK_STREAM)

        if family == socket.AF_INET6 and not self.config.host:
            # Accept IPv4 clients too, as v4-mapped addresses
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)

        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second so shutdown() can stop the loop:
        #
        #   while running:
        #       try:
        #           accept()    # Blocks for 1 second max
        #       except timeout:
        #           continue    # Check running flag, loop again
        sock.settimeout(1.0)

        return sock

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen, and run the accept loop. Blocks until shutdown().

        Args:
            connection_handler: Called with each new Connection, on the
                                accept thread. Must not block.

        Raises:
            OSError: The address could not be bound. Nothing is served.
        """
        family, host = self._bind_address()
        self._socket = self._create_socket(family)
        self._shutdown_event.clear()

        try:
            try:
                self._socket.bind((host, self.config.port))
            except OSError as e:
                logger.error(f"Failed to bind to {host}:{self.config.port}: {e}")
                raise

            self._socket.listen(self.config.backlog)

            if self._stop_requested.is_set():
                logger.info("Shutdown requested before startup, not serving")
                return
            self._running = True

            host, port = self.address
            logger.info(f"Server listening on {host}:{port}")
            self._startup_event.set()

            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() clears the running flag.

        A failure while wrapping or dispatching one client socket closes
        that socket and the loop carries on.
        """
        while self._running and not self._stop_requested.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # Listening socket closed under us: usually shutdown()
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                )
            except OSError as e:
                logger.warning(f"Dropping connection from {client_address[0]}: {e}")
                client_socket.close()
                continue

            try:
                connection_handler(conn)
            except Exception:
                logger.exception(f"[{conn.id}] Failed to dispatch connection")
                conn.fail()
                conn.close()

    def shutdown(self):
        """
        Stop accepting connections. Safe to call from any thread and more
        than once. The accept loop notices within about a second.

        A call that arrives before start() is listening is remembered:
        that start() binds, then returns without serving.
        """
        if self._running:
            logger.info("Shutting down listener...")
        self._stop_requested.set()
        self._running = False

    def _cleanup(self):
        self._running = False
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._startup_event.clear()
        self._stop_requested.clear()
        self._shutdown_event.set()
        logger.info("Listener stopped")

    def wait_for_startup(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._startup_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited. False on timeout."""
        return self._shutdown_event.wait(timeout)
