"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with buffered streams, a lifecycle
state, and a close() that releases everything exactly once.

=============================================================================
STREAMS
=============================================================================

TCP is a byte stream: the request line may arrive in several recv()
chunks, or together with the headers in one. Rather than gluing chunks
together by hand we let socket.makefile() give us buffered file
objects:

    reader = sock.makefile("rb")    →  reader.readline() handles the
                                       chunking for us
    writer = sock.makefile("wb")    →  many small write() calls become a
                                       few sendall()s on flush()

The writer is wrapped in a ResponseWriter, which is the output sink
that handlers receive.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► PARSING ──► ROUTING ──► RESPONDING ──► CLOSED
               │           │             │            ▲
               │           │             │            │
               └───────────┴─────────────┴──► ERROR ──┘

    PARSING     reading and parsing the request line
    ROUTING     looking up the handler
    RESPONDING  handler or static file is writing the response
    ERROR       something raised; the connection is torn down
    CLOSED      streams and socket released

A 400 for a malformed request goes straight from PARSING or ROUTING to
CLOSED. The state is informational (logging, debugging); close() is
what guarantees the release.

=============================================================================
CLOSING
=============================================================================

    1. Flush and close the writer       last response bytes go out
    2. shutdown(SHUT_WR)                send FIN: "no more data from us"
    3. Drain unread input (bounded)     we never read the headers; closing
                                        with unread data makes the kernel
                                        send RST, which can destroy the
                                        response before the client reads it
    4. Close the reader and the socket  release the file descriptor

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional
import uuid

from ..http.response import ResponseWriter


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"                # Just accepted
    PARSING = "parsing"        # Reading the request line
    ROUTING = "routing"        # Request parsed, finding a handler
    RESPONDING = "responding"  # Writing the response
    ERROR = "error"            # Failed, about to be closed
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    One accepted client connection.

    Usage (inside a worker thread):

        with conn:
            request = parser.parse(conn.reader)
            conn.writer.write_status_only(HTTPStatus.NOT_FOUND)
        # streams and socket closed here, even if something raised

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique id for log lines.
        state: Current ConnectionState.
        failed: True once the connection has ended in an error. Unlike
                state, this survives close().
        created_at: Monotonic time of accept.
        reader: Buffered binary input stream.
        writer: ResponseWriter over the buffered output stream.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.monotonic)
    failed: bool = False

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192
    timeout: Optional[float] = None    # None = block forever
    linger_timeout: float = 0.5        # Max time spent draining on close

    reader: BinaryIO = field(init=False, repr=False)
    writer: ResponseWriter = field(init=False, repr=False)
    _wfile: BinaryIO = field(init=False, repr=False)

    def __post_init__(self):
        # Accepted sockets inherit nothing useful from the listener's
        # accept-loop timeout; set ours explicitly.
        self.socket.settimeout(self.timeout)

        self.reader = self.socket.makefile("rb", buffering=self.buffer_size)
        self._wfile = self.socket.makefile("wb", buffering=self.buffer_size)
        self.writer = ResponseWriter(self._wfile)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.monotonic() - self.created_at

    def fail(self):
        """Mark the connection as failed. close() still runs as usual."""
        self.state = ConnectionState.ERROR
        self.failed = True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Release the streams and the socket. Safe to call more than once;
        only the first call does anything.

        Errors here are logged, never raised: by the time we close, the
        response is either out or the connection has already failed.
        """
        if self.state == ConnectionState.CLOSED:
            return

        # STEP 1: push out anything still buffered, release the writer
        try:
            self._wfile.close()
        except OSError as e:
            logger.debug(f"[{self.id}] Flush on close failed: {e}")

        # STEP 2: send FIN
        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        # STEP 3: drain unread input so close() doesn't turn into a RST
        if not self.failed:
            self._drain()

        # STEP 4: release the reader and the descriptor
        try:
            self.reader.close()
        except OSError:
            pass
        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _drain(self):
        """Discard pending input until EOF or linger_timeout runs out."""
        deadline = time.monotonic() + self.linger_timeout
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return
                self.socket.settimeout(remaining)
                if not self.socket.recv(4096):
                    return
        except OSError:
            pass  # socket.timeout is an OSError too; either way we're done

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.fail()
        self.close()
        return False  # Don't suppress exceptions
