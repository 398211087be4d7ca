"""
=============================================================================
HTTP REQUEST LINE PARSER
=============================================================================

Turns the first line of a connection into a structured Request.

=============================================================================
WHAT WE READ, AND WHAT WE DON'T
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    GET /index.html?lang=en HTTP/1.1\r\n    ◄── read and parsed       │
    │    ─┬─ ──────┬──── ───┬─── ────┬───                                   │
    │     │        │        │        │                                      │
    │   Method    Path    Query   Version                                   │
    │                                                                      │
    │    Host: localhost:9999\r\n                ◄── never read            │
    │    User-Agent: curl/8.0\r\n                                          │
    │    \r\n                                                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The request line carries everything routing needs: the method and the
path. Headers and bodies are left on the wire. Every response closes
the connection, so nothing that follows the first line is ever needed,
and parsing cost stays constant no matter how large the request is.

=============================================================================
REJECTED INPUT
=============================================================================

Each of these raises HTTPParseError (400 Bad Request):

    ""                          stream closed before a line arrived
    "\r\n"                      blank line
    "GET\r\n"                   fewer than three tokens
    "GET / HTTP/1.1 extra\r\n"  more than three tokens
    "GET index.html HTTP/1.1"   target does not start with "/"
    8 KB of "A"s                line longer than max_line

=============================================================================
"""

import io
from dataclasses import dataclass
from typing import BinaryIO


class HTTPParseError(Exception):
    """
    Raised when the request line cannot be parsed.

    Carries the HTTP status the connection should answer with. The core
    only ever uses 400 Bad Request.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class Request:
    """
    A parsed request line.

    Immutable: built once by the parser, consumed once by the connection
    worker, dropped when the connection closes.

    Attributes:
        method:  Request method token exactly as sent ("GET", "POST").
                 Never case-folded; routing is an exact match.
        path:    Request target without the query string. Always starts
                 with "/".
        version: Protocol version token ("HTTP/1.1"). Shape-checked only.
        query:   Raw text after "?" (without the "?"), or "". Not parsed
                 and not used for routing.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    query: str = ""

    @property
    def target(self) -> str:
        """The request target as the client sent it (path plus query)."""
        return f"{self.path}?{self.query}" if self.query else self.path


class RequestParser:
    """
    Reads and parses exactly one request line from a binary stream.

    Usage:
        parser = RequestParser(max_line=8192)
        request = parser.parse(conn.reader)   # raises HTTPParseError

    The stream is anything with readline(limit): normally the buffered
    reader from socket.makefile("rb"), or io.BytesIO in tests.
    """

    def __init__(self, max_line: int = 8192):
        """
        Args:
            max_line: Longest request line accepted, in bytes, excluding
                      the line terminator.
        """
        self.max_line = max_line

    def parse(self, stream: BinaryIO) -> Request:
        """
        Read the first line from stream and parse it.

        Blocks until a full line, EOF, or max_line + 2 bytes arrive.

        Raises:
            HTTPParseError: The line is missing or malformed.
            OSError: The socket failed while reading.
        """
        raw = stream.readline(self.max_line + 2)

        if not raw:
            raise HTTPParseError("Connection closed before request line")

        if len(raw.rstrip(b"\r\n")) > self.max_line:
            raise HTTPParseError(f"Request line longer than {self.max_line} bytes")

        try:
            line = raw.decode("ascii")
        except UnicodeDecodeError:
            raise HTTPParseError("Request line is not ASCII")

        return self.parse_request_line(line)

    def parse_request_line(self, line: str) -> Request:
        """
        Parse request line text (terminator optional).

        Format: METHOD SP REQUEST-TARGET SP HTTP-VERSION

        Splitting is on any run of whitespace, so stray double spaces
        are tolerated but the token count must be exactly three.
        """
        line = line.rstrip("\r\n")
        if not line.strip():
            raise HTTPParseError("Empty request line")

        parts = line.split()
        if len(parts) != 3:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = parts

        # ─────────────────────────────────────────────────────────────────
        # SPLIT OFF THE QUERY STRING
        # ─────────────────────────────────────────────────────────────────
        # "/index.html?lang=en" → path "/index.html", query "lang=en"
        # The routing table only ever sees the path.

        path, _, query = target.partition("?")
        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid request target: {target!r}")

        return Request(method=method, path=path, version=version, query=query)


def parse_request(data: bytes) -> Request:
    """
    Parse a request line from raw bytes.

    Convenience wrapper for callers that already have the bytes in hand.
    """
    return RequestParser().parse(io.BytesIO(data))
