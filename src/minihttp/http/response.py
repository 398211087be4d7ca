"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Frames HTTP/1.1 responses directly onto a connection's output stream.
There is no response object: the status line, headers and body are
written straight to the socket and never reused or cached.

=============================================================================
WHAT GOES ON THE WIRE
=============================================================================

    Status only (errors, handler shortcuts):

        HTTP/1.1 404 Not Found\r\n
        Content-Length: 0\r\n
        Connection: close\r\n
        \r\n

    With a body:

        HTTP/1.1 200 OK\r\n
        Content-Type: text/html\r\n
        Content-Length: 1234\r\n       ◄── always the exact body size
        Connection: close\r\n          ◄── one response per connection
        \r\n
        <!DOCTYPE html>...

Content-Length is always present so the client knows where the body
ends even though we also close the socket. Connection: close tells the
client not to try to reuse it.

=============================================================================
FLUSHING
=============================================================================

The stream is a buffered socket writer. Every write_* method flushes in
a `finally` block: if writing the body fails halfway, whatever made it
into the buffer is still pushed out so the client is not left waiting
on bytes that are sitting in our memory.

=============================================================================
"""

from typing import BinaryIO, Optional, Union

from .status_codes import HTTPStatus


Status = Union[HTTPStatus, int, str]

HTTP_VERSION = "HTTP/1.1"


def status_text(status: Status) -> str:
    """
    Render a status as it appears in the status line.

        >>> status_text(HTTPStatus.NOT_FOUND)
        '404 Not Found'
        >>> status_text(503)
        '503 Service Unavailable'
        >>> status_text(418)
        '418 Unknown'
        >>> status_text("418 I'm a teapot")
        "418 I'm a teapot"
    """
    if isinstance(status, HTTPStatus):
        return status.line
    if isinstance(status, int):
        try:
            return HTTPStatus(status).line
        except ValueError:
            return f"{status} Unknown"
    return _check_header_text(str(status))


def _check_header_text(value: str) -> str:
    """Header text must be ASCII and must not smuggle in line breaks."""
    if not value.isascii() or "\r" in value or "\n" in value:
        raise ValueError(f"Invalid header text: {value!r}")
    return value


class ResponseWriter:
    """
    Writes one HTTP response onto a binary output stream.

    This is the output sink handed to every handler along with the
    request:

        def send_messages(request, writer):
            writer.write_with_body(HTTPStatus.OK, "application/json", b"[]")

    Handlers that need full control can write raw bytes to
    `writer.stream` instead; they are then responsible for the framing.

    Attributes:
        stream: The underlying buffered output stream.
        status: Status line text of the last response written, or None.
        bytes_sent: Body bytes written (for access logging).
    """

    def __init__(self, stream: BinaryIO, chunk_size: int = 64 * 1024):
        self.stream = stream
        self.chunk_size = chunk_size
        self.status: Optional[str] = None
        self.bytes_sent = 0

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def write_status_only(self, status: Status) -> None:
        """
        Write a response with no body.

        Emits the status line, Content-Length: 0, Connection: close and
        the blank line, then flushes.
        """
        head = self._head(status, content_type=None, length=0)
        self._send(head)

    def write_with_body(self, status: Status, content_type: str, body: bytes) -> None:
        """
        Write a complete response with a body held in memory.

        Content-Length is len(body), always.
        """
        head = self._head(status, content_type=content_type, length=len(body))
        self._send(head, body)

    def write_file(
        self,
        status: Status,
        content_type: str,
        file: BinaryIO,
        length: int,
    ) -> None:
        """
        Stream a response body from an open binary file.

        `length` must be measured before calling (e.g. with os.fstat on
        the open file) and is what goes into Content-Length. Exactly
        that many bytes are copied: if the file grows while we read,
        the extra bytes are not sent; if it shrinks, the body ends
        early and the client sees the connection close.
        """
        head = self._head(status, content_type=content_type, length=length)
        try:
            self.stream.write(head)
            remaining = length
            while remaining > 0:
                chunk = file.read(min(self.chunk_size, remaining))
                if not chunk:
                    break
                self.stream.write(chunk)
                self.bytes_sent += len(chunk)
                remaining -= len(chunk)
        finally:
            self.stream.flush()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _head(self, status: Status, content_type: Optional[str], length: int) -> bytes:
        """Build the status line and header block, ending with the blank line."""
        line = status_text(status)
        self.status = line

        lines = [f"{HTTP_VERSION} {line}"]
        if content_type is not None:
            lines.append(f"Content-Type: {_check_header_text(content_type)}")
        lines.append(f"Content-Length: {length}")
        lines.append("Connection: close")
        lines.append("")

        return ("\r\n".join(lines) + "\r\n").encode("ascii")

    def _send(self, head: bytes, body: bytes = b"") -> None:
        try:
            self.stream.write(head)
            if body:
                self.stream.write(body)
                self.bytes_sent += len(body)
        finally:
            self.stream.flush()
