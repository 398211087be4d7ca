"""
Unit tests for response writing.
"""

import io

import pytest

from minihttp.http.response import ResponseWriter, status_text
from minihttp.http.status_codes import HTTPStatus


class TrackingStream(io.BytesIO):
    """BytesIO that counts flushes."""

    def __init__(self):
        super().__init__()
        self.flushes = 0

    def flush(self):
        self.flushes += 1
        super().flush()


class FailingFile(io.BytesIO):
    def read(self, size=-1):
        raise OSError("disk gone")


class TestStatusText:
    """Tests for status_text()."""

    def test_enum_member(self):
        assert status_text(HTTPStatus.OK) == "200 OK"
        assert status_text(HTTPStatus.NOT_FOUND) == "404 Not Found"
        assert status_text(HTTPStatus.SERVICE_UNAVAILABLE) == "503 Service Unavailable"

    def test_plain_int(self):
        assert status_text(404) == "404 Not Found"

    def test_unknown_int(self):
        """Codes without a known phrase still produce a status line."""
        assert status_text(418) == "418 Unknown"
        assert status_text(299) == "299 Unknown"

    def test_literal_string(self):
        """Status can be given as literal text."""
        assert status_text("418 I'm a teapot") == "418 I'm a teapot"

    def test_rejects_line_breaks(self):
        with pytest.raises(ValueError):
            status_text("200 OK\r\nX-Injected: 1")


class TestResponseWriter:
    """Tests for ResponseWriter class."""

    def test_status_only_exact_bytes(self):
        """Test the full wire format of a bodiless response."""
        stream = io.BytesIO()
        ResponseWriter(stream).write_status_only(HTTPStatus.NOT_FOUND)

        assert stream.getvalue() == (
            b"HTTP/1.1 404 Not Found\r\n"
            b"Content-Length: 0\r\n"
            b"Connection: close\r\n"
            b"\r\n"
        )

    def test_status_only_unknown_code(self):
        stream = io.BytesIO()
        ResponseWriter(stream).write_status_only(418)

        assert stream.getvalue() == (
            b"HTTP/1.1 418 Unknown\r\n"
            b"Content-Length: 0\r\n"
            b"Connection: close\r\n"
            b"\r\n"
        )

    def test_status_only_has_no_content_type(self):
        stream = io.BytesIO()
        ResponseWriter(stream).write_status_only(HTTPStatus.BAD_REQUEST)

        assert b"Content-Type" not in stream.getvalue()

    def test_with_body(self):
        """Test that Content-Length equals the body length."""
        stream = io.BytesIO()
        body = "<p>héllo</p>".encode("utf-8")
        ResponseWriter(stream).write_with_body(HTTPStatus.OK, "text/html", body)

        assert stream.getvalue() == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/html\r\n"
            + f"Content-Length: {len(body)}\r\n".encode()
            + b"Connection: close\r\n"
            b"\r\n"
        ) + body

    def test_empty_body_keeps_content_type(self):
        stream = io.BytesIO()
        ResponseWriter(stream).write_with_body(HTTPStatus.OK, "text/plain", b"")

        value = stream.getvalue()
        assert b"Content-Type: text/plain\r\n" in value
        assert b"Content-Length: 0\r\n" in value
        assert value.endswith(b"\r\n\r\n")

    def test_write_file(self):
        """Test streaming exactly the declared number of bytes."""
        stream = io.BytesIO()
        data = bytes(range(256)) * 10
        writer = ResponseWriter(stream, chunk_size=100)

        writer.write_file(HTTPStatus.OK, "image/png", io.BytesIO(data), len(data))

        head, _, body = stream.getvalue().partition(b"\r\n\r\n")
        assert b"Content-Length: 2560" in head
        assert body == data
        assert writer.bytes_sent == len(data)

    def test_write_file_stops_at_length(self):
        """A file that grew after measuring is cut at the declared length."""
        stream = io.BytesIO()
        writer = ResponseWriter(stream)

        writer.write_file(HTTPStatus.OK, "text/plain", io.BytesIO(b"0123456789"), 4)

        assert stream.getvalue().endswith(b"\r\n\r\n0123")

    def test_records_status_and_bytes(self):
        writer = ResponseWriter(io.BytesIO())
        assert writer.status is None

        writer.write_with_body(HTTPStatus.OK, "text/css", b"body {}")

        assert writer.status == "200 OK"
        assert writer.bytes_sent == 7

    def test_flushes(self):
        stream = TrackingStream()
        ResponseWriter(stream).write_status_only(HTTPStatus.OK)

        assert stream.flushes >= 1

    def test_flushes_when_file_read_fails(self):
        """Whatever was written before the failure still goes out."""
        stream = TrackingStream()

        with pytest.raises(OSError):
            ResponseWriter(stream).write_file(HTTPStatus.OK, "text/plain", FailingFile(), 10)

        assert stream.flushes >= 1
        assert stream.getvalue().startswith(b"HTTP/1.1 200 OK\r\n")

    def test_rejects_bad_content_type(self):
        with pytest.raises(ValueError):
            ResponseWriter(io.BytesIO()).write_with_body(
                HTTPStatus.OK, "text/html\r\nSet-Cookie: x=1", b"x"
            )
