"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Callable, Dict, Generator, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig, HTTPStatus


PUBLIC_FILES = {
    "index.html": "<!DOCTYPE html>\n<html><body><h1>Index</h1></body></html>\n",
    "classic.html": "<html><body><p>Rendered at {time}</p></body></html>\n",
    "styles.css": "body { color: #333; }\n",
    "app.js": "console.log('app');\n",
}

# Allowlisted, and not valid UTF-8
BINARY_FILE = ("spring.png", b"\x89PNG\r\n\x1a\n" + bytes(range(256)) + b"\xff\xfe\r\n")

# Present on disk but never in the allowlist
SECRET_FILE = "secret.txt"


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    """Document root with a few allowlisted files and one that is not."""
    root = tmp_path / "public"
    root.mkdir()
    for name, content in PUBLIC_FILES.items():
        (root / name).write_text(content, encoding="utf-8")
    (root / BINARY_FILE[0]).write_bytes(BINARY_FILE[1])
    (root / SECRET_FILE).write_text("do not serve\n", encoding="utf-8")
    return root


@pytest.fixture
def config(public_dir: Path) -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        workers=4,
        timeout=5.0,
        public_dir=str(public_dir),
        static_paths=("/index.html", "/classic.html", "/styles.css", "/app.js", "/spring.png"),
        templated_paths=("/classic.html",),
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class ServerThread:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it accepts."""
        self._thread = threading.Thread(target=self.server.start, daemon=True)
        self._thread.start()

        if not self.server.wait_until_serving(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server and wait for the serving thread to exit."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes, return everything the server sends before closing."""
        return send_raw(self.port, raw, timeout)

    def exchange(self, raw: bytes) -> Tuple[str, Dict[str, str], bytes]:
        """request(), split into (status line, headers, body)."""
        return parse_response(self.request(raw))


def send_raw(port: int, raw: bytes, timeout: float = 5.0) -> bytes:
    """Open a connection, send raw, read until the server closes."""
    chunks = []
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(raw)
        try:
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        except ConnectionResetError:
            pass
    return b"".join(chunks)


def parse_response(raw: bytes) -> Tuple[str, Dict[str, str], bytes]:
    """Split a raw response into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("ascii").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip()] = value.strip()
    return lines[0], headers, body


@pytest.fixture
def server(config: ServerConfig) -> HTTPServer:
    """
    Server with the /messages handlers registered.

    GET must have at least one handler, or every GET is an unknown
    method and gets a 400 before reaching the static files.
    """
    server = HTTPServer(config)

    @server.get("/messages")
    def list_messages(request, writer):
        writer.write_status_only(HTTPStatus.NOT_FOUND)

    @server.post("/messages")
    def post_message(request, writer):
        writer.write_status_only(HTTPStatus.SERVICE_UNAVAILABLE)

    return server


@pytest.fixture
def running_server(server: HTTPServer) -> Generator[ServerThread, None, None]:
    """The server fixture, started on a free port."""
    thread = ServerThread(server)
    thread.start()

    yield thread

    thread.stop()


@pytest.fixture
def start_server() -> Generator[Callable[[HTTPServer], ServerThread], None, None]:
    """
    Factory for servers that need extra routes before starting.

        thread = start_server(server)
        thread.request(b"GET / HTTP/1.1\r\n\r\n")

    Every server started this way is stopped at teardown.
    """
    started = []

    def start(server: HTTPServer) -> ServerThread:
        thread = ServerThread(server)
        thread.start()
        started.append(thread)
        return thread

    yield start

    for thread in started:
        thread.stop()


@pytest.fixture
def request_raw() -> Callable[..., bytes]:
    """send_raw(port, raw) for servers not started through a fixture."""
    return send_raw
