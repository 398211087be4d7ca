"""
Unit tests for the command-line entry point.
"""

import io

import pytest

from minihttp import HTTPServer, Request, ResponseWriter
from minihttp.__main__ import build_parser, config_from_args, register_message_handlers, main


class TestArguments:
    """Tests for argument parsing."""

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "8080")
        monkeypatch.setenv("HTTP_WORKERS", "8")

        args = build_parser().parse_args(["-p", "7000", "--public", "/srv/www", "--log-format", "json"])
        config = config_from_args(args)

        assert config.port == 7000
        assert config.workers == 8
        assert config.public_dir == "/srv/www"
        assert config.log_format == "json"

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("HTTP_PORT", raising=False)
        monkeypatch.delenv("HTTP_WORKERS", raising=False)

        config = config_from_args(build_parser().parse_args([]))

        assert config.port == 9999
        assert config.workers == 64

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "minihttp" in capsys.readouterr().out

    def test_invalid_config_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--public", str(tmp_path / "nope")])

        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().err


class TestMessageHandlers:
    """Tests for the /messages handlers."""

    @pytest.mark.parametrize("method,expected", [
        ("GET", b"HTTP/1.1 404 Not Found\r\n"),
        ("POST", b"HTTP/1.1 503 Service Unavailable\r\n"),
    ])
    def test_status(self, config, method, expected):
        server = HTTPServer(config)
        register_message_handlers(server)

        handler = server.router.lookup(method, "/messages")
        stream = io.BytesIO()
        handler(Request(method=method, path="/messages"), ResponseWriter(stream))

        assert stream.getvalue() == expected + b"Content-Length: 0\r\nConnection: close\r\n\r\n"
