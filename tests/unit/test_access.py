"""
Unit tests for access logging.
"""

import json
import logging

from minihttp.access import AccessLogEntry, log_access


def make_entry(**overrides) -> AccessLogEntry:
    fields = dict(
        connection_id="3f2a9c1e",
        client_ip="127.0.0.1",
        method="GET",
        path="/index.html",
        status="200 OK",
        bytes_sent=1234,
        duration_ms=0.8412,
        timestamp="2026-01-01T12:00:00+00:00",
    )
    fields.update(overrides)
    return AccessLogEntry(**fields)


class TestAccessLogEntry:
    """Tests for AccessLogEntry class."""

    def test_to_text(self):
        assert make_entry().to_text() == (
            '127.0.0.1 - - [2026-01-01T12:00:00+00:00] "GET /index.html" 200 1234 0.84ms'
        )

    def test_to_text_failed(self):
        text = make_entry(status="-", bytes_sent=0, failed=True).to_text()

        assert '"GET /index.html" - 0' in text
        assert text.endswith(" FAILED")

    def test_to_dict(self):
        data = make_entry().to_dict()

        assert data["status_code"] == 200
        assert data["duration_ms"] == 0.84
        assert data["connection_id"] == "3f2a9c1e"
        assert data["failed"] is False

    def test_status_code_without_response(self):
        assert make_entry(status="-").status_code is None

    def test_timestamp_filled_in(self):
        entry = make_entry(timestamp="")
        assert entry.timestamp.endswith("+00:00")


class TestLogAccess:
    """Tests for log_access()."""

    def test_text_format(self, caplog):
        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            log_access(make_entry(), "text")

        assert '"GET /index.html" 200' in caplog.text

    def test_json_format(self, caplog):
        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            log_access(make_entry(path="/styles.css"), "json")

        record = json.loads(caplog.records[-1].getMessage())
        assert record["path"] == "/styles.css"
        assert record["status_code"] == 200

    def test_disabled_below_info(self, caplog):
        with caplog.at_level(logging.WARNING, logger="minihttp.access"):
            log_access(make_entry(), "text")

        assert caplog.records == []
