"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log record per connection, written when the connection is done:

    text:  127.0.0.1 - - [2026-10-19T12:00:00+00:00] "GET /index.html" 200 1234 0.84ms
    json:  {"connection_id": "3f2a9c1e", "method": "GET", "path": "/index.html", ...}

Records go to the "minihttp.access" logger, separate from the
server's own diagnostics, so they can be routed on their own:

    logging.getLogger("minihttp.access").addHandler(file_handler)

Connections that never produced a parsed request (client hung up, or
sent garbage) are logged with method and path "-".

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional


logger = logging.getLogger("minihttp.access")


@dataclass
class AccessLogEntry:
    """
    Structured access log record.

    Attributes:
        connection_id: Connection.id, ties this line to debug logs.
        client_ip:     Peer address.
        method:        Request method, or "-" if none was parsed.
        path:          Request path, or "-".
        status:        Status line text ("404 Not Found"), or "-" if no
                       response was framed (raw handler writes, failures).
        bytes_sent:    Body bytes written.
        duration_ms:   Time from accept to close.
        failed:        The connection ended with an exception.
        timestamp:     When the record was made, UTC ISO-8601.
    """
    connection_id: str
    client_ip: str
    method: str
    path: str
    status: str
    bytes_sent: int
    duration_ms: float
    failed: bool = False
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")

    @property
    def status_code(self) -> Optional[int]:
        """Numeric status, or None if no response was framed."""
        code = self.status.split(" ", 1)[0]
        return int(code) if code.isdigit() else None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        data["status_code"] = self.status_code
        return data

    def to_text(self) -> str:
        """Apache-style single line."""
        code = self.status_code if self.status_code is not None else "-"
        text = (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {code} '
            f'{self.bytes_sent} {self.duration_ms:.2f}ms'
        )
        if self.failed:
            text += " FAILED"
        return text


def log_access(entry: AccessLogEntry, log_format: str = "text") -> None:
    """Emit entry on the access logger in the configured format."""
    if not logger.isEnabledFor(logging.INFO):
        return

    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())
