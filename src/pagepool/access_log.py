"""
=============================================================================
ACCESS LOG
=============================================================================

One log line per handled connection, on a dedicated logger.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ GET /index.html HTTP/1.1 - 200 - 3ms                                │
    │ ─────────── request line ───────  status  elapsed                   │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"connection_id": "a1b2c3d4", "client_ip": "127.0.0.1",            │
    │  "method": "GET", "path": "/index.html", "http_version": "HTTP/1.1",│
    │  "status_code": 200, "content_length": 2, "duration_ms": 3}        │
    └─────────────────────────────────────────────────────────────────────┘

The logger is "pagepool.access", separate from the module loggers, so it
can be routed to its own file:

    logging.getLogger("pagepool.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
from dataclasses import dataclass

from .http.status_codes import HTTPStatus


logger = logging.getLogger("pagepool.access")

LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """Structured log entry for one request."""

    connection_id: str
    client_ip: str
    method: str
    path: str
    http_version: str
    status_code: HTTPStatus
    content_length: int
    duration_ms: int

    def to_dict(self) -> dict:
        return {
            "connection_id": self.connection_id,
            "client_ip": self.client_ip,
            "method": self.method,
            "path": self.path,
            "http_version": self.http_version,
            "status_code": int(self.status_code),
            "content_length": self.content_length,
            "duration_ms": self.duration_ms,
        }

    def to_text(self) -> str:
        return (
            f"{self.method} {self.path} {self.http_version} - "
            f"{int(self.status_code)} - {self.duration_ms}ms"
        )


def emit(entry: RequestLog, log_format: str = "text") -> None:
    """
    Write an entry to the access logger.

    4xx/5xx responses are logged at WARNING so they stand out; everything
    else at INFO.
    """
    level = logging.WARNING if entry.status_code.is_error else logging.INFO
    if log_format == "json":
        logger.log(level, json.dumps(entry.to_dict()))
    else:
        logger.log(level, entry.to_text())
