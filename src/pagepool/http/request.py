"""
=============================================================================
HTTP REQUEST LINE PARSER
=============================================================================

Parses the first line of an HTTP request into a RequestLine.

This server looks at nothing else: no headers, no body. One line decides
which file is served.

=============================================================================
REQUEST LINE ANATOMY
=============================================================================

    GET /index.html HTTP/1.1\r\n
    ─┬─ ─────┬───── ────┬────
     │       │          │
   Method   Path     Version

We split from the RIGHT, at most twice:

    "GET /index.html HTTP/1.1".rsplit(" ", 2)
        → ["GET", "/index.html", "HTTP/1.1"]

    - last field            → HTTP version
    - second-to-last field  → path
    - everything before     → method

Splitting from the right keeps the version and path stable even if a
client sends something odd in the method position.

=============================================================================
MALFORMED INPUT
=============================================================================

A naive parser that indexes fields by position blows up on short input:

    "GET".split(" ")[2]   →  IndexError

Here a short line is a client error, not a server error. We raise
MalformedRequestLine, which carries the status code (400) that the
connection handler writes back. The worker thread and the rest of the
server never notice.

    ┌───────────────────────────────┬──────────────────────────────────┐
    │ Input                         │ Result                           │
    ├───────────────────────────────┼──────────────────────────────────┤
    │ "GET / HTTP/1.1"              │ RequestLine("GET", "/", ...)     │
    │ "GET /a.html HTTP/1.0\\r\\n"  │ RequestLine("GET", "/a.html",..) │
    │ "GET /"                       │ MalformedRequestLine             │
    │ ""                            │ MalformedRequestLine             │
    │ "GET  HTTP/1.1" (empty path)  │ MalformedRequestLine             │
    └───────────────────────────────┴──────────────────────────────────┘

=============================================================================
"""

from dataclasses import dataclass


class MalformedRequestLine(ValueError):
    """
    Raised when a request line does not have METHOD SP PATH SP VERSION.

    Carries the HTTP status code (400) the connection handler answers with.
    """

    def __init__(self, line: str, reason: str = "expected METHOD PATH VERSION"):
        super().__init__(f"Malformed request line {line!r}: {reason}")
        self.line = line
        self.reason = reason
        self.status_code = 400


@dataclass(frozen=True)
class RequestLine:
    """
    A parsed request line.

    Frozen: once parsed it is passed around read-only (handler, access log).
    """

    method: str
    path: str
    http_version: str

    def __str__(self) -> str:
        return f"{self.method} {self.path} {self.http_version}"


def parse_request_line(line: str) -> RequestLine:
    """
    Parse a single HTTP request line.

    Args:
        line: The first line of the request. A trailing CRLF or LF is
              tolerated and stripped.

    Returns:
        RequestLine with method, path and HTTP version.

    Raises:
        MalformedRequestLine: If fewer than three space-separated fields
                              are present, or any field is empty.
    """
    stripped = line.rstrip("\r\n")

    fields = stripped.rsplit(" ", 2)
    if len(fields) < 3:
        raise MalformedRequestLine(stripped)

    method, path, http_version = fields
    if not method or not path or not http_version:
        raise MalformedRequestLine(stripped, "empty field")

    return RequestLine(method=method, path=path, http_version=http_version)
