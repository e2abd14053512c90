"""
=============================================================================
HTTP RESPONSE
=============================================================================

Serializes responses in the one fixed shape this server speaks.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\r\n            ← Status line
    Content-Length: 2\r\n          ← The ONLY header we send
    \r\n                           ← Empty line (separator)
    hi                             ← Body bytes

No Date, no Server, no Content-Type, no Connection header. The connection
is always closed after the response, so Content-Length is all a client
needs to know where the body ends.

=============================================================================
"""

from dataclasses import dataclass
from typing import Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Usage:
        response = HTTPResponse(HTTPStatus.OK, b"hi")
        conn.send(response.to_bytes())
    """

    status: HTTPStatus = HTTPStatus.OK
    body: bytes = b""
    version: str = "HTTP/1.1"

    def __post_init__(self):
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 404 NOT FOUND"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        return len(self.body)

    def to_bytes(self) -> bytes:
        """Serialize the response to bytes ready for socket.sendall()."""
        head = f"{self.status_line}\r\nContent-Length: {self.content_length}\r\n\r\n"
        return head.encode("latin-1") + self.body


def ok(body: Union[str, bytes]) -> HTTPResponse:
    """200 OK with the given body."""
    return HTTPResponse(HTTPStatus.OK, body)


def not_found(body: Union[str, bytes]) -> HTTPResponse:
    """404 NOT FOUND carrying the not-found page."""
    return HTTPResponse(HTTPStatus.NOT_FOUND, body)


def bad_request() -> HTTPResponse:
    """400 BAD REQUEST with an empty body."""
    return HTTPResponse(HTTPStatus.BAD_REQUEST)


def internal_error() -> HTTPResponse:
    """500 INTERNAL SERVER ERROR with an empty body."""
    return HTTPResponse(HTTPStatus.INTERNAL_SERVER_ERROR)
