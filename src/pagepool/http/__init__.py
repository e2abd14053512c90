"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

Everything that knows about HTTP, and nothing that knows about sockets
or threads:

    request.py       Request line parsing (METHOD PATH VERSION)
    response.py      Response serialization (status line + Content-Length)
    routes.py        Route table: request path → file on disk
    status_codes.py  The status codes we send, with wire reason phrases

=============================================================================
"""

from .request import MalformedRequestLine, RequestLine, parse_request_line
from .response import HTTPResponse, bad_request, internal_error, not_found, ok
from .routes import (
    ResourceDescriptor,
    ResourceReadFailure,
    RouteNotFound,
    RouteTable,
    scan_directory,
)
from .status_codes import HTTPStatus

__all__ = [
    # Request line
    "RequestLine",
    "MalformedRequestLine",
    "parse_request_line",
    # Response
    "HTTPResponse",
    "HTTPStatus",
    "ok",
    "not_found",
    "bad_request",
    "internal_error",
    # Routing
    "RouteTable",
    "ResourceDescriptor",
    "RouteNotFound",
    "ResourceReadFailure",
    "scan_directory",
]
