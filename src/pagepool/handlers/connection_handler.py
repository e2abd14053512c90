"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Turns one accepted connection into one response. This is the function
every worker thread runs.

=============================================================================
FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  handle(conn)                                                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   start timer                                                        │
    │       │                                                              │
    │       ▼                                                              │
    │   conn.read_line() ──── None (client hung up) ────────► close        │
    │       │          └───── ConnectionIOFailure ──────────► close        │
    │       ▼                                                              │
    │   parse_request_line() ─ MalformedRequestLine ─► 400 BAD REQUEST     │
    │       │                                                              │
    │       ▼                                                              │
    │   respond(request)                                                   │
    │       ├── route hit, file read ────────────────► 200 OK              │
    │       ├── RouteNotFound / ResourceReadFailure ─► 404 NOT FOUND       │
    │       └── ... and 404 page unreadable ─────────► 500 (empty body)    │
    │       │                                                              │
    │       ▼                                                              │
    │   conn.send() ──── ConnectionIOFailure ──► log, close                │
    │       │                                                              │
    │       ▼                                                              │
    │   access log line (method, path, version, status, ms)               │
    │   close                                                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every failure is handled HERE. Nothing escapes to the worker, so one bad
connection cannot disturb the others.

=============================================================================
"""

import logging
import time
from typing import Optional

from .. import access_log
from ..access_log import RequestLog
from ..core.connection import Connection, ConnectionIOFailure, LineTooLong
from ..http.request import MalformedRequestLine, RequestLine, parse_request_line
from ..http.response import HTTPResponse, bad_request, internal_error, not_found, ok
from ..http.routes import ResourceDescriptor, ResourceReadFailure, RouteNotFound, RouteTable
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Serves one request per connection from a RouteTable.

    Shared by all workers. Holds only read-only state (the route table and
    the not-found page descriptor), so handle() is safe to call from many
    threads at once.

    Usage:
        handler = ConnectionHandler(table, not_found_page="site/pages/404.html")
        handler.handle(conn)            # full read/respond/write cycle
        handler.respond(request_line)   # just the routing decision
    """

    def __init__(
        self,
        route_table: RouteTable,
        not_found_page: str,
        log_format: str = "text",
    ):
        """
        Args:
            route_table: Routes to serve from.
            not_found_page: File served with every 404.
            log_format: Access log format, "text" or "json".
        """
        self.route_table = route_table
        self.not_found = ResourceDescriptor("404", str(not_found_page))
        self.log_format = log_format

    def handle(self, conn: Connection) -> None:
        """Read, parse, resolve, write, log, close."""
        start = time.monotonic()

        with conn:
            try:
                line = conn.read_line()
            except LineTooLong as e:
                logger.warning(f"[{conn.id}] {e}")
                self._finish(conn, None, bad_request(), start)
                return
            except ConnectionIOFailure as e:
                logger.info(f"[{conn.id}] Abandoning connection: {e}")
                return

            if line is None:
                logger.debug(f"[{conn.id}] Client closed before sending a request line")
                return

            try:
                request = parse_request_line(line)
            except MalformedRequestLine as e:
                logger.warning(f"[{conn.id}] {e}")
                self._finish(conn, None, HTTPResponse(HTTPStatus(e.status_code)), start)
                return

            self._finish(conn, request, self.respond(request), start)

    def respond(self, request: RequestLine) -> HTTPResponse:
        """
        Decide what to send for a parsed request.

        The method is not consulted: any method on a routed path gets the
        file.
        """
        try:
            return ok(self.route_table.read(request.path))
        except RouteNotFound:
            pass
        except ResourceReadFailure as e:
            logger.warning(f"Route {request.path} is unreadable, serving 404: {e}")

        return self._not_found_response()

    def _not_found_response(self) -> HTTPResponse:
        try:
            return not_found(self.not_found.read())
        except ResourceReadFailure as e:
            logger.error(f"Not-found page is unreadable: {e}")
            return internal_error()

    def _finish(
        self,
        conn: Connection,
        request: Optional[RequestLine],
        response: HTTPResponse,
        start: float,
    ) -> None:
        """Write the response and emit the access log line."""
        try:
            conn.send(response.to_bytes())
        except ConnectionIOFailure as e:
            logger.warning(f"[{conn.id}] Abandoning connection: {e}")
            return

        elapsed_ms = int((time.monotonic() - start) * 1000)
        access_log.emit(
            RequestLog(
                connection_id=conn.id,
                client_ip=conn.client_ip,
                method=request.method if request else "-",
                path=request.path if request else "-",
                http_version=request.http_version if request else "-",
                status_code=response.status,
                content_length=response.content_length,
                duration_ms=elapsed_ms,
            ),
            self.log_format,
        )
