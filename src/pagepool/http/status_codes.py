"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes this server ever writes, with the exact reason
phrases that go on the wire.

=============================================================================
WHY SO FEW?
=============================================================================

A static page server only has four outcomes for a request:

    ┌───────┬────────────────────────┬──────────────────────────────────────┐
    │ Code  │ Reason phrase          │ When                                 │
    ├───────┼────────────────────────┼──────────────────────────────────────┤
    │ 200   │ OK                     │ Route found, file read               │
    │ 400   │ BAD REQUEST            │ Request line could not be parsed     │
    │ 404   │ NOT FOUND              │ No route, or the file vanished       │
    │ 500   │ INTERNAL SERVER ERROR  │ Even the not-found page is missing   │
    └───────┴────────────────────────┴──────────────────────────────────────┘

Reason phrases are upper-case. Per RFC 7230 clients ignore the phrase, so
the casing is purely cosmetic, but it is part of our wire format and the
tests pin it.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'NOT FOUND'
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase written after the code in the status line."""
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes. Used to pick the access log level."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "BAD REQUEST",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
    HTTPStatus.INTERNAL_SERVER_ERROR: "INTERNAL SERVER ERROR",
}
