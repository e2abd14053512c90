"""
Unit tests for HTTP response serialization.
"""

from pagepool.http.response import (
    HTTPResponse,
    bad_request,
    internal_error,
    not_found,
    ok,
)
from pagepool.http.status_codes import HTTPStatus


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 NOT FOUND"
        assert HTTPResponse(HTTPStatus.BAD_REQUEST).status_line == "HTTP/1.1 400 BAD REQUEST"
        assert (
            HTTPResponse(HTTPStatus.INTERNAL_SERVER_ERROR).status_line
            == "HTTP/1.1 500 INTERNAL SERVER ERROR"
        )

    def test_to_bytes_exact(self):
        """Status line, Content-Length, blank line, body. Nothing else."""
        response = HTTPResponse(HTTPStatus.OK, b"hi")

        assert response.to_bytes() == b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nhi"

    def test_content_length_counts_bytes(self):
        """Test that Content-Length is the byte length, not the char length."""
        response = ok("héllo")

        assert response.content_length == 6
        assert b"Content-Length: 6\r\n" in response.to_bytes()

    def test_str_body_encoded(self):
        response = HTTPResponse(HTTPStatus.OK, "text")

        assert response.body == b"text"


class TestResponseHelpers:
    """Tests for the response helper functions."""

    def test_not_found(self):
        assert not_found(b"missing").to_bytes() == (
            b"HTTP/1.1 404 NOT FOUND\r\nContent-Length: 7\r\n\r\nmissing"
        )

    def test_bad_request_has_empty_body(self):
        assert bad_request().to_bytes() == b"HTTP/1.1 400 BAD REQUEST\r\nContent-Length: 0\r\n\r\n"

    def test_internal_error_has_empty_body(self):
        response = internal_error()

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.body == b""


class TestHTTPStatus:

    def test_int_compatible(self):
        assert HTTPStatus.NOT_FOUND == 404

    def test_error_classes(self):
        assert HTTPStatus.OK.is_success
        assert not HTTPStatus.OK.is_error
        assert HTTPStatus.BAD_REQUEST.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error
