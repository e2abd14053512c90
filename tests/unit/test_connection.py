"""
Unit tests for Connection: line reading, deadlines and closing.
"""

import socket
import threading
import time

import pytest

from pagepool.core.connection import (
    DRAIN_TIMEOUT,
    Connection,
    ConnectionIOFailure,
    ConnectionState,
    LineTooLong,
)


def trickle(sock: socket.socket, data: bytes, interval: float) -> threading.Thread:
    """Send data one byte at a time from a background thread."""
    def run():
        try:
            for byte in data:
                sock.send(bytes([byte]))
                time.sleep(interval)
        except OSError:
            pass  # Server gave up and closed

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread


class TestReadLine:

    def test_line_split_across_packets(self, socket_pair):
        client, conn = socket_pair
        client.sendall(b"GET /ind")
        client.sendall(b"ex.html HTTP/1.1\r\nHost: x\r\n")

        assert conn.read_line() == "GET /index.html HTTP/1.1"

    def test_eof_before_any_data(self, socket_pair):
        client, conn = socket_pair
        client.shutdown(socket.SHUT_WR)

        assert conn.read_line() is None

    def test_partial_line_at_eof(self, socket_pair):
        client, conn = socket_pair
        client.sendall(b"GET / HTTP/1.1")
        client.shutdown(socket.SHUT_WR)

        assert conn.read_line() == "GET / HTTP/1.1"

    def test_line_too_long(self, socket_pair):
        client, conn = socket_pair
        conn.max_line_size = 32
        client.sendall(b"x" * 100)

        with pytest.raises(LineTooLong) as exc_info:
            conn.read_line()

        assert exc_info.value.limit == 32


class TestDeadline:

    def test_silent_client_times_out(self):
        client, server = socket.socketpair()
        conn = Connection(socket=server, address=("127.0.0.1", 50002), timeout=0.2)
        try:
            with pytest.raises(ConnectionIOFailure):
                conn.read_line()
        finally:
            conn.close()
            client.close()

    def test_deadline_covers_the_whole_line(self):
        """Bytes arriving just inside the timeout do not extend the deadline."""
        client, server = socket.socketpair()
        conn = Connection(socket=server, address=("127.0.0.1", 50003), timeout=0.5)
        trickle(client, b"GET /index.html HTTP/1.1\r\n", interval=0.3)
        try:
            start = time.monotonic()
            with pytest.raises(ConnectionIOFailure):
                conn.read_line()

            assert time.monotonic() - start < 1.5
        finally:
            conn.close()
            client.close()

    def test_no_deadline(self, socket_pair):
        client, conn = socket_pair
        conn.timeout = None
        client.sendall(b"GET / HTTP/1.1\r\n")

        assert conn.read_line() == "GET / HTTP/1.1"
        assert conn.socket.gettimeout() is None


class TestClose:

    def test_close_is_idempotent(self, socket_pair):
        _, conn = socket_pair
        conn.close()
        conn.close()

        assert conn.state == ConnectionState.CLOSED

    def test_peer_sees_eof(self, socket_pair):
        client, conn = socket_pair
        conn.send(b"bye")
        client.shutdown(socket.SHUT_WR)
        conn.close()

        assert client.recv(16) == b"bye"
        assert client.recv(16) == b""

    def test_drain_is_time_bounded(self, socket_pair):
        """A client that keeps sending after the response cannot hold close()."""
        client, conn = socket_pair
        trickle(client, b"x" * 20, interval=0.3)

        start = time.monotonic()
        conn.close()

        assert time.monotonic() - start < DRAIN_TIMEOUT + 1.0
        assert conn.state == ConnectionState.CLOSED
