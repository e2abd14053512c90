"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the three operations a handler
needs: read the request line, send the response, close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A client that sends

    GET /index.html HTTP/1.1\r\n

might arrive as:

    recv() → "GET /ind"
    recv() → "ex.html HTTP/1.1\r\nHost: ..."

So we buffer until we see the line terminator (\n) and split there.
Anything after the first line (headers, body) is ignored; this server only
cares about the request line.

=============================================================================
DEADLINES
=============================================================================

Every connection gets ONE deadline (ServerConfig.timeout, 30s by default)
for all of its reads and writes together. It starts with the first read.
Without it, a client that connects and never sends a byte would hold a
worker thread forever:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  4 workers, 4 silent clients  →  server stops answering anyone      │
    └─────────────────────────────────────────────────────────────────────┘

A per-recv() timeout is not enough: a client trickling one byte just
before each timeout expires would still hold the worker for up to
max_line_size × timeout. So before every recv() and sendall() the socket
timeout is set to whatever is LEFT of the deadline.

A missed deadline surfaces as ConnectionIOFailure like any other socket
error, and the handler abandons the connection.

=============================================================================
CLOSING WITHOUT LOSING THE RESPONSE
=============================================================================

Closing a socket that still has UNREAD data in its receive buffer makes
the kernel send RST instead of FIN. The client may then discard the
response we just wrote. Browsers always send headers after the request
line, and we never read them, so close() does:

    1. shutdown(SHUT_WR)   → FIN: "no more data from us"
    2. drain recv()        → swallow headers until the client closes,
                              for at most DRAIN_TIMEOUT seconds in total
    3. close()             → release the file descriptor

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


logger = logging.getLogger(__name__)

# Total time close() spends swallowing unread client input
DRAIN_TIMEOUT = 0.5


class ConnectionIOFailure(ConnectionError):
    """
    A read or write on the client socket failed.

    Peer reset, broken pipe, timeout: the cause is kept as __cause__.
    The only sensible reaction is to give up on this one connection.
    """


class LineTooLong(ValueError):
    """The request line exceeded the configured maximum before a newline arrived."""

    def __init__(self, limit: int):
        super().__init__(f"Request line longer than {limit} bytes")
        self.limit = limit


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""
    NEW = "new"              # Just accepted
    READING = "reading"      # Waiting for the request line
    WRITING = "writing"      # Sending the response
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier (for logs).
        timeout: Deadline in seconds for all reads and writes together,
                 counted from the first read. None = block forever.
        max_line_size: Longest request line accepted, in bytes.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.monotonic)

    buffer_size: int = 4096
    timeout: Optional[float] = 30.0
    max_line_size: int = 8192

    _buffer: bytes = field(default=b"", repr=False)
    _deadline: Optional[float] = field(default=None, init=False, repr=False)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else "-"

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.monotonic() - self.created_at

    def _arm(self) -> None:
        """
        Set the socket timeout to what is left of the deadline.

        Raises:
            ConnectionIOFailure: If the deadline has already passed.
        """
        if self.timeout is None:
            self.socket.settimeout(None)
            return

        now = time.monotonic()
        if self._deadline is None:
            self._deadline = now + self.timeout

        remaining = self._deadline - now
        if remaining <= 0:
            raise ConnectionIOFailure(f"[{self.id}] Deadline of {self.timeout}s exceeded")
        self.socket.settimeout(remaining)

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> Optional[str]:
        """
        Read the first line from the client.

        Returns:
            The line without its terminator, or None if the client closed
            the connection before sending anything. If the client closes
            mid-line, the partial line is returned.

        Raises:
            ConnectionIOFailure: On socket errors and timeouts.
            LineTooLong: If max_line_size bytes arrive without a newline.
        """
        self.state = ConnectionState.READING

        while b"\n" not in self._buffer:
            if len(self._buffer) > self.max_line_size:
                raise LineTooLong(self.max_line_size)

            chunk = self._recv()
            if not chunk:
                break  # EOF
            self._buffer += chunk

        if not self._buffer:
            return None

        line, _, rest = self._buffer.partition(b"\n")
        self._buffer = rest

        if len(line) > self.max_line_size:
            raise LineTooLong(self.max_line_size)

        return line.rstrip(b"\r").decode("utf-8", errors="replace")

    def _recv(self) -> bytes:
        self._arm()
        try:
            return self.socket.recv(self.buffer_size)
        except OSError as e:
            # socket.timeout is an OSError too
            raise ConnectionIOFailure(f"[{self.id}] Read failed: {e}") from e

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> None:
        """
        Send the whole response.

        sendall() keeps calling send() until every byte is out; a plain
        send() may write only part of the buffer.

        Raises:
            ConnectionIOFailure: If the client went away or the write timed out.
        """
        self.state = ConnectionState.WRITING
        self._arm()
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise ConnectionIOFailure(f"[{self.id}] Send failed: {e}") from e

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully. Idempotent.

        Errors here are expected (the client may already be gone) and are
        not reported; there is nothing left to do with this socket anyway.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        # Drain unread input so close() does not send a reset
        drain_until = time.monotonic() + DRAIN_TIMEOUT
        try:
            while True:
                remaining = drain_until - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                if not self.socket.recv(self.buffer_size):
                    break
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age * 1000:.1f}ms")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
