"""
=============================================================================
TCP LISTENER AND ACCEPT LOOP
=============================================================================

Binds the listening socket and hands every accepted client to a callback.
It never reads from or writes to a client itself; that is the workers' job.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create the listening socket
    2. bind()      Reserve IP:PORT          ← failure here is FATAL
    3. listen()    OS starts queueing connections (backlog)
    4. accept()    Returns a NEW socket per client; repeat forever
    5. close()     Release the listening socket on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘     Never sends/receives data
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client 1  │         │ Client 2  │         │ Client 3  │
    └───────────┘         └───────────┘         └───────────┘
          │                     │                     │
          └──────── Connection(...) → callback → WorkerPool.execute()

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

accept() blocks. To notice shutdown() we give the listening socket a 1s
timeout and loop:

    while not shutdown_event.is_set():
        try:
            accept()          # at most 1s
        except timeout:
            continue          # re-check the event

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) trigger shutdown().
Python only allows installing signal handlers from the MAIN thread, so
when the server runs in a background thread (tests, embedding) the
handlers are skipped and the owner calls shutdown() directly.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import TYPE_CHECKING, Callable, Optional, Tuple

from .connection import Connection

if TYPE_CHECKING:
    from ..config import ServerConfig


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP listener.

    Usage:
        def on_connection(conn: Connection):
            pool.execute(Job(conn, handler))

        server = SocketServer(config)
        server.start(on_connection)   # Blocks until shutdown()
    """

    def __init__(self, config: "ServerConfig"):
        """
        Args:
            config: Server configuration (host, port, backlog, timeouts).

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None

        # Set once the socket is listening, cleared again on stop
        self._ready_event = threading.Event()
        # Set by shutdown() and never cleared: a stop requested before
        # start() still stops the server
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        With port 0 in the config the OS picks a free port; this returns the
        real one once the socket is bound.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Send responses immediately, they are written in one sendall()
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        BLOCKS until shutdown() is called. Returns at once, without binding,
        if shutdown() was already called.

        Args:
            connection_handler: Called on the accept thread with every new
                                Connection. Must return quickly (submit to
                                a pool, do not handle inline).

        Raises:
            OSError: If the address cannot be bound. This is one of the few
                     errors that should end the process.
        """
        if self._shutdown_event.is_set():
            logger.info("Shutdown requested before start, not binding")
            return

        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._shutdown_event.is_set():
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                timeout=self.config.timeout,
                max_line_size=self.config.max_line_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """
        Stop the accept loop. Safe to call from any thread, or from a
        signal handler, any number of times.
        """
        if not self._shutdown_event.is_set():
            logger.info("Shutting down socket server...")
        self._shutdown_event.set()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)

