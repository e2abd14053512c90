"""
=============================================================================
PAGE SERVER
=============================================================================

Ties the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         StaticServer                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   startup:   ServerConfig.validate()                                │
    │              RouteTable.from_directory(root_dir)   (once)           │
    │              WorkerPool(workers)                   (threads start)  │
    │              ConnectionHandler(table, 404 page)                     │
    │                                                                      │
    │   run():     SocketServer.start(_handle_connection)   ← blocks      │
    │                  │                                                   │
    │                  └─► for each accepted connection:                  │
    │                          pool.execute(Job(conn, handler))           │
    │                                                                      │
    │   shutdown:  stop accepting → drain the queue → join workers        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The accept thread never does I/O on a client; it only wraps and queues.
A slow client therefore delays at most one worker, never the accept loop.

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Connection, Job, PoolClosed, SocketServer, WorkerPool
from .handlers import ConnectionHandler
from .http import RouteTable


logger = logging.getLogger(__name__)


class StaticServer:
    """
    Concurrent static page server.

    Usage:
        server = StaticServer(ServerConfig(root_dir="./site", workers=4))
        server.run()    # Blocks until Ctrl+C / SIGTERM / server.shutdown()

    Or with a hand-built route table:
        table = RouteTable({"/index.html": "pages/index.html"})
        server = StaticServer(ServerConfig(port=0), route_table=table)
    """

    def __init__(self, config: Optional[ServerConfig] = None, route_table: Optional[RouteTable] = None):
        """
        Args:
            config: Server configuration. Defaults are used if omitted.
            route_table: Routes to serve. Scanned from config.root_dir if
                         omitted.

        Raises:
            InvalidPoolSize: If config.workers is not a positive integer.
            ValueError: For any other invalid configuration.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        if route_table is None:
            route_table = RouteTable.from_directory(
                self.config.root_dir,
                reserved_names=self.config.reserved_names,
                flat=self.config.flat,
                index_file=self.config.index_file,
            )
        self.route_table = route_table

        self.handler = ConnectionHandler(
            route_table=self.route_table,
            not_found_page=self.config.not_found_path,
            log_format=self.config.log_format,
        )

        self._socket_server = SocketServer(self.config)
        self._pool: Optional[WorkerPool] = None

    @property
    def address(self) -> Tuple[str, int]:
        """The (host, port) actually bound, once the server is ready."""
        return self._socket_server.address

    @property
    def pool(self) -> Optional[WorkerPool]:
        return self._pool

    def run(self) -> None:
        """
        Start the pool and serve until shutdown.

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        self._pool = WorkerPool(self.config.workers)

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._pool.shutdown(wait=True)
            logger.info("Server stopped")

    def shutdown(self) -> None:
        """Stop accepting connections. run() returns once queued jobs finish."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is bound. Returns False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _handle_connection(self, conn: Connection) -> None:
        """Called on the accept thread for each new connection."""
        try:
            self._pool.execute(Job(conn, self.handler))
        except PoolClosed:
            logger.warning(f"[{conn.id}] Pool is shut down, dropping connection")
            conn.close()


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging the way the CLI runs the server."""
    numeric = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("pagepool").setLevel(numeric)
