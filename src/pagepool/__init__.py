"""
=============================================================================
PAGEPOOL - Concurrent static page server
=============================================================================

Serves the files of a site directory over raw TCP sockets, one request per
connection, with a fixed pool of worker threads.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    pagepool/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m pagepool)
    ├── server.py            # StaticServer: wires everything together
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # One structured line per request
    ├── core/                # Networking and concurrency
    │   ├── socket_server.py # Listener + accept loop
    │   ├── connection.py    # Client socket wrapper
    │   └── thread_pool.py   # WorkerPool, Worker, Job
    ├── http/                # Protocol
    │   ├── request.py       # Request line parser
    │   ├── response.py      # Response serializer
    │   ├── routes.py        # RouteTable built from the filesystem
    │   └── status_codes.py  # Status codes and reason phrases
    └── handlers/
        └── connection_handler.py  # read → parse → resolve → write

=============================================================================
QUICK START
=============================================================================

    from pagepool import StaticServer, ServerConfig

    server = StaticServer(ServerConfig(root_dir="./site", port=7878))
    server.run()

    $ curl http://127.0.0.1:7878/index.html

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import StaticServer

__all__ = ["StaticServer", "ServerConfig", "__version__"]
