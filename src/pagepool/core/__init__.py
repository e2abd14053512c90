"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking and concurrency plumbing:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Binds IP:PORT, runs the accept() loop on one thread              │
    │  • Wraps each client socket in a Connection                         │
    │  • Hands the Connection off, never handles it itself                │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ Job(connection, handler)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          WORKER POOL                                 │
    │  • N worker threads, fixed at startup                               │
    │  • One shared FIFO queue of jobs                                    │
    │  • Each job runs exactly once, on exactly one worker                │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ handler.handle(connection)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • read_line() / send() / close() over one client socket            │
    │  • Per-connection deadline                                           │
    │  • One request, then close (no keep-alive)                          │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionIOFailure, ConnectionState, LineTooLong
from .socket_server import SocketServer
from .thread_pool import InvalidPoolSize, Job, PoolClosed, Worker, WorkerPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ConnectionIOFailure",
    "LineTooLong",
    "WorkerPool",
    "Worker",
    "Job",
    "InvalidPoolSize",
    "PoolClosed",
]
