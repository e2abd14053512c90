"""
=============================================================================
WORKER POOL
=============================================================================

A fixed set of worker threads pulling jobs from one shared queue. This is
what decouples accepting connections from handling them.

=============================================================================
WHY A FIXED-SIZE POOL?
=============================================================================

Thread-per-connection looks simple:

    for connection in accept_connections():
        Thread(target=handle, args=(connection,)).start()

but 10,000 connections means 10,000 threads. A pool caps concurrency:

    pool = WorkerPool(4)

    for connection in accept_connections():
        pool.execute(Job(connection, handler))

At most 4 connections are handled at once. Everything else waits in the
queue. A slow client holds its worker for the whole request, which is the
backpressure: when all workers are busy, new work piles up in the queue
instead of spawning more threads.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          WorkerPool                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop ──execute(job)──►  ┌──────────────────────────────┐   │
    │   (producer)                     │  queue.Queue (unbounded,FIFO)│   │
    │                                  └──────────────┬───────────────┘   │
    │                                                 │ get()             │
    │                      ┌──────────────┬───────────┴──┬─────────────┐  │
    │                      ▼              ▼              ▼             ▼  │
    │                 ┌─────────┐   ┌─────────┐   ┌─────────┐   ┌─────────┐
    │                 │Worker-0 │   │Worker-1 │   │Worker-2 │   │Worker-3 │
    │                 └─────────┘   └─────────┘   └─────────┘   └─────────┘
    │                                                                      │
    │   • queue.Queue is the ONLY synchronized structure                  │
    │   • get() hands each job to exactly one worker                      │
    │   • a worker runs one job at a time, to completion                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SHUTDOWN: THE POISON PILL
=============================================================================

    shutdown():
        1. Mark the pool closed (execute() now raises PoolClosed)
        2. Put one None per worker at the BACK of the queue
        3. Join every worker

    Because the queue is FIFO, every job submitted before shutdown() is
    picked up before any worker sees its None. No job is dropped.

    Worker loop:
        while True:
            job = queue.get()      ← BLOCKS until something arrives
            if job is None:        ← poison pill
                break
            job()

=============================================================================
INTERVIEW QUESTIONS ABOUT THREAD POOLS
=============================================================================

Q: "Why not concurrent.futures.ThreadPoolExecutor?"
A: "It would work. Writing the pool by hand makes the moving parts
   visible: one queue, N consumers, sentinel-based shutdown. The
   behavior is the same: jobs run exactly once, on one thread."

Q: "What happens when a job raises?"
A: "The worker logs the traceback, counts the failure and moves on to
   the next job. A bad job must never kill a worker, or the pool would
   slowly shrink to zero."

Q: "Is Python's GIL a problem here?"
A: "Not for I/O-bound work. Threads release the GIL while blocked in
   recv(), sendall() and file reads."

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, List, Optional

if TYPE_CHECKING:
    from ..handlers.connection_handler import ConnectionHandler
    from .connection import Connection


logger = logging.getLogger(__name__)


class InvalidPoolSize(ValueError):
    """Raised when a pool is created with a size that is not a positive integer."""

    def __init__(self, size: Any):
        super().__init__(f"Worker pool size must be a positive integer, got {size!r}")
        self.size = size


class PoolClosed(RuntimeError):
    """Raised by execute() after the pool has been shut down."""


class WorkerState(Enum):
    """Worker lifecycle states."""
    IDLE = "idle"        # Waiting on the queue
    BUSY = "busy"        # Running a job
    STOPPED = "stopped"  # Received the poison pill and exited


@dataclass
class Job:
    """
    One unit of work: handle one accepted connection.

    An explicit value instead of an opaque closure, so it is obvious what
    crosses the thread boundary:

        - connection: owned by this job alone
        - handler:    shared, holds the read-only route table

    A job runs exactly once. Calling it a second time is a bug and raises.
    """

    connection: "Connection"
    handler: "ConnectionHandler"
    _executed: bool = field(default=False, init=False, repr=False)

    def __call__(self) -> None:
        if self._executed:
            raise RuntimeError(f"Job for connection {self.connection.id} already executed")
        self._executed = True
        self.handler.handle(self.connection)


class Worker(threading.Thread):
    """
    A worker thread.

    Pulls jobs from the shared queue and runs them one at a time until it
    receives the poison pill (None).
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Callable[[], None]]]", worker_id: int):
        """
        Args:
            task_queue: Queue shared by every worker in the pool.
            worker_id: Identifier used in the thread name and in logs.
        """
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id

        self.state = WorkerState.IDLE

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            job = self.task_queue.get()
            try:
                if job is None:
                    break
                self._execute(job)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, job: Callable[[], None]):
        """
        Run one job to completion.

        Exceptions are the job's own business: we log them and keep the
        worker alive for the next job.
        """
        self.state = WorkerState.BUSY
        start_time = time.monotonic()

        try:
            job()
            elapsed = time.monotonic() - start_time
            logger.debug(f"Worker {self.worker_id} completed job in {elapsed:.3f}s")
            self.tasks_completed += 1

        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.exception(f"Worker {self.worker_id} job failed after {elapsed:.3f}s: {e}")
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE


class WorkerPool:
    """
    Fixed-size pool of worker threads.

    Features:
    - Workers are started in the constructor and live until shutdown()
    - Unbounded FIFO queue: execute() never blocks
    - Graceful shutdown: queued jobs are drained before workers exit
    - Context manager support

    Usage:
        with WorkerPool(4) as pool:
            for conn in connections:
                pool.execute(Job(conn, handler))
        # all jobs done, all workers joined
    """

    def __init__(self, size: int):
        """
        Create the pool and start its workers.

        Args:
            size: Number of worker threads.

        Raises:
            InvalidPoolSize: If size is not a positive integer.
        """
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise InvalidPoolSize(size)

        self._size = size
        self._task_queue: "queue.Queue[Optional[Callable[[], None]]]" = queue.Queue()
        self._lock = threading.Lock()  # Guards _closed against execute/shutdown races
        self._closed = False

        logger.info(f"Starting worker pool with {size} workers")

        self._workers: List[Worker] = []
        for worker_id in range(size):
            worker = Worker(self._task_queue, worker_id)
            self._workers.append(worker)
            worker.start()

    def execute(self, job: Callable[[], None]) -> None:
        """
        Queue a job for any free worker.

        Jobs submitted from one thread enter the queue in submission order.
        With more than one worker they may still finish in any order.

        Raises:
            PoolClosed: If shutdown() has been called.
        """
        with self._lock:
            if self._closed:
                raise PoolClosed("Worker pool is shut down")
            self._task_queue.put(job)

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop accepting jobs and let the workers drain the queue.

        Args:
            wait: Join the worker threads before returning.
            timeout: Per-worker join timeout in seconds. None = wait forever.

        Safe to call more than once.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            # Pills go behind every job already queued
            for _ in self._workers:
                self._task_queue.put(None)

        logger.info("Shutting down worker pool...")

        if wait:
            for worker in self._workers:
                worker.join(timeout)
                if worker.is_alive():
                    logger.warning(f"Worker {worker.worker_id} did not stop within {timeout}s")

            logger.info("Worker pool shutdown complete")

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def size(self) -> int:
        return self._size

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_workers(self) -> int:
        """Workers that have not exited yet."""
        return sum(1 for w in self._workers if w.state != WorkerState.STOPPED)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def queue_size(self) -> int:
        """Jobs waiting for a worker (approximate, as with any Queue.qsize())."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and job counts, for logs and debugging."""
        return {
            "workers": {
                "total": len(self._workers),
                "active": self.active_workers,
                "busy": self.busy_workers,
            },
            "jobs": {
                "queued": self.queue_size,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
