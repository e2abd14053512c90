"""
Unit tests for the worker pool.
"""

import threading
from collections import Counter

import pytest

from pagepool.core.thread_pool import (
    InvalidPoolSize,
    Job,
    PoolClosed,
    WorkerPool,
    WorkerState,
)


class Recorder:
    """Thread-safe record of which jobs ran, and on which thread."""

    def __init__(self):
        self._lock = threading.Lock()
        self.runs = []
        self.threads = set()

    def job(self, job_id: int):
        def run():
            with self._lock:
                self.runs.append(job_id)
                self.threads.add(threading.current_thread().name)
        return run


class TestPoolConstruction:

    @pytest.mark.parametrize("size", [0, -1, 2.5, "4", None, True])
    def test_invalid_size(self, size):
        """Test that bad sizes raise a typed error instead of starting threads."""
        with pytest.raises(InvalidPoolSize) as exc_info:
            WorkerPool(size)

        assert exc_info.value.size == size

    def test_invalid_size_is_value_error(self):
        with pytest.raises(ValueError):
            WorkerPool(0)

    def test_workers_start_immediately(self):
        with WorkerPool(3) as pool:
            assert pool.size == 3
            assert pool.active_workers == 3


class TestPoolExecution:

    def test_every_job_runs_exactly_once(self):
        """K jobs on N workers (K > N): K executions, no duplicates, none lost."""
        recorder = Recorder()

        with WorkerPool(4) as pool:
            for job_id in range(200):
                pool.execute(recorder.job(job_id))

        counts = Counter(recorder.runs)
        assert len(recorder.runs) == 200
        assert set(counts) == set(range(200))
        assert all(count == 1 for count in counts.values())

    def test_workers_run_in_parallel(self):
        """N jobs that wait for each other can only finish on N threads."""
        barrier = threading.Barrier(4, timeout=5.0)
        finished = []

        def job():
            barrier.wait()
            finished.append(True)

        with WorkerPool(4) as pool:
            for _ in range(4):
                pool.execute(job)

        assert len(finished) == 4

    def test_single_worker_preserves_submission_order(self):
        recorder = Recorder()

        with WorkerPool(1) as pool:
            for job_id in range(50):
                pool.execute(recorder.job(job_id))

        assert recorder.runs == list(range(50))
        assert recorder.threads == {"Worker-0"}

    def test_failing_job_does_not_kill_worker(self):
        recorder = Recorder()

        def explode():
            raise RuntimeError("boom")

        with WorkerPool(1) as pool:
            pool.execute(explode)
            pool.execute(recorder.job(1))

        assert recorder.runs == [1]
        assert pool.stats["jobs"] == {"queued": 0, "completed": 1, "failed": 1}

    def test_job_failure_is_logged(self, caplog):
        def explode():
            raise RuntimeError("boom")

        with WorkerPool(1) as pool:
            pool.execute(explode)

        assert "boom" in caplog.text


class TestPoolShutdown:

    def test_shutdown_drains_queued_jobs(self):
        """Jobs queued before shutdown() all run before the workers exit."""
        gate = threading.Event()
        recorder = Recorder()

        pool = WorkerPool(1)
        pool.execute(gate.wait)
        for job_id in range(10):
            pool.execute(recorder.job(job_id))

        stopper = threading.Thread(target=pool.shutdown)
        stopper.start()
        gate.set()
        stopper.join(timeout=5.0)

        assert not stopper.is_alive()
        assert recorder.runs == list(range(10))
        assert pool.active_workers == 0

    def test_execute_after_shutdown(self):
        pool = WorkerPool(2)
        pool.shutdown()

        assert pool.closed
        with pytest.raises(PoolClosed):
            pool.execute(lambda: None)

    def test_shutdown_is_idempotent(self):
        pool = WorkerPool(2)
        pool.shutdown()
        pool.shutdown()

        assert all(w.state == WorkerState.STOPPED for w in pool._workers)

    def test_shutdown_without_wait(self):
        gate = threading.Event()
        pool = WorkerPool(1)
        pool.execute(gate.wait)

        pool.shutdown(wait=False)
        assert pool.closed

        gate.set()
        for worker in pool._workers:
            worker.join(timeout=5.0)
        assert pool.active_workers == 0


class FakeConnection:
    id = "fake0001"


class FakeHandler:
    def __init__(self):
        self.handled = []

    def handle(self, conn):
        self.handled.append(conn)


class TestJob:

    def test_job_hands_connection_to_handler(self):
        conn, handler = FakeConnection(), FakeHandler()

        Job(conn, handler)()

        assert handler.handled == [conn]

    def test_job_runs_only_once(self):
        handler = FakeHandler()
        job = Job(FakeConnection(), handler)
        job()

        with pytest.raises(RuntimeError):
            job()
        assert len(handler.handled) == 1

    def test_jobs_through_pool(self):
        handler = FakeHandler()
        connections = [FakeConnection() for _ in range(20)]

        with WorkerPool(4) as pool:
            for conn in connections:
                pool.execute(Job(conn, handler))

        assert sorted(map(id, handler.handled)) == sorted(map(id, connections))
