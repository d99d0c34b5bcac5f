"""
Tests for the persistence worker.
"""

import threading

import pytest

from incident_tracker.exceptions import WorkerStoppedError
from incident_tracker.worker import PersistenceWorker


@pytest.fixture
def worker():
    w = PersistenceWorker(name="test-worker")
    w.start()
    yield w
    w.stop()


class TestPersistenceWorker:
    """Tests for PersistenceWorker."""

    def test_tasks_run_in_submission_order(self, worker):
        seen = []
        for n in range(50):
            worker.submit(lambda n=n: seen.append(n))

        assert worker.flush(timeout=5)
        assert seen == list(range(50))

    def test_tasks_run_off_caller_thread(self, worker):
        threads = []
        worker.submit(lambda: threads.append(threading.current_thread().name))
        worker.flush(timeout=5)

        assert threads == ["test-worker"]

    def test_failing_task_does_not_stop_worker(self, worker):
        seen = []

        def boom():
            raise RuntimeError("disk full")

        worker.submit(boom, description="boom")
        worker.submit(lambda: seen.append("after"))
        worker.flush(timeout=5)

        assert seen == ["after"]
        stats = worker.stats()
        assert stats.failed == 1
        assert stats.completed == 1

    def test_full_queue_drops_without_blocking(self):
        worker = PersistenceWorker(name="tiny", max_queue_size=1)
        worker.start()
        gate = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            gate.wait(5)

        try:
            assert worker.submit(blocker)
            started.wait(5)
            assert worker.submit(lambda: None)
            assert worker.submit(lambda: None) is False

            stats = worker.stats()
            assert stats.dropped == 1
            assert stats.submitted == 2
        finally:
            gate.set()
            worker.stop()

    def test_submit_after_stop_raises(self):
        worker = PersistenceWorker()
        worker.start()
        worker.stop()

        with pytest.raises(WorkerStoppedError):
            worker.submit(lambda: None)

    def test_submit_before_start_raises(self):
        with pytest.raises(WorkerStoppedError):
            PersistenceWorker().submit(lambda: None)

    def test_stop_runs_queued_tasks(self):
        worker = PersistenceWorker()
        worker.start()
        seen = []
        for n in range(10):
            worker.submit(lambda n=n: seen.append(n))

        assert worker.stop(timeout=5)
        assert seen == list(range(10))
        assert not worker.is_running

    def test_start_and_stop_are_idempotent(self):
        worker = PersistenceWorker()
        worker.start()
        worker.start()
        assert worker.stop()
        assert worker.stop()

    def test_flush_on_stopped_worker_returns_immediately(self):
        assert PersistenceWorker().flush(timeout=1)

    def test_flush_from_worker_thread_rejected(self, worker):
        errors = []

        def nested_flush():
            try:
                worker.flush()
            except RuntimeError as e:
                errors.append(e)

        worker.submit(nested_flush)
        worker.flush(timeout=5)

        assert len(errors) == 1

    def test_stats_after_flush(self, worker):
        worker.submit(lambda: None)
        worker.submit(lambda: None)
        worker.flush(timeout=5)

        stats = worker.stats()
        assert stats.submitted == 2
        assert stats.completed == 2
        assert stats.pending == 0

    def test_flush_returns_when_stop_lands_before_marker(self):
        worker = PersistenceWorker(name="stop-race")
        worker.start()
        seen = []
        worker.submit(lambda: seen.append("queued"))

        original_put = worker._queue.put

        def stop_then_put(item, block=True, timeout=None):
            # stop() enqueues its sentinel between the running check and the marker
            worker._queue.put = original_put
            worker.stop(timeout=5)
            original_put(item, block, timeout)

        worker._queue.put = stop_then_put
        results = []
        flusher = threading.Thread(target=lambda: results.append(worker.flush()))
        flusher.start()
        flusher.join(5)

        assert not flusher.is_alive()
        assert results == [True]
        assert seen == ["queued"]
