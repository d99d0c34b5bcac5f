"""
Incident Tracker - Persistence Worker.

============================================================
RESPONSIBILITY
============================================================
Runs storage writes off the caller's thread.

- Bounded FIFO queue, one dedicated daemon thread
- Tasks run one at a time in submission order
- A failing task is logged and counted; the worker keeps going
- Submitting never blocks: a full queue drops the task

============================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .exceptions import WorkerStoppedError


logger = logging.getLogger(__name__)


Task = Callable[[], None]

_STOP = object()

_FLUSH_POLL_SECONDS = 0.05


@dataclass(frozen=True)
class WorkerStats:
    """Counters for a persistence worker."""
    submitted: int
    completed: int
    failed: int
    dropped: int
    pending: int


class PersistenceWorker:
    """
    Serial background executor for storage writes.

    There is no completion signal per task. Callers that need a
    write to be visible call flush(), which waits until every task
    submitted before it has run.
    """

    def __init__(
        self,
        name: str = "incident-persistence",
        max_queue_size: int = 10_000,
    ) -> None:
        self._name = name
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=max_queue_size)
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._running = False

        self._submitted = 0
        self._completed = 0
        self._failed = 0
        self._dropped = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the worker thread. Starting a running worker is a no-op."""
        with self._lock:
            if self._running:
                return
            self._thread = threading.Thread(
                target=self._worker_loop, name=self._name, daemon=True
            )
            self._running = True
            self._thread.start()
        logger.debug(f"Persistence worker '{self._name}' started")

    def stop(self, timeout: Optional[float] = 5.0) -> bool:
        """
        Stop the worker after the tasks already queued have run.

        Returns:
            True if the thread exited within the timeout
        """
        with self._lock:
            if not self._running:
                return True
            self._running = False
            thread = self._thread

        if thread is None:
            return True
        self._queue.put(_STOP)
        thread.join(timeout)
        stopped = not thread.is_alive()
        if stopped:
            logger.debug(f"Persistence worker '{self._name}' stopped")
        else:
            logger.warning(f"Persistence worker '{self._name}' did not stop within {timeout}s")
        return stopped

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, task: Task, description: str = "task") -> bool:
        """
        Queue a task without blocking.

        Returns:
            False if the queue was full and the task was dropped

        Raises:
            WorkerStoppedError: If the worker is not running
        """
        with self._lock:
            if not self._running:
                raise WorkerStoppedError(self._name)
            try:
                self._queue.put_nowait((task, description))
            except queue.Full:
                self._dropped += 1
                logger.warning(
                    f"Persistence queue full ({self._queue.maxsize}), dropped {description}"
                )
                return False
            self._submitted += 1
            return True

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every task submitted before this call has run.

        Must not be called from a task running on this worker.

        Returns:
            True if the queue drained within the timeout
        """
        if threading.current_thread() is self._thread:
            raise RuntimeError("flush() cannot be called from the worker thread")

        marker = threading.Event()
        with self._lock:
            if not self._running:
                return self._queue.empty()
            thread = self._thread

        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            self._queue.put((marker.set, None), timeout=timeout)
        except queue.Full:
            return False

        while not marker.wait(_FLUSH_POLL_SECONDS):
            if not thread.is_alive():
                # stop() slipped in before the marker; everything queued
                # ahead of its stop sentinel has already run
                return True
            if deadline is not None and time.monotonic() >= deadline:
                return False
        return True

    def stats(self) -> WorkerStats:
        with self._lock:
            return WorkerStats(
                submitted=self._submitted,
                completed=self._completed,
                failed=self._failed,
                dropped=self._dropped,
                pending=self._queue.qsize(),
            )

    # ------------------------------------------------------------------
    # Worker internals
    # ------------------------------------------------------------------

    def _worker_loop(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                task, description = item
                if description is None:
                    task()
                else:
                    self._run_task(task, description)
            finally:
                self._queue.task_done()

    def _run_task(self, task: Task, description: str) -> None:
        try:
            task()
        except Exception:
            with self._lock:
                self._failed += 1
            logger.exception(f"Persistence task failed: {description}")
            return

        with self._lock:
            self._completed += 1


__all__ = [
    "PersistenceWorker",
    "WorkerStats",
]
