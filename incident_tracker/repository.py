"""
Incident Tracker - Repository.

============================================================
RESPONSIBILITY
============================================================
Mediates between the tracker and storage.

- record_incident(): builds the Incident (id, timestamp) and hands
  the write to the persistence worker, fire-and-forget
- get_summary(): loads every stored incident on a compute executor
  and aggregates it; nothing is cached

============================================================
CONSISTENCY
============================================================
Reads do not wait for queued writes. A summary requested right
after record_incident() may not include that incident unless the
caller flush()es the write queue first.

============================================================
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Mapping, Optional

from .clock import ClockProtocol, IncidentIdGenerator, SystemClock
from .exceptions import WorkerStoppedError
from .models import Incident, IncidentSummary, Severity
from .storage.base import IncidentStorage
from .summary import summarize
from .worker import PersistenceWorker


logger = logging.getLogger(__name__)


class IncidentRepository:
    """
    Write and read paths over one storage backend.

    The repository owns its compute executor; the persistence worker
    is shared with whoever created it.
    """

    def __init__(
        self,
        storage: IncidentStorage,
        worker: PersistenceWorker,
        clock: Optional[ClockProtocol] = None,
        compute_workers: int = 2,
    ) -> None:
        self._storage = storage
        self._worker = worker
        self._clock = clock or SystemClock()
        self._ids = IncidentIdGenerator(self._clock)
        self._ids.seed(storage.max_id())
        self._executor = ThreadPoolExecutor(
            max_workers=compute_workers,
            thread_name_prefix="incident-compute",
        )

    @property
    def storage(self) -> IncidentStorage:
        return self._storage

    @property
    def worker(self) -> PersistenceWorker:
        return self._worker

    # =========================================================
    # WRITE PATH
    # =========================================================

    def record_incident(
        self,
        error_code: str,
        severity: Severity,
        message: str,
        screen_name: Optional[str],
        metadata: Mapping[str, str],
    ) -> Incident:
        """
        Build an incident and queue it for persistence.

        Returns the incident as built. Whether it was persisted is not
        observable here; write failures are logged by the worker.
        """
        incident = Incident(
            id=self._ids.next_id(),
            timestamp_millis=self._clock.now_millis(),
            error_code=error_code,
            severity=severity,
            message=message,
            screen_name=screen_name,
            metadata=metadata,
        )
        self._submit(
            lambda: self._storage.save(incident),
            description=f"save incident {incident.id} ({incident.error_code})",
        )
        return incident

    def clear_incidents(self) -> None:
        """Queue removal of every stored incident behind pending writes."""
        self._submit(self._storage.clear_all, description="clear incidents")

    def _submit(self, task, description: str) -> None:
        try:
            self._worker.submit(task, description=description)
        except WorkerStoppedError:
            # Shutdown raced this call
            logger.warning(f"Persistence worker stopped, dropped {description}")

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued writes to finish."""
        return self._worker.flush(timeout)

    # =========================================================
    # READ PATH
    # =========================================================

    def get_summary(self) -> IncidentSummary:
        """Load all incidents and aggregate them (blocking)."""
        return self._executor.submit(self._compute_summary).result()

    async def get_summary_async(self) -> IncidentSummary:
        """Awaitable variant of get_summary()."""
        return await asyncio.wrap_future(self._executor.submit(self._compute_summary))

    def _compute_summary(self) -> IncidentSummary:
        incidents = self._storage.get_all()
        summary = summarize(incidents)
        logger.debug(f"Computed summary over {summary.total_incidents} incident(s)")
        return summary

    def close(self) -> None:
        """Release the compute executor and the storage backend."""
        self._executor.shutdown(wait=True)
        self._storage.close()
