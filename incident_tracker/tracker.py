"""
Incident Tracker - Facade.

============================================================
RESPONSIBILITY
============================================================
Single entry point for the host application.

- init(config)       One-time setup; repeated calls are no-ops
- track_screen()     Sets the current screen context
- track_incident()   Records an incident without blocking
- get_summary()      Aggregates everything stored

============================================================
LIFECYCLE
============================================================
UNINITIALIZED --init()--> READY --shutdown()/reset()--> UNINITIALIZED

Every tracking or read call on an UNINITIALIZED tracker raises
TrackerNotInitializedError before any work is scheduled.

============================================================
USAGE
============================================================

```python
tracker = IncidentTracker()
tracker.init(TrackerConfig(app_version="1.4.0", environment="release"))

tracker.track_screen("Home")
tracker.track_incident("HOME_HIGH", Severity.HIGH, "Feed failed to load")

summary = tracker.get_summary()
```

============================================================
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from .clock import ClockProtocol
from .config import TrackerConfig
from .exceptions import TrackerNotInitializedError
from .models import (
    METADATA_APP_VERSION,
    METADATA_ENVIRONMENT,
    Incident,
    IncidentSummary,
    Severity,
)
from .repository import IncidentRepository
from .storage import create_storage
from .worker import PersistenceWorker, WorkerStats


logger = logging.getLogger(__name__)


class TrackerState(str, Enum):
    """Lifecycle state of a tracker."""
    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass(frozen=True)
class _TrackerContext:
    """Everything a READY tracker owns."""
    config: TrackerConfig
    repository: IncidentRepository


# =============================================================
# INCIDENT TRACKER
# =============================================================


class IncidentTracker:
    """
    Facade over the incident repository.

    One instance is created at application startup and shared with
    every call site. All methods are thread-safe.
    """

    def __init__(self, clock: Optional[ClockProtocol] = None) -> None:
        self._clock = clock
        self._context: Optional[_TrackerContext] = None
        self._init_lock = threading.Lock()
        self._screen_lock = threading.Lock()
        self._current_screen: Optional[str] = None

    # =========================================================
    # LIFECYCLE
    # =========================================================

    @property
    def state(self) -> TrackerState:
        if self._context is None:
            return TrackerState.UNINITIALIZED
        return TrackerState.READY

    @property
    def is_initialized(self) -> bool:
        return self._context is not None

    @property
    def config(self) -> TrackerConfig:
        return self._require("config").config

    def init(self, config: TrackerConfig) -> None:
        """
        Initialize the tracker.

        Builds the configured storage backend, starts the persistence
        worker and wires the repository. Calling init() on a READY
        tracker does nothing, even with a different config.
        """
        if self._context is not None:
            logger.debug("IncidentTracker already initialized, ignoring init()")
            return

        with self._init_lock:
            if self._context is not None:
                logger.debug("IncidentTracker already initialized, ignoring init()")
                return

            storage = create_storage(config)
            worker = PersistenceWorker(max_queue_size=config.write_queue_size)
            worker.start()
            try:
                repository = IncidentRepository(storage, worker, clock=self._clock)
            except Exception:
                worker.stop()
                storage.close()
                raise

            self._context = _TrackerContext(config=config, repository=repository)

        logger.info(
            f"IncidentTracker initialized (version={config.app_version}, "
            f"environment={config.environment}, storage={config.storage_type.value}, "
            f"max_stored={config.max_stored_incidents})"
        )

    def init_for_testing(self, config: TrackerConfig, repository: IncidentRepository) -> None:
        """Install a pre-built repository. Test use only."""
        with self._init_lock:
            self._context = _TrackerContext(config=config, repository=repository)
        with self._screen_lock:
            self._current_screen = None

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """
        Drain pending writes, stop the worker and return to UNINITIALIZED.

        Safe to call on an uninitialized tracker.
        """
        with self._init_lock:
            context = self._context
            self._context = None
        with self._screen_lock:
            self._current_screen = None

        if context is None:
            return
        context.repository.worker.stop(timeout)
        context.repository.close()
        logger.info("IncidentTracker shut down")

    def reset(self) -> None:
        """
        Clear initialization state and screen context.

        Intended for test isolation; allows init() to run again.
        """
        self.shutdown()

    def _require(self, operation: str) -> _TrackerContext:
        context = self._context
        if context is None:
            raise TrackerNotInitializedError(operation)
        return context

    # =========================================================
    # WRITE PATH
    # =========================================================

    @property
    def current_screen(self) -> Optional[str]:
        with self._screen_lock:
            return self._current_screen

    def track_screen(self, screen_name: str) -> None:
        """Set the screen applied to incidents that do not name one."""
        self._require("track_screen")
        with self._screen_lock:
            self._current_screen = screen_name

    def track_incident(
        self,
        error_code: str,
        severity: Severity,
        message: str,
        screen_name: Optional[str] = None,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> Incident:
        """
        Record an incident.

        Without an explicit screen_name the current screen is used. The
        effective screen becomes the current screen for later calls.
        appVersion and environment from the config are added to the
        metadata. Persistence happens on the worker thread.
        """
        context = self._require("track_incident")

        with self._screen_lock:
            effective_screen = screen_name if screen_name is not None else self._current_screen
            self._current_screen = effective_screen

        enriched = dict(metadata or {})
        enriched[METADATA_APP_VERSION] = context.config.app_version
        enriched[METADATA_ENVIRONMENT] = context.config.environment

        return context.repository.record_incident(
            error_code=error_code,
            severity=severity,
            message=message,
            screen_name=effective_screen,
            metadata=enriched,
        )

    def clear_incidents(self) -> None:
        """Queue deletion of all stored incidents."""
        self._require("clear_incidents").repository.clear_incidents()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until writes queued so far are persisted."""
        return self._require("flush").repository.flush(timeout)

    def worker_stats(self) -> WorkerStats:
        return self._require("worker_stats").repository.worker.stats()

    # =========================================================
    # READ PATH
    # =========================================================

    def get_summary(self) -> IncidentSummary:
        """Aggregate all stored incidents (blocking)."""
        return self._require("get_summary").repository.get_summary()

    async def get_summary_async(self) -> IncidentSummary:
        """Aggregate all stored incidents without blocking the event loop."""
        context = self._require("get_summary_async")
        return await context.repository.get_summary_async()


# =============================================================
# PROCESS DEFAULT TRACKER
# =============================================================

_default_tracker: Optional[IncidentTracker] = None
_tracker_lock = threading.Lock()


def get_tracker() -> IncidentTracker:
    """
    Get the process default tracker.

    Creates an uninitialized one if it doesn't exist.
    """
    global _default_tracker

    with _tracker_lock:
        if _default_tracker is None:
            _default_tracker = IncidentTracker()
        return _default_tracker


def set_tracker(tracker: Optional[IncidentTracker]) -> None:
    """Replace the process default tracker."""
    global _default_tracker

    with _tracker_lock:
        _default_tracker = tracker


__all__ = [
    "TrackerState",
    "IncidentTracker",
    "get_tracker",
    "set_tracker",
]
