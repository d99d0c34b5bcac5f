"""
Incident Tracker.

============================================================
CLIENT-SIDE INCIDENT LOGGING
============================================================

Records incidents (errors, crashes, simulated faults) with a
severity and the screen they happened on, keeps the newest
N of them in local storage, and summarizes them on demand.

============================================================
USAGE
============================================================

```python
from incident_tracker import IncidentTracker, Severity, TrackerConfig

tracker = IncidentTracker()
tracker.init(TrackerConfig(app_version="2.1.0", environment="release"))

tracker.track_screen("Detail")
tracker.track_incident(
    error_code="DETAIL_CRASH",
    severity=Severity.CRITICAL,
    message="Simulated crash triggered from Detail screen",
    metadata={"module": "detail"},
)

summary = tracker.get_summary()
print(summary.total_incidents, summary.incidents_by_screen)
```

============================================================
"""

from .clock import ClockProtocol, IncidentIdGenerator, MockClock, SystemClock
from .config import TrackerConfig
from .exceptions import (
    ConfigurationError,
    IncidentTrackerError,
    StorageError,
    TrackerNotInitializedError,
    WorkerStoppedError,
)
from .models import (
    UNKNOWN_SCREEN,
    Incident,
    IncidentSummary,
    Severity,
    StorageType,
    TimestampWithScreen,
)
from .repository import IncidentRepository
from .storage import (
    IncidentStorage,
    InMemoryIncidentStorage,
    SqlIncidentStorage,
    create_storage,
)
from .summary import ChartSeries, TimeBucket, TimeWindow, bucket_by_minute, summarize
from .tracker import IncidentTracker, TrackerState, get_tracker, set_tracker
from .worker import PersistenceWorker, WorkerStats


__all__ = [
    # Models
    "UNKNOWN_SCREEN",
    "Incident",
    "IncidentSummary",
    "Severity",
    "StorageType",
    "TimestampWithScreen",
    # Config
    "TrackerConfig",
    # Exceptions
    "IncidentTrackerError",
    "TrackerNotInitializedError",
    "ConfigurationError",
    "StorageError",
    "WorkerStoppedError",
    # Core
    "IncidentTracker",
    "TrackerState",
    "get_tracker",
    "set_tracker",
    "IncidentRepository",
    "PersistenceWorker",
    "WorkerStats",
    # Storage
    "IncidentStorage",
    "InMemoryIncidentStorage",
    "SqlIncidentStorage",
    "create_storage",
    # Aggregation
    "summarize",
    "TimeWindow",
    "TimeBucket",
    "ChartSeries",
    "bucket_by_minute",
    # Clock
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "IncidentIdGenerator",
]
