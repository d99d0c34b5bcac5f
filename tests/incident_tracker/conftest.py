"""
Shared fixtures for incident tracker tests.
"""

from typing import Dict, Optional

import pytest

from incident_tracker.clock import MockClock
from incident_tracker.models import Incident, Severity
from incident_tracker.storage import dispose_engines


@pytest.fixture
def mock_clock():
    """Deterministic clock starting at a fixed instant."""
    return MockClock(initial_millis=1_700_000_000_000)


@pytest.fixture
def make_incident():
    """Factory for incidents with sensible defaults."""
    def _make(
        id: int,
        timestamp_millis: Optional[int] = None,
        error_code: str = "TEST_ERROR",
        severity: Severity = Severity.MEDIUM,
        message: str = "Test message",
        screen_name: Optional[str] = "TestScreen",
        metadata: Optional[Dict[str, str]] = None,
    ) -> Incident:
        return Incident(
            id=id,
            timestamp_millis=id * 1000 if timestamp_millis is None else timestamp_millis,
            error_code=error_code,
            severity=severity,
            message=message,
            screen_name=screen_name,
            metadata=metadata or {},
        )
    return _make


@pytest.fixture
def sqlite_url(tmp_path):
    """File-backed SQLite URL, engine disposed after the test."""
    url = f"sqlite:///{tmp_path / 'incidents.db'}"
    yield url
    dispose_engines(url)


_ENV_NAMES = [
    "INCIDENT_APP_VERSION",
    "INCIDENT_ENVIRONMENT",
    "INCIDENT_STORAGE_TYPE",
    "INCIDENT_MAX_STORED",
    "INCIDENT_DATABASE_URL",
    "INCIDENT_WRITE_QUEUE_SIZE",
    "INCIDENT_SQL_ECHO",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Tracker environment variables unset, restored after the test."""
    for name in _ENV_NAMES:
        # Recorded first so teardown also removes values loaded from .env files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch
