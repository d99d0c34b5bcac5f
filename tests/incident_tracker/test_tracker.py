"""
Tests for the IncidentTracker facade.

============================================================
PURPOSE
============================================================
1. Lifecycle: init, idempotence, reset
2. Screen context inheritance
3. Metadata enrichment
4. Errors before init

============================================================
"""

import threading

import pytest

from incident_tracker.config import TrackerConfig
from incident_tracker.exceptions import TrackerNotInitializedError
from incident_tracker.models import METADATA_APP_VERSION, METADATA_ENVIRONMENT, Severity, StorageType
from incident_tracker.repository import IncidentRepository
from incident_tracker.storage import InMemoryIncidentStorage
from incident_tracker.tracker import IncidentTracker, TrackerState, get_tracker, set_tracker
from incident_tracker.worker import PersistenceWorker


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def config():
    return TrackerConfig(
        app_version="1.0.0",
        environment="test",
        storage_type=StorageType.MEMORY,
        max_stored_incidents=100,
    )


@pytest.fixture
def tracker(config, mock_clock):
    t = IncidentTracker(clock=mock_clock)
    t.init(config)
    yield t
    t.reset()


# ============================================================
# LIFECYCLE
# ============================================================

class TestLifecycle:
    """Tests for init, shutdown and reset."""

    def test_starts_uninitialized(self):
        tracker = IncidentTracker()
        assert tracker.state == TrackerState.UNINITIALIZED
        assert not tracker.is_initialized

    def test_init_makes_ready(self, tracker, config):
        assert tracker.state == TrackerState.READY
        assert tracker.config is config

    def test_second_init_is_ignored(self, tracker, config):
        tracker.init(config.with_overrides(app_version="9.9.9"))

        assert tracker.config.app_version == "1.0.0"

    def test_concurrent_init_builds_once(self, config):
        tracker = IncidentTracker()
        barrier = threading.Barrier(8)

        def _init():
            barrier.wait()
            tracker.init(config)

        threads = [threading.Thread(target=_init) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        try:
            assert tracker.is_initialized
            tracker.track_incident("E1", Severity.LOW, "m")
            tracker.flush(timeout=5)
            assert tracker.get_summary().total_incidents == 1
        finally:
            tracker.reset()

    def test_reset_allows_reinit_with_new_config(self, tracker, config):
        tracker.track_screen("Home")
        tracker.reset()

        assert tracker.state == TrackerState.UNINITIALIZED
        assert tracker.current_screen is None

        tracker.init(config.with_overrides(app_version="2.0.0"))
        assert tracker.config.app_version == "2.0.0"

    def test_shutdown_on_uninitialized_is_safe(self):
        IncidentTracker().shutdown()

    def test_shutdown_drains_pending_writes(self, config, sqlite_url):
        persistent = config.with_overrides(
            storage_type=StorageType.PERSISTENT, database_url=sqlite_url
        )
        tracker = IncidentTracker()
        tracker.init(persistent)
        for n in range(5):
            tracker.track_incident(f"E{n}", Severity.LOW, "m")
        tracker.shutdown()

        tracker.init(persistent)
        try:
            assert tracker.get_summary().total_incidents == 5
        finally:
            tracker.shutdown()

    def test_write_racing_shutdown_does_not_raise(self, config):
        tracker = IncidentTracker()
        tracker.init(config)
        # A write that read the context just before shutdown() cleared it
        repository = tracker._require("track_incident").repository
        tracker.shutdown()

        incident = repository.record_incident(
            error_code="E1",
            severity=Severity.LOW,
            message="m",
            screen_name=None,
            metadata={},
        )
        repository.clear_incidents()

        assert incident.error_code == "E1"

    def test_init_for_testing_uses_given_repository(self, config, mock_clock):
        worker = PersistenceWorker()
        worker.start()
        storage = InMemoryIncidentStorage(max_size=10)
        tracker = IncidentTracker()
        tracker.init_for_testing(config, IncidentRepository(storage, worker, clock=mock_clock))

        try:
            tracker.track_incident("E1", Severity.HIGH, "m")
            tracker.flush(timeout=5)
            assert storage.count() == 1
        finally:
            tracker.reset()


class TestNotInitialized:
    """Every call before init() fails fast."""

    @pytest.mark.parametrize("call", [
        lambda t: t.track_screen("Home"),
        lambda t: t.track_incident("E1", Severity.LOW, "m"),
        lambda t: t.get_summary(),
        lambda t: t.clear_incidents(),
        lambda t: t.flush(),
        lambda t: t.worker_stats(),
        lambda t: t.config,
    ])
    def test_raises(self, call):
        with pytest.raises(TrackerNotInitializedError):
            call(IncidentTracker())

    @pytest.mark.asyncio
    async def test_async_summary_raises(self):
        with pytest.raises(TrackerNotInitializedError):
            await IncidentTracker().get_summary_async()

    def test_track_screen_does_not_change_context(self):
        tracker = IncidentTracker()
        with pytest.raises(TrackerNotInitializedError):
            tracker.track_screen("Home")
        assert tracker.current_screen is None

    def test_raises_after_reset(self, tracker):
        tracker.reset()
        with pytest.raises(TrackerNotInitializedError):
            tracker.track_incident("E1", Severity.LOW, "m")


# ============================================================
# SCREEN CONTEXT
# ============================================================

class TestScreenContext:
    """Tests for screen inheritance."""

    def test_incident_inherits_current_screen(self, tracker):
        tracker.track_screen("Home")

        incident = tracker.track_incident("HOME_HIGH", Severity.HIGH, "m")

        assert incident.screen_name == "Home"

    def test_explicit_screen_wins(self, tracker):
        tracker.track_screen("Home")

        incident = tracker.track_incident("E1", Severity.LOW, "m", screen_name="Detail")

        assert incident.screen_name == "Detail"
        assert tracker.current_screen == "Detail"

    def test_no_screen_recorded_as_absent(self, tracker):
        incident = tracker.track_incident("E1", Severity.LOW, "m")

        assert incident.screen_name is None
        tracker.flush(timeout=5)
        assert tracker.get_summary().incidents_by_screen == {"unknown": 1}

    def test_screen_changes_apply_to_later_incidents(self, tracker):
        tracker.track_screen("Home")
        first = tracker.track_incident("E1", Severity.LOW, "m")
        tracker.track_screen("Detail")
        second = tracker.track_incident("E2", Severity.LOW, "m")

        assert (first.screen_name, second.screen_name) == ("Home", "Detail")

    def test_summary_by_screen(self, tracker):
        tracker.track_screen("Home")
        tracker.track_incident("HOME_HIGH", Severity.HIGH, "m")
        tracker.track_screen("Detail")
        tracker.track_incident("DETAIL_CRASH", Severity.CRITICAL, "m")
        tracker.track_incident("DETAIL_LOW", Severity.LOW, "m")
        tracker.flush(timeout=5)

        summary = tracker.get_summary()

        assert summary.total_incidents == 3
        assert summary.incidents_by_screen == {"Home": 1, "Detail": 2}
        assert summary.incidents_by_severity == {
            Severity.HIGH: 1, Severity.CRITICAL: 1, Severity.LOW: 1,
        }


# ============================================================
# METADATA
# ============================================================

class TestMetadata:
    """Tests for metadata enrichment."""

    def test_config_values_added(self, tracker):
        incident = tracker.track_incident("E1", Severity.LOW, "m")

        assert incident.metadata == {METADATA_APP_VERSION: "1.0.0", METADATA_ENVIRONMENT: "test"}

    def test_caller_metadata_preserved(self, tracker):
        incident = tracker.track_incident(
            "E1", Severity.LOW, "m", metadata={"module": "detail", "crashType": "simulated"}
        )

        assert incident.metadata["module"] == "detail"
        assert incident.metadata["crashType"] == "simulated"
        assert incident.metadata[METADATA_APP_VERSION] == "1.0.0"

    def test_config_overrides_caller_keys(self, tracker):
        incident = tracker.track_incident(
            "E1", Severity.LOW, "m", metadata={METADATA_APP_VERSION: "spoofed"}
        )

        assert incident.metadata[METADATA_APP_VERSION] == "1.0.0"

    def test_caller_mapping_not_modified(self, tracker):
        metadata = {"module": "home"}
        tracker.track_incident("E1", Severity.LOW, "m", metadata=metadata)

        assert metadata == {"module": "home"}

    def test_metadata_persisted(self, tracker):
        tracker.track_incident("E1", Severity.LOW, "m", metadata={"module": "home"})
        tracker.flush(timeout=5)

        stored = tracker._require("test").repository.storage.get_all()[0]
        assert stored.metadata["module"] == "home"
        assert stored.metadata[METADATA_ENVIRONMENT] == "test"


# ============================================================
# READ PATH
# ============================================================

class TestReadPath:
    """Tests for summary and clearing."""

    def test_empty_summary(self, tracker):
        assert tracker.get_summary().total_incidents == 0

    def test_clear_incidents(self, tracker):
        tracker.track_incident("E1", Severity.LOW, "m")
        tracker.clear_incidents()
        tracker.flush(timeout=5)

        assert tracker.get_summary().total_incidents == 0

    def test_cap_applies_through_facade(self, config, mock_clock):
        tracker = IncidentTracker(clock=mock_clock)
        tracker.init(config.with_overrides(max_stored_incidents=3))
        try:
            for n in range(5):
                tracker.track_incident(f"E{n}", Severity.LOW, "m")
                mock_clock.advance(millis=10)
            tracker.flush(timeout=5)

            summary = tracker.get_summary()
            assert summary.total_incidents == 3
        finally:
            tracker.reset()

    @pytest.mark.asyncio
    async def test_async_summary(self, tracker):
        tracker.track_incident("E1", Severity.LOW, "m")
        tracker.flush(timeout=5)

        summary = await tracker.get_summary_async()

        assert summary.total_incidents == 1

    def test_worker_stats(self, tracker):
        tracker.track_incident("E1", Severity.LOW, "m")
        tracker.flush(timeout=5)

        stats = tracker.worker_stats()
        assert stats.submitted == 1
        assert stats.completed == 1


# ============================================================
# DEFAULT TRACKER
# ============================================================

class TestDefaultTracker:
    """Tests for get_tracker/set_tracker."""

    def test_get_tracker_returns_same_instance(self):
        set_tracker(None)
        try:
            assert get_tracker() is get_tracker()
            assert not get_tracker().is_initialized
        finally:
            set_tracker(None)

    def test_set_tracker(self):
        custom = IncidentTracker()
        set_tracker(custom)
        try:
            assert get_tracker() is custom
        finally:
            set_tracker(None)
