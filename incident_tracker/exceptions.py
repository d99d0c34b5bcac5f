"""
Incident Tracker - Exceptions.

============================================================
EXCEPTION HIERARCHY
============================================================
IncidentTrackerError (base)
├── TrackerNotInitializedError
├── ConfigurationError
├── StorageError
└── WorkerStoppedError

============================================================
FAILURE SAFETY
============================================================
- Tracking calls before init fail loudly and synchronously
- Corrupt persisted rows never raise (handled in the mapper)
- Write failures are logged by the worker and dropped

============================================================
"""

from typing import Any, Dict, Optional


class IncidentTrackerError(Exception):
    """
    Base exception for the incident tracker.

    All tracker exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class TrackerNotInitializedError(IncidentTrackerError):
    """
    Raised when the tracker is used before init().

    This is a precondition violation of the host application.
    """

    def __init__(self, operation: str) -> None:
        super().__init__(
            message=(
                f"IncidentTracker has not been initialized (called {operation}). "
                "Call IncidentTracker.init(config) first, typically during "
                "application startup."
            ),
            details={"operation": operation},
        )
        self.operation = operation


class ConfigurationError(IncidentTrackerError):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Any = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if config_key:
            details["config_key"] = config_key
        if actual_value is not None:
            details["actual"] = str(actual_value)

        super().__init__(message=message, details=details)
        self.config_key = config_key


class StorageError(IncidentTrackerError):
    """
    Raised when a storage backend operation fails.

    Wraps the underlying driver error.
    """

    def __init__(
        self,
        backend: str,
        operation: str,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: Dict[str, Any] = {"backend": backend, "operation": operation}
        if original_error is not None:
            details["original_error"] = str(original_error)
            details["exception_type"] = type(original_error).__name__

        super().__init__(
            message=f"[{backend}] {operation} failed: {original_error}",
            details=details,
        )
        self.backend = backend
        self.operation = operation
        self.original_error = original_error


class WorkerStoppedError(IncidentTrackerError):
    """Raised when work is submitted to a stopped persistence worker."""

    def __init__(self, worker_name: str) -> None:
        super().__init__(
            message=f"Persistence worker '{worker_name}' is not running",
            details={"worker": worker_name},
        )
        self.worker_name = worker_name


__all__ = [
    "IncidentTrackerError",
    "TrackerNotInitializedError",
    "ConfigurationError",
    "StorageError",
    "WorkerStoppedError",
]
