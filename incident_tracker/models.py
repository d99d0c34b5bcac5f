"""
Incident Tracker - Data Models.

============================================================
CORE DATA STRUCTURES
============================================================

- Severity: Ordered incident severity
- StorageType: Selectable storage backend
- Incident: Immutable record of one event
- TimestampWithScreen: Point for time-bucketed charting
- IncidentSummary: Aggregate view, recomputed on every read

============================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


# Screen label used when an incident carries no screen context
UNKNOWN_SCREEN = "unknown"

# Metadata keys added by the tracker to every incident
METADATA_APP_VERSION = "appVersion"
METADATA_ENVIRONMENT = "environment"


# =============================================================
# ENUMS
# =============================================================


class Severity(Enum):
    """
    Incident severity, ordered by ascending impact.

    LOW < MEDIUM < HIGH < CRITICAL
    """
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        """Position in the severity order (LOW = 0)."""
        return _SEVERITY_ORDER.index(self)

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def from_name(cls, name: str) -> "Severity":
        """
        Look up a severity by name (case-insensitive).

        Raises:
            ValueError: If the name is not a known severity
        """
        try:
            return cls[name.strip().upper()]
        except (KeyError, AttributeError):
            raise ValueError(f"Unknown severity: {name!r}") from None


_SEVERITY_ORDER = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]


class StorageType(str, Enum):
    """Storage backend selected at initialization."""
    PERSISTENT = "persistent"
    MEMORY = "memory"


# =============================================================
# DATA CLASSES
# =============================================================


@dataclass(frozen=True)
class Incident:
    """
    One recorded incident.

    Never mutated after creation. Metadata is copied on construction
    so later changes to the caller's mapping are not observed.
    """
    id: int
    timestamp_millis: int
    error_code: str
    severity: Severity
    message: str
    screen_name: Optional[str] = None
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.timestamp_millis < 0:
            raise ValueError(f"timestamp_millis must be >= 0, got {self.timestamp_millis}")
        if not isinstance(self.severity, Severity):
            raise ValueError(f"severity must be a Severity, got {self.severity!r}")
        object.__setattr__(self, "metadata", dict(self.metadata))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "timestamp_millis": self.timestamp_millis,
            "error_code": self.error_code,
            "severity": self.severity.name,
            "message": self.message,
            "screen_name": self.screen_name,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class TimestampWithScreen:
    """Incident timestamp paired with its screen, for charting."""
    timestamp_millis: int
    screen_name: Optional[str] = None


@dataclass(frozen=True)
class IncidentSummary:
    """
    Aggregate view of all stored incidents.

    Derived from storage contents on demand; never persisted.
    """
    total_incidents: int
    incidents_by_screen: Dict[str, int]
    incidents_by_severity: Dict[Severity, int]
    incident_timestamps: List[int] = field(default_factory=list)
    timestamps_with_screen: List[TimestampWithScreen] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "IncidentSummary":
        """Summary of an empty store."""
        return cls(
            total_incidents=0,
            incidents_by_screen={},
            incidents_by_severity={},
        )

    def count_for(self, severity: Severity) -> int:
        """Incident count for a severity (0 when absent)."""
        return self.incidents_by_severity.get(severity, 0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "total_incidents": self.total_incidents,
            "incidents_by_screen": dict(self.incidents_by_screen),
            "incidents_by_severity": {
                severity.name: count
                for severity, count in self.incidents_by_severity.items()
            },
            "incident_timestamps": list(self.incident_timestamps),
            "timestamps_with_screen": [
                {"timestamp_millis": item.timestamp_millis, "screen_name": item.screen_name}
                for item in self.timestamps_with_screen
            ],
        }


__all__ = [
    "UNKNOWN_SCREEN",
    "METADATA_APP_VERSION",
    "METADATA_ENVIRONMENT",
    "Severity",
    "StorageType",
    "Incident",
    "TimestampWithScreen",
    "IncidentSummary",
]
