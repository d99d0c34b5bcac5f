"""
Incident Tracker - Aggregation.

============================================================
PURPOSE
============================================================
Turns the raw incident log into summaries.

- summarize(): counts by screen and severity, timestamp series
- bucket_by_minute(): per-minute counts over a trailing window,
  the series behind incident-over-time charts

Both are pure functions of their inputs.

============================================================
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    UNKNOWN_SCREEN,
    Incident,
    IncidentSummary,
    TimestampWithScreen,
)


MILLIS_PER_MINUTE = 60_000


# =============================================================
# SUMMARY
# =============================================================


def summarize(incidents: Sequence[Incident]) -> IncidentSummary:
    """
    Compute the aggregate summary of a set of incidents.

    Incidents without a screen are counted under "unknown". Severities
    with no incidents are left out of the severity counts. Timestamp
    series are sorted newest first.
    """
    if not incidents:
        return IncidentSummary.empty()

    incidents_by_screen = Counter(
        UNKNOWN_SCREEN if incident.screen_name is None else incident.screen_name
        for incident in incidents
    )
    incidents_by_severity = Counter(incident.severity for incident in incidents)

    incident_timestamps = sorted(
        (incident.timestamp_millis for incident in incidents),
        reverse=True,
    )
    timestamps_with_screen = sorted(
        (TimestampWithScreen(incident.timestamp_millis, incident.screen_name) for incident in incidents),
        key=lambda item: item.timestamp_millis,
        reverse=True,
    )

    return IncidentSummary(
        total_incidents=len(incidents),
        incidents_by_screen=dict(incidents_by_screen),
        incidents_by_severity=dict(incidents_by_severity),
        incident_timestamps=incident_timestamps,
        timestamps_with_screen=timestamps_with_screen,
    )


# =============================================================
# TIME-BUCKETED SERIES
# =============================================================


class TimeWindow(Enum):
    """Trailing chart windows."""
    LAST_15_MINUTES = 15
    LAST_30_MINUTES = 30
    LAST_60_MINUTES = 60
    LAST_90_MINUTES = 90

    @property
    def minutes(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        return f"{self.value} min"

    @classmethod
    def from_minutes(cls, minutes: int) -> "TimeWindow":
        return cls(int(minutes))


@dataclass(frozen=True)
class TimeBucket:
    """
    Incident count for one minute of a chart window.

    minute_offset is 0 for the current minute and negative for the
    minutes before it.
    """
    minute_offset: int
    count: int
    by_screen: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ChartSeries:
    """Per-minute buckets for a whole window, oldest first."""
    window: TimeWindow
    buckets: List[TimeBucket]

    @property
    def incidents_in_range(self) -> int:
        return sum(bucket.count for bucket in self.buckets)

    @property
    def max_bucket_count(self) -> int:
        return max((bucket.count for bucket in self.buckets), default=0)

    def to_dict(self) -> Dict[str, object]:
        return {
            "window_minutes": self.window.minutes,
            "incidents_in_range": self.incidents_in_range,
            "max_bucket_count": self.max_bucket_count,
            "buckets": [
                {
                    "minute_offset": bucket.minute_offset,
                    "count": bucket.count,
                    "by_screen": dict(bucket.by_screen),
                }
                for bucket in self.buckets
            ],
        }


def bucket_by_minute(
    timestamps_with_screen: Iterable[TimestampWithScreen],
    window: TimeWindow,
    now_millis: int,
    screens: Optional[Sequence[str]] = None,
) -> ChartSeries:
    """
    Group incidents into one bucket per minute of the window.

    Items older than the window start are dropped, as are items in the
    future relative to now_millis. When screens is given, each bucket
    also counts incidents per listed screen (zero-filled); otherwise
    per-screen counts cover whatever screens appear, with missing
    screens under "unknown".
    """
    cutoff = now_millis - window.minutes * MILLIS_PER_MINUTE
    grouped: Dict[int, List[TimestampWithScreen]] = {}

    for item in timestamps_with_screen:
        if item.timestamp_millis < cutoff or item.timestamp_millis > now_millis:
            continue
        offset = -((now_millis - item.timestamp_millis) // MILLIS_PER_MINUTE)
        grouped.setdefault(offset, []).append(item)

    buckets = []
    for offset in range(-(window.minutes - 1), 1):
        items = grouped.get(offset, [])
        if screens is not None:
            by_screen = {
                screen: sum(1 for item in items if item.screen_name == screen)
                for screen in screens
            }
        else:
            by_screen = dict(Counter(
                UNKNOWN_SCREEN if item.screen_name is None else item.screen_name
                for item in items
            ))
        buckets.append(TimeBucket(minute_offset=offset, count=len(items), by_screen=by_screen))

    return ChartSeries(window=window, buckets=buckets)


__all__ = [
    "MILLIS_PER_MINUTE",
    "summarize",
    "TimeWindow",
    "TimeBucket",
    "ChartSeries",
    "bucket_by_minute",
]
