"""
Incident Tracker - CLI.

============================================================
RESPONSIBILITY
============================================================
Developer command line for inspecting an incident store.

- summary   Print the aggregate summary (optionally a chart series)
- record    Record one incident
- clear     Delete every stored incident

============================================================
USAGE
============================================================
python -m incident_tracker summary --format text
python -m incident_tracker summary --window 30
python -m incident_tracker record --code HOME_HIGH --severity high --message "Feed failed"
python -m incident_tracker --database-url sqlite:///other.db clear

============================================================
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .clock import SystemClock
from .config import TrackerConfig
from .exceptions import IncidentTrackerError
from .logging_setup import LOG_FORMATS, setup_logging
from .models import IncidentSummary, Severity
from .summary import ChartSeries, TimeWindow, bucket_by_minute
from .tracker import IncidentTracker


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="incident-tracker",
        description="Inspect and manage a local incident store",
    )

    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument("--config", metavar="PATH", help="YAML config file")
    config_group.add_argument("--env-file", metavar="PATH", help=".env file to load")
    config_group.add_argument("--database-url", help="Incident store URL")
    config_group.add_argument("--app-version", help="App version recorded on new incidents")
    config_group.add_argument("--environment", help="Environment recorded on new incidents")

    logging_group = parser.add_argument_group("Logging Options")
    logging_group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    logging_group.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default="text",
        help="Logging format (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    summary_parser = subparsers.add_parser("summary", help="Print the incident summary")
    summary_parser.add_argument(
        "--window",
        type=int,
        choices=[w.minutes for w in TimeWindow],
        help="Add a per-minute chart series over the last N minutes",
    )
    summary_parser.add_argument(
        "--format",
        dest="output_format",
        choices=["json", "text"],
        default="json",
        help="Output format (default: json)",
    )

    record_parser = subparsers.add_parser("record", help="Record one incident")
    record_parser.add_argument("--code", required=True, help="Error code")
    record_parser.add_argument(
        "--severity",
        required=True,
        type=_severity_arg,
        metavar="{" + ",".join(s.name for s in Severity) + "}",
        help="Severity (case-insensitive)",
    )
    record_parser.add_argument("--message", required=True, help="Incident message")
    record_parser.add_argument("--screen", help="Screen name")
    record_parser.add_argument(
        "--meta",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Metadata entry (repeatable)",
    )

    subparsers.add_parser("clear", help="Delete all stored incidents")

    return parser


def _severity_arg(value: str) -> Severity:
    try:
        return Severity.from_name(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def parse_metadata(entries: List[str]) -> Dict[str, str]:
    """Parse KEY=VALUE entries."""
    metadata = {}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid metadata entry {entry!r}, expected KEY=VALUE")
        metadata[key] = value
    return metadata


def build_config(args: argparse.Namespace) -> TrackerConfig:
    """Build tracker configuration from CLI arguments and environment."""
    overrides: Dict[str, Any] = {}
    if args.database_url:
        overrides["database_url"] = args.database_url
    if args.app_version:
        overrides["app_version"] = args.app_version
    if args.environment:
        overrides["environment"] = args.environment

    if args.config:
        return TrackerConfig.from_yaml(args.config, **overrides)
    return TrackerConfig.from_env(env_file=args.env_file, **overrides)


# ============================================================
# OUTPUT
# ============================================================

def format_summary_text(summary: IncidentSummary, series: Optional[ChartSeries] = None) -> str:
    lines = [f"Total incidents: {summary.total_incidents}"]

    lines.append("By severity:")
    for severity in sorted(Severity, reverse=True):
        count = summary.count_for(severity)
        if count:
            lines.append(f"  {severity.name:<10} {count}")

    lines.append("By screen:")
    for screen, count in sorted(summary.incidents_by_screen.items(), key=lambda kv: -kv[1]):
        lines.append(f"  {screen:<20} {count}")

    if series is not None:
        lines.append(
            f"Last {series.window.label}: {series.incidents_in_range} incident(s), "
            f"peak {series.max_bucket_count}/min"
        )
        for bucket in series.buckets:
            if bucket.count:
                lines.append(f"  {bucket.minute_offset:>4} min  {'#' * bucket.count}")

    return "\n".join(lines)


# ============================================================
# COMMANDS
# ============================================================

def run_command(args: argparse.Namespace, tracker: IncidentTracker) -> int:
    if args.command == "summary":
        summary = tracker.get_summary()
        series = None
        if args.window:
            series = bucket_by_minute(
                summary.timestamps_with_screen,
                TimeWindow.from_minutes(args.window),
                now_millis=SystemClock().now_millis(),
            )
        if args.output_format == "text":
            print(format_summary_text(summary, series))
        else:
            payload = summary.to_dict()
            if series is not None:
                payload["chart"] = series.to_dict()
            print(json.dumps(payload, indent=2))
        return 0

    if args.command == "record":
        incident = tracker.track_incident(
            error_code=args.code,
            severity=args.severity,
            message=args.message,
            screen_name=args.screen,
            metadata=parse_metadata(args.meta),
        )
        tracker.flush()
        print(json.dumps(incident.to_dict(), indent=2))
        return 0

    if args.command == "clear":
        tracker.clear_incidents()
        tracker.flush()
        print("Cleared all incidents")
        return 0

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_format=args.log_format)

    try:
        config = build_config(args)
    except IncidentTrackerError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        if e.details.get("config_key") == "app_version":
            print("Set INCIDENT_APP_VERSION or pass --app-version", file=sys.stderr)
        return 2

    tracker = IncidentTracker()
    try:
        tracker.init(config)
        return run_command(args, tracker)
    except (IncidentTrackerError, ValueError) as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        tracker.shutdown()


if __name__ == "__main__":
    sys.exit(main())
