"""
Incident Tracker - Logging Setup.

The library only creates module loggers. Hosts and the CLI call
setup_logging() to install a handler.
"""

import json
import logging
import sys
from typing import Optional, TextIO


LOG_FORMATS = ("json", "text")


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Set up structured logging on the root logger.

    Args:
        level: Log level name
        log_format: Output format (json or text)
        stream: Output stream (default: stderr)

    Returns:
        The incident_tracker package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "thread": "%(threadName)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(threadName)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("incident_tracker")
