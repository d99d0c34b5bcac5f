"""
Incident Tracker - Configuration.

============================================================
TRACKER CONFIGURATION
============================================================

Supplied once at initialization and immutable thereafter.

Configuration can be loaded from:
- Explicit values
- Environment variables (optionally from a .env file)
- YAML config file

============================================================
ENVIRONMENT VARIABLES
============================================================
- INCIDENT_APP_VERSION
- INCIDENT_ENVIRONMENT
- INCIDENT_STORAGE_TYPE
- INCIDENT_MAX_STORED
- INCIDENT_DATABASE_URL
- INCIDENT_WRITE_QUEUE_SIZE
- INCIDENT_SQL_ECHO

============================================================
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .models import StorageType


logger = logging.getLogger(__name__)


DEFAULT_ENVIRONMENT = "debug"
DEFAULT_MAX_STORED_INCIDENTS = 1_000
DEFAULT_DATABASE_URL = "sqlite:///incident_tracker.db"
DEFAULT_WRITE_QUEUE_SIZE = 10_000

_TRUE_VALUES = {"1", "true", "yes", "on"}


# =============================================================
# TRACKER CONFIG
# =============================================================


@dataclass(frozen=True)
class TrackerConfig:
    """
    Configuration for an IncidentTracker.

    Only app_version is required. Values are validated on construction
    and a ConfigurationError is raised for anything out of range.
    """
    app_version: str
    environment: str = DEFAULT_ENVIRONMENT
    storage_type: StorageType = StorageType.PERSISTENT
    max_stored_incidents: int = DEFAULT_MAX_STORED_INCIDENTS
    database_url: str = DEFAULT_DATABASE_URL
    write_queue_size: int = DEFAULT_WRITE_QUEUE_SIZE
    sql_echo: bool = False

    def __post_init__(self) -> None:
        """Validate and normalize values."""
        if not isinstance(self.app_version, str) or not self.app_version.strip():
            raise ConfigurationError(
                "app_version must be a non-empty string",
                config_key="app_version",
                actual_value=self.app_version,
            )
        if not isinstance(self.storage_type, StorageType):
            object.__setattr__(self, "storage_type", _parse_storage_type(self.storage_type))
        _require_positive("max_stored_incidents", self.max_stored_incidents)
        _require_positive("write_queue_size", self.write_queue_size)
        if self.storage_type is StorageType.PERSISTENT and not self.database_url:
            raise ConfigurationError(
                "database_url is required for persistent storage",
                config_key="database_url",
            )

    def with_overrides(self, **changes: Any) -> "TrackerConfig":
        """Return a copy with the given fields replaced (revalidated)."""
        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TrackerConfig":
        """
        Build configuration from a plain mapping.

        Unknown keys are ignored with a warning.
        """
        known = {
            "app_version", "environment", "storage_type", "max_stored_incidents",
            "database_url", "write_queue_size", "sql_echo",
        }
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")

        values: Dict[str, Any] = {k: v for k, v in data.items() if k in known}
        if "app_version" not in values:
            raise ConfigurationError("app_version is required", config_key="app_version")

        if "max_stored_incidents" in values:
            values["max_stored_incidents"] = _parse_int(
                "max_stored_incidents", values["max_stored_incidents"]
            )
        if "write_queue_size" in values:
            values["write_queue_size"] = _parse_int("write_queue_size", values["write_queue_size"])
        if "sql_echo" in values and isinstance(values["sql_echo"], str):
            values["sql_echo"] = values["sql_echo"].strip().lower() in _TRUE_VALUES
        values["app_version"] = str(values["app_version"])

        return cls(**values)

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Union[str, Path]] = None,
        **overrides: Any,
    ) -> "TrackerConfig":
        """
        Load configuration from environment variables.

        A .env file is loaded first (existing variables win). Keyword
        overrides take precedence over the environment.
        """
        load_dotenv(dotenv_path=env_file)

        data: Dict[str, Any] = {}
        for key, env_name in _ENV_VARS.items():
            value = os.getenv(env_name)
            if value:
                data[key] = value
        data.update(overrides)

        return cls.from_mapping(data)

    @classmethod
    def from_yaml(cls, path: Union[str, Path], **overrides: Any) -> "TrackerConfig":
        """
        Load configuration from a YAML file.

        Keys may live at the top level or under an ``incident_tracker``
        section.
        """
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load YAML config from {path}: {e}",
                config_key="path",
                actual_value=path,
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"YAML config must be a mapping, got {type(data).__name__}",
                config_key="path",
                actual_value=path,
            )

        section = data.get("incident_tracker", data)
        merged = dict(section)
        merged.update(overrides)
        return cls.from_mapping(merged)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "app_version": self.app_version,
            "environment": self.environment,
            "storage_type": self.storage_type.value,
            "max_stored_incidents": self.max_stored_incidents,
            "database_url": self.database_url,
            "write_queue_size": self.write_queue_size,
            "sql_echo": self.sql_echo,
        }


_ENV_VARS = {
    "app_version": "INCIDENT_APP_VERSION",
    "environment": "INCIDENT_ENVIRONMENT",
    "storage_type": "INCIDENT_STORAGE_TYPE",
    "max_stored_incidents": "INCIDENT_MAX_STORED",
    "database_url": "INCIDENT_DATABASE_URL",
    "write_queue_size": "INCIDENT_WRITE_QUEUE_SIZE",
    "sql_echo": "INCIDENT_SQL_ECHO",
}


# =============================================================
# HELPERS
# =============================================================


def _parse_storage_type(value: Any) -> StorageType:
    try:
        return StorageType(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"storage_type must be one of {[t.value for t in StorageType]}",
            config_key="storage_type",
            actual_value=value,
        ) from None


def _parse_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer", config_key=key, actual_value=value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"{key} must be an integer", config_key=key, actual_value=value
        ) from None


def _require_positive(key: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(
            f"{key} must be a positive integer", config_key=key, actual_value=value
        )


__all__ = [
    "DEFAULT_ENVIRONMENT",
    "DEFAULT_MAX_STORED_INCIDENTS",
    "DEFAULT_DATABASE_URL",
    "DEFAULT_WRITE_QUEUE_SIZE",
    "TrackerConfig",
]
