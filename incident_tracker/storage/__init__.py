"""
Incident Storage Package.

Bounded incident storage behind a small capability interface.

Modules:
- base: IncidentStorage interface
- memory: In-memory backend
- sql: Persistent SQLAlchemy backend
- mapper: Domain <-> row translation
- engine: Engine and session management
"""

from ..config import TrackerConfig
from ..models import StorageType
from .base import IncidentStorage
from .engine import dispose_engines, get_engine, get_session_factory, transaction_scope
from .entity import Base, IncidentEntity
from .mapper import IncidentMapper
from .memory import InMemoryIncidentStorage
from .sql import SqlIncidentStorage


def create_storage(config: TrackerConfig) -> IncidentStorage:
    """Build the storage backend selected by the configuration."""
    if config.storage_type is StorageType.MEMORY:
        return InMemoryIncidentStorage(max_size=config.max_stored_incidents)
    return SqlIncidentStorage(
        max_size=config.max_stored_incidents,
        database_url=config.database_url,
        echo=config.sql_echo,
    )


__all__ = [
    "IncidentStorage",
    "InMemoryIncidentStorage",
    "SqlIncidentStorage",
    "IncidentMapper",
    "IncidentEntity",
    "Base",
    "create_storage",
    "get_engine",
    "get_session_factory",
    "dispose_engines",
    "transaction_scope",
]
