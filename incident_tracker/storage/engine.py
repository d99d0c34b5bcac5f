"""
Incident Storage - Database Engine.

============================================================
RESPONSIBILITY
============================================================
Owns SQLAlchemy engines and sessions for the persistent backend.

- One engine per database URL per process
- Lock-guarded lazy construction
- Tables created on first acquisition
- Explicit transaction boundaries

============================================================
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..exceptions import StorageError
from .entity import Base


logger = logging.getLogger(__name__)


# =============================================================
# ENGINE REGISTRY
# =============================================================

_engines: Dict[str, Engine] = {}
_session_factories: Dict[str, sessionmaker] = {}
_registry_lock = threading.Lock()

SQLITE_BUSY_TIMEOUT_MS = 5_000


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _is_sqlite_memory(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def create_database_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine for the incident store.

    SQLite connections are shared across the worker and reader
    threads; an in-memory SQLite database is pinned to one connection
    so every session sees the same data. File databases run in WAL
    mode with a busy timeout.
    """
    kwargs = {"echo": echo, "future": True}
    if _is_sqlite(database_url):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_sqlite_memory(database_url):
            kwargs["poolclass"] = StaticPool

    logger.info(f"Creating incident store engine for: {database_url.split('@')[-1]}")
    engine = create_engine(database_url, **kwargs)

    if _is_sqlite(database_url) and not _is_sqlite_memory(database_url):
        @event.listens_for(engine, "connect")
        def on_connect(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
            cursor.close()
            logger.debug("Incident store connection established (WAL)")

    return engine


def get_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Get the engine for a database URL, creating it if necessary.

    Raises:
        StorageError: If the engine cannot be created or tables
            cannot be initialized
    """
    engine = _engines.get(database_url)
    if engine is not None:
        return engine

    with _registry_lock:
        engine = _engines.get(database_url)
        if engine is not None:
            return engine

        try:
            engine = create_database_engine(database_url, echo=echo)
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize incident store: {e}")
            raise StorageError("sql", "initialize", e) from e

        _engines[database_url] = engine
        _session_factories[database_url] = sessionmaker(
            bind=engine,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("Incident store tables ready")
        return engine


def get_session_factory(database_url: str, echo: bool = False) -> sessionmaker:
    """Get the session factory bound to a database URL."""
    get_engine(database_url, echo=echo)
    return _session_factories[database_url]


def dispose_engines(database_url: Optional[str] = None) -> None:
    """
    Dispose engines and forget them.

    Intended for tests and process shutdown.
    """
    with _registry_lock:
        urls = [database_url] if database_url else list(_engines)
        for url in urls:
            engine = _engines.pop(url, None)
            _session_factories.pop(url, None)
            if engine is not None:
                engine.dispose()
                logger.debug(f"Disposed incident store engine: {url.split('@')[-1]}")


# =============================================================
# SESSION MANAGEMENT
# =============================================================


@contextmanager
def transaction_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for explicit transaction boundaries.

    Commits only if no exception occurs and rolls back otherwise.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.error(f"Incident store transaction failed, rolling back: {e}")
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "create_database_engine",
    "get_engine",
    "get_session_factory",
    "dispose_engines",
    "transaction_scope",
]
