"""
Incident Storage - Persistent SQL Backend.

============================================================
PURPOSE
============================================================
Durable incident storage through SQLAlchemy (SQLite by default).

RETENTION:
- save() merges the row (replacing on id collision)
- If the table then holds more than max_size rows, every row
  outside the newest max_size is deleted in the same transaction
- "Newest" orders by timestamp, then insertion sequence, so ties
  at the cutoff are evicted deterministically

============================================================
"""

import logging
import threading
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..exceptions import StorageError
from ..models import Incident
from .base import IncidentStorage
from .engine import get_session_factory, transaction_scope
from .entity import IncidentEntity
from .mapper import IncidentMapper


logger = logging.getLogger(__name__)


class SqlIncidentStorage(IncidentStorage):
    """
    Persistent storage backend.

    All operations on one instance are serialized through its lock.
    """

    backend_name = "sql"

    def __init__(
        self,
        max_size: int,
        database_url: Optional[str] = None,
        session_factory: Optional[sessionmaker] = None,
        echo: bool = False,
    ) -> None:
        super().__init__(max_size)
        if session_factory is None:
            if not database_url:
                raise ValueError("database_url or session_factory is required")
            session_factory = get_session_factory(database_url, echo=echo)

        self._factory = session_factory
        self._lock = threading.Lock()
        self._seq = self._load_last_seq()

        logger.info(f"SqlIncidentStorage ready (max_size={max_size})")

    def _load_last_seq(self) -> int:
        try:
            with transaction_scope(self._factory) as session:
                return session.scalar(select(func.max(IncidentEntity.seq))) or 0
        except SQLAlchemyError as e:
            raise StorageError(self.backend_name, "load_sequence", e) from e

    # =========================================================
    # STORAGE OPERATIONS
    # =========================================================

    def save(self, incident: Incident) -> None:
        with self._lock:
            try:
                with transaction_scope(self._factory) as session:
                    self._seq += 1
                    session.merge(IncidentMapper.to_entity(incident, seq=self._seq))
                    session.flush()

                    count = session.scalar(
                        select(func.count()).select_from(IncidentEntity)
                    ) or 0
                    if count > self._max_size:
                        evicted = self._delete_oldest(session, keep_count=self._max_size)
                        logger.debug(
                            f"Evicted {evicted} incident(s) (cap={self._max_size})"
                        )
            except SQLAlchemyError as e:
                raise StorageError(self.backend_name, "save", e) from e

    @staticmethod
    def _delete_oldest(session, keep_count: int) -> int:
        newest = (
            select(IncidentEntity.id)
            .order_by(IncidentEntity.timestamp_millis.desc(), IncidentEntity.seq.desc())
            .limit(keep_count)
        )
        result = session.execute(
            delete(IncidentEntity).where(IncidentEntity.id.not_in(newest)),
            execution_options={"synchronize_session": False},
        )
        return result.rowcount or 0

    def get_all(self) -> List[Incident]:
        with self._lock:
            try:
                with transaction_scope(self._factory) as session:
                    rows = session.scalars(
                        select(IncidentEntity).order_by(
                            IncidentEntity.timestamp_millis.asc(),
                            IncidentEntity.seq.asc(),
                        )
                    ).all()
                    return [IncidentMapper.to_domain(row) for row in rows]
            except SQLAlchemyError as e:
                raise StorageError(self.backend_name, "get_all", e) from e

    def clear_all(self) -> None:
        with self._lock:
            try:
                with transaction_scope(self._factory) as session:
                    result = session.execute(
                        delete(IncidentEntity),
                        execution_options={"synchronize_session": False},
                    )
                    logger.info(f"Cleared {result.rowcount or 0} incident(s)")
            except SQLAlchemyError as e:
                raise StorageError(self.backend_name, "clear_all", e) from e

    def count(self) -> int:
        with self._lock:
            try:
                with transaction_scope(self._factory) as session:
                    return session.scalar(
                        select(func.count()).select_from(IncidentEntity)
                    ) or 0
            except SQLAlchemyError as e:
                raise StorageError(self.backend_name, "count", e) from e

    def max_id(self) -> int:
        with self._lock:
            try:
                with transaction_scope(self._factory) as session:
                    return session.scalar(select(func.max(IncidentEntity.id))) or 0
            except SQLAlchemyError as e:
                raise StorageError(self.backend_name, "max_id", e) from e
