"""
Incident Storage - ORM Model.

============================================================
TABLE: incidents
============================================================
One row per incident.

- id                Primary key, incident id
- seq               Insertion sequence, eviction tie-break
- timestamp_millis  Creation time (ms since epoch)
- error_code        Caller supplied category
- severity          Severity name string
- message           Free text
- screen_name       Nullable screen label
- metadata_json     JSON encoded string-to-string mapping

============================================================
"""

from typing import Optional

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for incident tracker tables."""
    pass


class IncidentEntity(Base):
    """Persisted row for one incident."""

    __tablename__ = "incidents"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    timestamp_millis: Mapped[int] = mapped_column(BigInteger, nullable=False)
    error_code: Mapped[str] = mapped_column(String(255), nullable=False)
    severity: Mapped[str] = mapped_column(String(32), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    screen_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    metadata_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")

    __table_args__ = (
        Index("idx_incidents_timestamp_seq", "timestamp_millis", "seq"),
    )

    def __repr__(self) -> str:
        return (
            f"IncidentEntity(id={self.id}, timestamp_millis={self.timestamp_millis}, "
            f"severity={self.severity!r}, error_code={self.error_code!r})"
        )
