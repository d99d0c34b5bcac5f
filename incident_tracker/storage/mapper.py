"""
Incident Storage - Entity Mapping.

Pure translation between the domain Incident and its persisted row.
Reading never fails on a corrupt row: an unknown severity becomes
LOW, an unusable timestamp becomes 0 and unreadable metadata
becomes an empty mapping.
"""

import json
import logging
from typing import Any, Dict, Mapping

from ..models import Incident, Severity
from .entity import IncidentEntity


logger = logging.getLogger(__name__)


class IncidentMapper:
    """Converts incidents to and from IncidentEntity rows."""

    @staticmethod
    def to_entity(incident: Incident, seq: int = 0) -> IncidentEntity:
        return IncidentEntity(
            id=incident.id,
            seq=seq,
            timestamp_millis=incident.timestamp_millis,
            error_code=incident.error_code,
            severity=incident.severity.name,
            message=incident.message,
            screen_name=incident.screen_name,
            metadata_json=IncidentMapper.encode_metadata(incident.metadata),
        )

    @staticmethod
    def to_domain(entity: IncidentEntity) -> Incident:
        return Incident(
            id=entity.id,
            timestamp_millis=IncidentMapper.decode_timestamp(entity.timestamp_millis),
            error_code=entity.error_code,
            severity=IncidentMapper.decode_severity(entity.severity),
            message=entity.message,
            screen_name=entity.screen_name,
            metadata=IncidentMapper.decode_metadata(entity.metadata_json),
        )

    @staticmethod
    def encode_metadata(metadata: Mapping[str, str]) -> str:
        return json.dumps(
            {str(k): str(v) for k, v in metadata.items()},
            sort_keys=True,
            ensure_ascii=False,
        )

    @staticmethod
    def decode_metadata(raw: Any) -> Dict[str, str]:
        """
        Decode stored metadata.

        Returns an empty mapping when the value is missing, is not valid
        JSON, or is not a JSON object. Non-string values are coerced.
        """
        if raw is None:
            return {}
        try:
            decoded = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable incident metadata: {e}")
            return {}

        if decoded is None:
            return {}
        if not isinstance(decoded, dict):
            logger.warning(
                f"Discarding incident metadata of type {type(decoded).__name__}"
            )
            return {}

        return {
            str(key): value if isinstance(value, str) else json.dumps(value)
            for key, value in decoded.items()
        }

    @staticmethod
    def decode_timestamp(raw: Any) -> int:
        """Decode a stored timestamp, falling back to 0 when unusable."""
        try:
            value = int(raw)
        except (TypeError, ValueError):
            logger.warning(f"Unreadable stored timestamp {raw!r}, using 0")
            return 0
        if value < 0:
            logger.warning(f"Negative stored timestamp {value}, using 0")
            return 0
        return value

    @staticmethod
    def decode_severity(raw: Any) -> Severity:
        """Decode a stored severity name, falling back to LOW."""
        try:
            return Severity[raw]
        except (KeyError, TypeError):
            logger.warning(f"Unknown stored severity {raw!r}, using LOW")
            return Severity.LOW
