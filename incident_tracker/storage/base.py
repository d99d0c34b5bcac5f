"""
Incident Storage - Base Interface.

============================================================
PURPOSE
============================================================
Storage capability used by the repository:
- save(incident)     Append, enforcing the retention cap
- get_all()          Every stored incident, oldest first
- clear_all()        Remove everything

Each backend serializes its own operations, so the cap holds
under concurrent callers.

============================================================
"""

from abc import ABC, abstractmethod
from typing import List

from ..exceptions import ConfigurationError
from ..models import Incident


class IncidentStorage(ABC):
    """
    Abstract storage backend for incidents.

    Implementations keep at most ``max_size`` incidents and evict
    the oldest first.
    """

    backend_name: str = "storage"

    def __init__(self, max_size: int) -> None:
        if isinstance(max_size, bool) or not isinstance(max_size, int) or max_size <= 0:
            raise ConfigurationError(
                "max_size must be a positive integer",
                config_key="max_stored_incidents",
                actual_value=max_size,
            )
        self._max_size = max_size

    @property
    def max_size(self) -> int:
        """Retention cap."""
        return self._max_size

    @abstractmethod
    def save(self, incident: Incident) -> None:
        """Store an incident, evicting the oldest beyond the cap."""
        pass

    @abstractmethod
    def get_all(self) -> List[Incident]:
        """Return all incidents ordered oldest first."""
        pass

    @abstractmethod
    def clear_all(self) -> None:
        """Delete every stored incident."""
        pass

    def count(self) -> int:
        """Number of stored incidents."""
        return len(self.get_all())

    def max_id(self) -> int:
        """Largest stored incident id, 0 when empty."""
        return max((incident.id for incident in self.get_all()), default=0)

    def close(self) -> None:
        """Release backend resources."""
        pass
