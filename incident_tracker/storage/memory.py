"""
Incident Storage - In-Memory Backend.

Ephemeral storage for tests and for hosts that do not want
anything on disk. Contents are lost with the process.
"""

import logging
import threading
from collections import deque
from typing import Deque, List

from ..models import Incident
from .base import IncidentStorage


logger = logging.getLogger(__name__)


class InMemoryIncidentStorage(IncidentStorage):
    """
    Deque-backed storage guarded by a lock.

    save() evicts from the front while the deque is at capacity, then
    appends, so the size never exceeds max_size.
    """

    backend_name = "memory"

    def __init__(self, max_size: int) -> None:
        super().__init__(max_size)
        self._incidents: Deque[Incident] = deque()
        self._lock = threading.Lock()

    def save(self, incident: Incident) -> None:
        with self._lock:
            while len(self._incidents) >= self._max_size:
                evicted = self._incidents.popleft()
                logger.debug(f"Evicted incident {evicted.id} (cap={self._max_size})")
            self._incidents.append(incident)

    def get_all(self) -> List[Incident]:
        with self._lock:
            return list(self._incidents)

    def clear_all(self) -> None:
        with self._lock:
            self._incidents.clear()

    def count(self) -> int:
        with self._lock:
            return len(self._incidents)
