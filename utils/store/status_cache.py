import logging
import threading
from typing import Dict, Iterable, List, Optional

from utils.models import HealthResult

logger = logging.getLogger(__name__)


class StatusCache:
    """
    In-memory map of node ID to the latest health result.

    Writes replace the whole map under a lock (copy-on-write), so readers can
    take the current map without locking and always see complete records.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._statuses: Dict[int, HealthResult] = {}

    def set(self, node_id: int, result: HealthResult):
        with self._lock:
            statuses = dict(self._statuses)
            statuses[node_id] = result
            self._statuses = statuses

    def update(self, results: List[HealthResult]):
        """Write several results at once; the last result for a node wins."""
        if not results:
            return
        with self._lock:
            statuses = dict(self._statuses)
            for result in results:
                statuses[result.node_id] = result
            self._statuses = statuses

    def retain(self, node_ids: Iterable[int]) -> int:
        """Drop results of nodes not in `node_ids`. Returns how many were dropped."""
        keep = set(node_ids)
        with self._lock:
            statuses = {node_id: result for node_id, result in self._statuses.items() if node_id in keep}
            dropped = len(self._statuses) - len(statuses)
            self._statuses = statuses
        return dropped

    def get(self, node_id: int) -> Optional[HealthResult]:
        return self._statuses.get(node_id)

    def get_all(self) -> List[HealthResult]:
        return list(self._statuses.values())

    def snapshot(self) -> Dict[int, HealthResult]:
        """The current map. Never mutated after publication."""
        return self._statuses

    def clear(self):
        with self._lock:
            self._statuses = {}
        logger.debug("Status cache cleared")

    def __len__(self) -> int:
        return len(self._statuses)
