import logging
from typing import Optional

from config import METADATA_CACHE_TTL
from utils.models import NodeFilterType
from utils.redis.fallback import FileKV
from .metadata_cache import MetadataCache
from .status_cache import StatusCache

logger = logging.getLogger(__name__)

FILTER_TYPE_KEY = 'preferences:filter_type'


class NodeStore:
    """
    Process-wide node state.

    The status cache is memory only and starts empty on every start-up.
    Metadata entries and the filter preference are kept in the key-value
    client and survive restarts.
    """

    def __init__(self, client=None, metadata_ttl: float = METADATA_CACHE_TTL, clock=None):
        self.client = client if client is not None else FileKV()
        self.status_cache = StatusCache()
        self.metadata_cache = MetadataCache(self.client, ttl=metadata_ttl, clock=clock)
        self._filter_type = NodeFilterType.ALL

    def rehydrate(self) -> 'NodeStore':
        """Restore durable preferences and reset the ephemeral status cache."""
        self.status_cache.clear()

        stored = self.client.get(FILTER_TYPE_KEY)
        self._filter_type = self._parse_filter_type(stored) or NodeFilterType.ALL
        logger.info(f"Node store rehydrated (filter={self._filter_type.value})")
        return self

    @staticmethod
    def _parse_filter_type(value: Optional[str]) -> Optional[NodeFilterType]:
        if not value:
            return None
        try:
            return NodeFilterType(value)
        except ValueError:
            logger.warning(f"Ignoring unknown stored filter type: {value}")
            return None

    @property
    def filter_type(self) -> NodeFilterType:
        return self._filter_type

    def set_filter_type(self, filter_type):
        """
        Persist the node filter preference.

        Raises:
            ValueError: If the value is not a known filter type
        """
        filter_type = NodeFilterType(filter_type)
        self.client.set(FILTER_TYPE_KEY, filter_type.value)
        self._filter_type = filter_type

    def reset(self):
        """Drop all cached state, durable entries included."""
        self.status_cache.clear()
        self.metadata_cache.clear()
        self.client.delete(FILTER_TYPE_KEY)
        self._filter_type = NodeFilterType.ALL
