"""
Durable node metadata cache with a per-entry TTL.
"""

import json
import time
import logging
from typing import Any, Callable, Dict, Optional

from config import METADATA_CACHE_TTL
from utils.errors import CacheMiss
from utils.models import NodeMetadata

logger = logging.getLogger(__name__)

METADATA_KEY_PREFIX = 'metadata:'


class MetadataCache:
    """
    Metadata entries stored as `{"metadata": ..., "fetchedAt": ...}` JSON in a
    Redis-like key-value client.

    Validity is decided at read time: an entry older than the TTL is treated
    exactly like a missing one.
    """

    def __init__(self, client, ttl: float = METADATA_CACHE_TTL, clock: Optional[Callable[[], float]] = None):
        """
        Args:
            client: Redis client or FileKV
            ttl: Entry lifetime in seconds
            clock: Source of the current epoch time in seconds
        """
        self.client = client
        self.ttl = ttl
        self.clock = clock or time.time

    @staticmethod
    def _key(node_id: int) -> str:
        return f"{METADATA_KEY_PREFIX}{node_id}"

    def _load_entry(self, node_id: int) -> Optional[Dict[str, Any]]:
        raw = self.client.get(self._key(node_id))
        if not raw:
            return None
        try:
            entry = json.loads(raw)
            float(entry['fetchedAt'])
            return entry
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Discarding unreadable metadata entry for node {node_id}: {e}")
            return None

    def _is_fresh(self, entry: Dict[str, Any]) -> bool:
        return self.clock() - float(entry['fetchedAt']) <= self.ttl

    def require(self, node_id: int) -> Optional[NodeMetadata]:
        """
        Return the cached metadata for a node, which may itself be None.

        Raises:
            CacheMiss: If there is no entry or the entry has expired
        """
        entry = self._load_entry(node_id)
        if entry is None or not self._is_fresh(entry):
            raise CacheMiss(node_id)

        metadata = entry.get('metadata')
        if metadata is None:
            return None
        try:
            return NodeMetadata.from_dict(metadata)
        except (KeyError, TypeError) as e:
            logger.warning(f"Discarding malformed metadata for node {node_id}: {e}")
            raise CacheMiss(node_id) from e

    def get(self, node_id: int) -> Optional[NodeMetadata]:
        """Cached metadata, or None if missing, expired or cached as absent."""
        try:
            return self.require(node_id)
        except CacheMiss:
            return None

    def set(self, node_id: int, metadata: Optional[NodeMetadata]):
        entry = {
            'metadata': metadata.to_dict() if metadata is not None else None,
            'fetchedAt': self.clock(),
        }
        self.client.set(self._key(node_id), json.dumps(entry))

    def is_valid(self, node_id: int) -> bool:
        entry = self._load_entry(node_id)
        return entry is not None and self._is_fresh(entry)

    def clear(self):
        keys = []
        cursor = 0
        while True:
            cursor, batch = self.client.scan(cursor=cursor, match=f"{METADATA_KEY_PREFIX}*", count=200)
            keys.extend(batch)
            if cursor == 0:
                break

        if keys:
            self.client.delete(*keys)
        logger.info(f"Metadata cache cleared ({len(keys)} entries)")
