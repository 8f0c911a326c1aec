"""
Node metadata fetching: token ID -> token URI -> metadata JSON.
"""

import logging
import requests
from typing import Dict, Iterable, Optional

from config import IPFS_GATEWAY, METADATA_FETCH_TIMEOUT
from utils.errors import CacheMiss
from utils.models import NodeMetadata
from utils.store.metadata_cache import MetadataCache
from utils.workers.worker_pool import WorkerPool
from .get_nodes import RegistryClient

logger = logging.getLogger(__name__)


def resolve_token_uri(token_uri: str, ipfs_gateway: str = IPFS_GATEWAY) -> str:
    if token_uri.startswith('ipfs://'):
        return ipfs_gateway + token_uri[len('ipfs://'):]
    return token_uri


def fetch_metadata_from_uri(token_uri: str, timeout: float = METADATA_FETCH_TIMEOUT,
                            session=None) -> Optional[NodeMetadata]:
    """
    Fetch and parse NFT metadata from a token URI.

    Returns None when the document can't be fetched or has no description.
    """
    http = session or requests
    url = resolve_token_uri(token_uri)
    try:
        response = http.get(url, headers={'Accept': 'application/json'}, timeout=timeout)
        if not 200 <= response.status_code < 300:
            logger.warning(f"Metadata fetch from {url} returned HTTP {response.status_code}")
            return None
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Failed to fetch metadata from {url}: {e}")
        return None

    if not isinstance(data, dict) or not data.get('description'):
        return None

    return NodeMetadata.from_dict(data)


class MetadataService:
    """
    Fetches node metadata on cache misses and keeps the metadata cache filled.
    """

    def __init__(self, metadata_cache: MetadataCache, registry: RegistryClient, max_workers: int = 5,
                 session=None):
        self.metadata_cache = metadata_cache
        self.registry = registry
        self.max_workers = max_workers
        self.session = session

    def _fetch(self, node_id: int) -> Optional[NodeMetadata]:
        token_uri = self.registry.fetch_metadata_uri(node_id)
        if not token_uri:
            return None
        return fetch_metadata_from_uri(token_uri, session=self.session)

    def get_metadata(self, node_id: int, force_refresh: bool = False) -> Optional[NodeMetadata]:
        """
        Metadata for a node, fetched if the cached entry is missing, expired
        or empty.

        Raises:
            RegistryError: If the token URI can't be read from the registry
        """
        if not force_refresh:
            try:
                cached = self.metadata_cache.require(node_id)
                if cached is not None:
                    return cached
            except CacheMiss:
                logger.debug(f"Metadata cache miss for node {node_id}")

        metadata = self._fetch(node_id)
        self.metadata_cache.set(node_id, metadata)
        return metadata

    def _fetch_or_none(self, node_id: int) -> Optional[NodeMetadata]:
        try:
            return self._fetch(node_id)
        except Exception as e:
            logger.warning(f"Metadata fetch for node {node_id} failed: {e}")
            return None

    def fetch_all_metadata(self, node_ids: Iterable[int], force_refresh: bool = False) -> Dict[int, Optional[NodeMetadata]]:
        """
        Fetch metadata for every node whose cache entry is not valid (or for
        all of them when forced). Failures are cached as absent.

        Returns:
            Map of fetched node ID to metadata
        """
        node_ids = list(node_ids)
        to_fetch = node_ids if force_refresh else [
            node_id for node_id in node_ids if not self.metadata_cache.is_valid(node_id)
        ]
        if not to_fetch:
            return {}

        logger.info(f"Fetching metadata for {len(to_fetch)} nodes")
        with WorkerPool(max_workers=self.max_workers, name='metadata') as pool:
            futures = pool.run_batch([(self._fetch_or_none, (node_id,), {}) for node_id in to_fetch])

        fetched = {}
        for node_id, future in zip(to_fetch, futures):
            metadata = future.result()
            self.metadata_cache.set(node_id, metadata)
            fetched[node_id] = metadata
        return fetched

    def get_metadata_map(self, node_ids: Iterable[int]) -> Dict[int, Optional[NodeMetadata]]:
        """Cached metadata only; never fetches."""
        return {node_id: self.metadata_cache.get(node_id) for node_id in node_ids}
