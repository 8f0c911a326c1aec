# Store subpackage for node status and metadata caching

from .metadata_cache import MetadataCache
from .node_store import NodeStore
from .status_cache import StatusCache

__all__ = ['MetadataCache', 'NodeStore', 'StatusCache']
