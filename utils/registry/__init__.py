# Registry subpackage for reading nodes and their metadata from the node registry

from .get_nodes import RegistryClient, parse_node_list
from .metadata_fetcher import MetadataService, fetch_metadata_from_uri

__all__ = [
    'RegistryClient',
    'parse_node_list',
    'MetadataService',
    'fetch_metadata_from_uri'
]
