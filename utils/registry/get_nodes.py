import json
import logging
import requests
from typing import Any, Dict, List, Optional

from config import NODE_LIST_FILE, REGISTRY_BASE_URL, REGISTRY_TIMEOUT
from utils.errors import RegistryError
from utils.models import Node

logger = logging.getLogger(__name__)


def parse_node_list(nodes_data: Any) -> List[Node]:
    """
    Parse registry node records, skipping malformed entries.

    Accepts a list of records or a mapping with a 'nodes' list.
    """
    if isinstance(nodes_data, dict):
        nodes_data = nodes_data.get('nodes', [])
    if not isinstance(nodes_data, list):
        raise RegistryError(f"Unexpected node list payload: {type(nodes_data).__name__}")

    nodes = []
    for record in nodes_data:
        try:
            nodes.append(Node.from_dict(record))
        except (ValueError, TypeError, AttributeError) as e:
            logger.error(f"Skipping malformed node record {record!r}: {e}")
            continue

    return nodes


class RegistryClient:
    """
    Reads the node list and token URIs from the node registry service.
    """

    def __init__(self, base_url: str = REGISTRY_BASE_URL, timeout: float = REGISTRY_TIMEOUT,
                 node_list_file: Optional[str] = NODE_LIST_FILE, session=None):
        """
        Args:
            base_url: Registry API base URL
            timeout: Request timeout in seconds
            node_list_file: JSON file to read nodes from instead of the registry
            session: Optional requests.Session
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.node_list_file = node_list_file
        self.session = session or requests.Session()

    def _get_json(self, url: str) -> Any:
        response = self.session.get(url, headers={'Accept': 'application/json'}, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def list_nodes(self) -> List[Node]:
        """
        Retrieve all registered nodes.

        Raises:
            RegistryError: If the registry (or node list file) can't be read
        """
        if self.node_list_file:
            return self._load_node_list_file()

        try:
            logger.info(f"Fetching node list from {self.base_url}/nodes")
            nodes_data = self._get_json(f"{self.base_url}/nodes")
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching node list from registry: {e}")
            raise RegistryError(f"Failed to read node registry: {e}") from e

        nodes = parse_node_list(nodes_data)
        logger.info(f"Registry returned {len(nodes)} nodes")
        return nodes

    def _load_node_list_file(self) -> List[Node]:
        try:
            with open(self.node_list_file, 'r') as f:
                nodes_data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error reading node list file {self.node_list_file}: {e}")
            raise RegistryError(f"Failed to read node list file: {e}") from e

        return parse_node_list(nodes_data)

    def fetch_metadata_uri(self, node_id: int) -> Optional[str]:
        """
        Get the token URI of a node.

        Returns:
            The URI, or None if the node has none

        Raises:
            RegistryError: If the registry can't be read
        """
        if self.node_list_file:
            return None

        url = f"{self.base_url}/nodes/{node_id}/token-uri"
        try:
            response = self.session.get(url, headers={'Accept': 'application/json'}, timeout=self.timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data: Dict[str, Any] = response.json()
        except (requests.RequestException, ValueError) as e:
            raise RegistryError(f"Failed to read token URI for node {node_id}: {e}") from e

        token_uri = data.get('tokenURI') or data.get('token_uri')
        return token_uri or None
