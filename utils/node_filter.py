from typing import List, Mapping, Optional

from utils.models import HealthResult, Node, NodeFilterType, NodeMetadata


def filter_nodes(
    nodes: List[Node],
    filter_type=NodeFilterType.ALL,
    query: str = '',
    statuses: Optional[Mapping[int, HealthResult]] = None,
    metadata: Optional[Mapping[int, Optional[NodeMetadata]]] = None,
) -> List[Node]:
    """
    Filter nodes by category and a case-insensitive search query.

    The query matches the node ID, HTTP address, owner, operator name and the
    last reported version.
    """
    filter_type = NodeFilterType(filter_type)
    if filter_type == NodeFilterType.CANONICAL:
        nodes = [node for node in nodes if node.is_canonical]
    elif filter_type == NodeFilterType.COMMUNITY:
        nodes = [node for node in nodes if not node.is_canonical]

    query = (query or '').strip().lower()
    if not query:
        return list(nodes)

    statuses = statuses or {}
    metadata = metadata or {}

    def matches(node: Node) -> bool:
        node_metadata = metadata.get(node.node_id)
        operator_name = (node_metadata.operator_name or '') if node_metadata else ''
        health = statuses.get(node.node_id)
        version = (health.version or '') if health else ''
        return (
            query in str(node.node_id)
            or query in node.http_address.lower()
            or query in node.owner.lower()
            or query in operator_name.lower()
            or query in version.lower()
        )

    return [node for node in nodes if matches(node)]
