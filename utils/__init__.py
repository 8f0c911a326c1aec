# Utils package for the node status monitor

from .node_filter import filter_nodes
from .node_monitor import NodeMonitor, check_node_health, check_multiple_nodes, compute_network_status
from .registry import MetadataService, RegistryClient
from .store import NodeStore
from .workers import WorkerPool

__all__ = [
    'filter_nodes',
    'NodeMonitor',
    'check_node_health',
    'check_multiple_nodes',
    'compute_network_status',
    'MetadataService',
    'RegistryClient',
    'NodeStore',
    'WorkerPool'
]
