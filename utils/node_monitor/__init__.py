# Node Monitor subpackage for probing node health and aggregating network status

from .health_checker import check_node_health, check_multiple_nodes, create_health_result_map
from .monitor import NodeMonitor, SchedulerState
from .network_status import calculate_network_status, compute_network_status, count_statuses

__all__ = [
    'check_node_health',
    'check_multiple_nodes',
    'create_health_result_map',
    'NodeMonitor',
    'SchedulerState',
    'calculate_network_status',
    'compute_network_status',
    'count_statuses'
]
