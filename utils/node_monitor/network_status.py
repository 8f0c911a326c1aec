"""
Network status aggregation.

The network status is derived from the canonical nodes only:

- operational: >= 80% of canonical nodes online
- degraded: 50-79% online
- major-outage: 1-49% online
- outage: no canonical node online, or no canonical nodes at all
"""

import math
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional

from utils.models import HealthResult, NetworkStatus, NetworkStatusInfo, Node, NodeStatus

STATUS_CONFIG = {
    NetworkStatus.OPERATIONAL: {'label': 'All Systems Operational', 'color': '#22c55e'},
    NetworkStatus.DEGRADED: {'label': 'Degraded Performance', 'color': '#eab308'},
    NetworkStatus.MAJOR_OUTAGE: {'label': 'Major Outage', 'color': '#f97316'},
    NetworkStatus.OUTAGE: {'label': 'Outage', 'color': '#ef4444'},
}


def calculate_network_status(canonical_online: int, canonical_total: int) -> NetworkStatus:
    if canonical_total == 0:
        return NetworkStatus.OUTAGE

    # Integer comparison keeps the percentage boundaries exact
    scaled = canonical_online * 100
    if scaled >= 80 * canonical_total:
        return NetworkStatus.OPERATIONAL
    elif scaled >= 50 * canonical_total:
        return NetworkStatus.DEGRADED
    elif scaled >= 1 * canonical_total:
        return NetworkStatus.MAJOR_OUTAGE
    return NetworkStatus.OUTAGE


def _snapshot(statuses) -> Mapping[int, HealthResult]:
    # Accept a StatusCache as well as a plain mapping
    snapshot = getattr(statuses, 'snapshot', None)
    return snapshot() if callable(snapshot) else statuses


def compute_network_status(nodes: Iterable[Node], statuses) -> NetworkStatusInfo:
    """
    Reduce the node set and its health results to one network status.

    Pure: reads a single snapshot of `statuses` and has no side effects.

    Args:
        nodes: All known nodes
        statuses: StatusCache or mapping of node ID to HealthResult
    """
    health_map = _snapshot(statuses)

    canonical_total = canonical_online = 0
    community_total = community_online = 0
    total_latency_ms = 0
    latency_count = 0
    latest_check: Optional[datetime] = None

    for node in nodes:
        if node.is_canonical:
            canonical_total += 1
        else:
            community_total += 1

        health = health_map.get(node.node_id)
        if health is None:
            continue

        if health.status == NodeStatus.ONLINE:
            if node.is_canonical:
                canonical_online += 1
            else:
                community_online += 1
            if health.latency_ms is not None:
                total_latency_ms += health.latency_ms
                latency_count += 1

        if latest_check is None or health.last_checked > latest_check:
            latest_check = health.last_checked

    average_latency_ms = None
    if latency_count:
        # Round half up
        average_latency_ms = int(math.floor(total_latency_ms / latency_count + 0.5))

    return NetworkStatusInfo(
        status=calculate_network_status(canonical_online, canonical_total),
        canonical_online=canonical_online,
        canonical_total=canonical_total,
        community_online=community_online,
        community_total=community_total,
        average_latency_ms=average_latency_ms,
        last_checked=latest_check,
    )


def count_statuses(nodes: Iterable[Node], statuses) -> Dict[str, int]:
    """Count results of the given nodes by status; nodes without a result count as unknown."""
    health_map = _snapshot(statuses)
    counts = {status.value: 0 for status in NodeStatus}
    for node in nodes:
        result = health_map.get(node.node_id)
        status = result.status if result is not None else NodeStatus.UNKNOWN
        counts[NodeStatus(status).value] += 1
    return counts


def get_status_config(status: NetworkStatus) -> Dict[str, str]:
    return dict(STATUS_CONFIG[NetworkStatus(status)])


def format_relative_time(timestamp: Optional[datetime], now: Optional[datetime] = None) -> str:
    if timestamp is None:
        return 'Never'

    now = now or datetime.now(timezone.utc)
    diff_seconds = int((now - timestamp).total_seconds())

    if diff_seconds < 5:
        return 'Just now'
    elif diff_seconds < 60:
        return f"{diff_seconds} seconds ago"
    elif diff_seconds < 3600:
        minutes = diff_seconds // 60
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = diff_seconds // 3600
    return f"{hours} hour{'s' if hours != 1 else ''} ago"
