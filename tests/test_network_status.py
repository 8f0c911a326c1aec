"""Tests for network status aggregation and display helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from utils.models import NetworkStatus, NodeStatus
from utils.node_monitor.network_status import (
    calculate_network_status,
    compute_network_status,
    count_statuses,
    format_relative_time,
    get_status_config,
)
from utils.store import StatusCache


class TestCalculateNetworkStatus:

    @pytest.mark.parametrize("online,total,expected", [
        (0, 0, NetworkStatus.OUTAGE),
        (8, 10, NetworkStatus.OPERATIONAL),
        (10, 10, NetworkStatus.OPERATIONAL),
        (7, 10, NetworkStatus.DEGRADED),
        (5, 10, NetworkStatus.DEGRADED),
        (4, 10, NetworkStatus.MAJOR_OUTAGE),
        (1, 100, NetworkStatus.MAJOR_OUTAGE),
        (1, 101, NetworkStatus.OUTAGE),
        (0, 5, NetworkStatus.OUTAGE),
    ])
    def test_thresholds(self, online, total, expected):
        assert calculate_network_status(online, total) == expected


class TestComputeNetworkStatus:

    def test_no_canonical_nodes_is_outage(self, make_node, make_result):
        nodes = [make_node(1, is_canonical=False)]
        info = compute_network_status(nodes, {1: make_result(1)})

        assert info.status == NetworkStatus.OUTAGE
        assert info.canonical_total == 0
        assert info.community_online == 1

    def test_end_to_end_scenario(self, make_node, make_result):
        nodes = [make_node(i) for i in range(1, 11)]
        latencies = [10, 20, 30, 40, 50, 60, 70, 85]
        statuses = {i + 1: make_result(i + 1, latency_ms=lat) for i, lat in enumerate(latencies)}
        statuses[9] = make_result(9, NodeStatus.OFFLINE, latency_ms=5000)
        statuses[10] = make_result(10, NodeStatus.OFFLINE, latency_ms=5000)

        info = compute_network_status(nodes, statuses)

        assert info.status == NetworkStatus.OPERATIONAL
        assert info.canonical_online == 8
        assert info.canonical_total == 10
        # 365 / 8 = 45.625
        assert info.average_latency_ms == 46

    def test_latency_averages_across_both_partitions(self, make_node, make_result):
        nodes = [make_node(1), make_node(2, is_canonical=False), make_node(3, is_canonical=False)]
        statuses = {
            1: make_result(1, latency_ms=10),
            2: make_result(2, latency_ms=15),
            3: make_result(3, NodeStatus.ERROR, latency_ms=900),
        }

        info = compute_network_status(nodes, statuses)

        # 12.5 rounds half up
        assert info.average_latency_ms == 13
        assert info.community_online == 1
        assert info.community_total == 2

    def test_no_latency_reported(self, make_node, make_result):
        nodes = [make_node(1)]
        info = compute_network_status(nodes, {1: make_result(1, latency_ms=None)})

        assert info.canonical_online == 1
        assert info.average_latency_ms is None

    def test_last_checked_is_latest_of_any_status(self, make_node, make_result):
        base = datetime(2026, 3, 1, tzinfo=timezone.utc)
        nodes = [make_node(1), make_node(2, is_canonical=False)]
        statuses = {
            1: make_result(1, last_checked=base),
            2: make_result(2, NodeStatus.OFFLINE, last_checked=base + timedelta(seconds=30)),
        }

        assert compute_network_status(nodes, statuses).last_checked == base + timedelta(seconds=30)

    def test_empty_cache(self, make_node):
        info = compute_network_status([make_node(1), make_node(2)], {})

        assert info.status == NetworkStatus.OUTAGE
        assert info.canonical_online == 0
        assert info.last_checked is None
        assert info.average_latency_ms is None

    def test_ignores_results_for_unknown_nodes(self, make_node, make_result):
        info = compute_network_status([make_node(1)], {1: make_result(1), 99: make_result(99)})

        assert info.canonical_online == 1
        assert info.canonical_total == 1

    def test_accepts_status_cache(self, make_node, make_result):
        cache = StatusCache()
        cache.set(1, make_result(1))

        assert compute_network_status([make_node(1)], cache).status == NetworkStatus.OPERATIONAL

    def test_is_deterministic(self, make_node, make_result):
        nodes = [make_node(i) for i in range(1, 4)]
        statuses = {1: make_result(1, latency_ms=12), 2: make_result(2, NodeStatus.OFFLINE)}

        assert compute_network_status(nodes, statuses) == compute_network_status(nodes, statuses)
        assert len(statuses) == 2


class TestCountStatuses:

    def test_counts(self, make_node, make_result):
        nodes = [make_node(i) for i in range(1, 6)]
        statuses = {
            1: make_result(1),
            2: make_result(2, NodeStatus.OFFLINE),
            3: make_result(3, NodeStatus.ERROR),
        }

        assert count_statuses(nodes, statuses) == {"online": 1, "offline": 1, "error": 1, "unknown": 2}

    def test_results_of_nodes_outside_the_set_are_ignored(self, make_node, make_result):
        nodes = [make_node(1), make_node(2)]
        statuses = {i: make_result(i) for i in range(1, 5)}

        assert count_statuses(nodes, statuses) == {"online": 2, "offline": 0, "error": 0, "unknown": 0}


class TestDisplayHelpers:

    def test_status_labels(self):
        assert get_status_config(NetworkStatus.OPERATIONAL)["label"] == "All Systems Operational"
        assert get_status_config("major-outage")["label"] == "Major Outage"

    @pytest.mark.parametrize("seconds,expected", [
        (2, "Just now"),
        (30, "30 seconds ago"),
        (60, "1 minute ago"),
        (150, "2 minutes ago"),
        (3600, "1 hour ago"),
        (7300, "2 hours ago"),
    ])
    def test_relative_time(self, seconds, expected):
        now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert format_relative_time(now - timedelta(seconds=seconds), now=now) == expected

    def test_relative_time_never(self):
        assert format_relative_time(None) == "Never"
