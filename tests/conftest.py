"""Shared fixtures for node status monitor tests."""

from datetime import datetime, timezone

import pytest

from helpers import FakeClock

from utils.models import HealthResult, Node, NodeStatus


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_node():
    def _make(node_id, http_address=None, is_canonical=True, owner="0xowner"):
        if http_address is None:
            http_address = f"node{node_id}.example.com"
        return Node(node_id=node_id, http_address=http_address, is_canonical=is_canonical, owner=owner)

    return _make


@pytest.fixture
def make_result():
    def _make(node_id, status=NodeStatus.ONLINE, latency_ms=None, last_checked=None, version=None):
        return HealthResult(
            node_id=node_id,
            http_address=f"node{node_id}.example.com",
            status=status,
            latency_ms=latency_ms,
            version=version,
            last_checked=last_checked or datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

    return _make
