"""Tests for the status cache, metadata cache and node store."""

import json
import threading
from unittest.mock import patch

import pytest
import redis

from utils.errors import CacheMiss
from utils.models import NodeFilterType, NodeMetadata, NodeStatus
from utils.redis import FileKV, get_redis_client
from utils.store import MetadataCache, NodeStore, StatusCache

HOUR = 60 * 60


class TestStatusCache:

    def test_last_write_wins(self, make_result):
        cache = StatusCache()
        cache.set(1, make_result(1, NodeStatus.OFFLINE))
        cache.set(1, make_result(1, NodeStatus.ONLINE))

        assert cache.get(1).status == NodeStatus.ONLINE
        assert len(cache) == 1

    def test_get_missing(self):
        assert StatusCache().get(42) is None

    def test_get_all_and_clear(self, make_result):
        cache = StatusCache()
        cache.update([make_result(1), make_result(2)])

        assert sorted(r.node_id for r in cache.get_all()) == [1, 2]
        cache.clear()
        assert cache.get_all() == []

    def test_snapshot_is_not_affected_by_later_writes(self, make_result):
        cache = StatusCache()
        cache.set(1, make_result(1, NodeStatus.ONLINE))
        snapshot = cache.snapshot()

        cache.set(1, make_result(1, NodeStatus.OFFLINE))
        cache.set(2, make_result(2))

        assert snapshot[1].status == NodeStatus.ONLINE
        assert 2 not in snapshot

    def test_concurrent_writers(self, make_result):
        cache = StatusCache()

        def writer(offset):
            for i in range(100):
                cache.set(offset + i, make_result(offset + i))

        threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 400


class TestMetadataCache:

    def test_round_trip(self, clock):
        cache = MetadataCache(FileKV(), clock=clock)
        cache.set(100, NodeMetadata(description="Node operator", region="EU-West"))

        metadata = cache.get(100)
        assert metadata.description == "Node operator"
        assert metadata.region == "EU-West"
        assert cache.is_valid(100)

    def test_entry_older_than_ttl_is_missing(self, clock):
        client = FileKV()
        cache = MetadataCache(client, clock=clock)
        client.set("metadata:100", json.dumps({
            "metadata": {"description": "stale"},
            "fetchedAt": clock() - 25 * HOUR,
        }))

        assert cache.get(100) is None
        assert not cache.is_valid(100)

    def test_entry_younger_than_ttl_is_valid(self, clock):
        client = FileKV()
        cache = MetadataCache(client, clock=clock)
        client.set("metadata:100", json.dumps({
            "metadata": {"description": "fresh"},
            "fetchedAt": clock() - 23 * HOUR,
        }))

        assert cache.get(100).description == "fresh"
        assert cache.is_valid(100)

    def test_expires_as_clock_advances(self, clock):
        cache = MetadataCache(FileKV(), clock=clock)
        cache.set(100, NodeMetadata(description="x"))

        clock.advance(24 * HOUR)
        assert cache.is_valid(100)
        clock.advance(1)
        assert not cache.is_valid(100)

    def test_absent_value_is_cached(self, clock):
        cache = MetadataCache(FileKV(), clock=clock)
        cache.set(100, None)

        assert cache.is_valid(100)
        assert cache.require(100) is None

    def test_require_raises_cache_miss(self, clock):
        cache = MetadataCache(FileKV(), clock=clock)
        with pytest.raises(CacheMiss):
            cache.require(7)

    def test_unreadable_entry_is_a_miss(self, clock):
        client = FileKV()
        client.set("metadata:5", "not json")

        assert MetadataCache(client, clock=clock).get(5) is None

    def test_clear_only_removes_metadata(self, clock):
        client = FileKV()
        client.set("preferences:filter_type", "canonical")
        cache = MetadataCache(client, clock=clock)
        cache.set(1, NodeMetadata(description="a"))
        cache.set(2, NodeMetadata(description="b"))

        cache.clear()

        assert cache.get(1) is None and cache.get(2) is None
        assert client.get("preferences:filter_type") == "canonical"


class TestNodeStore:

    def test_metadata_and_filter_survive_restart_but_status_does_not(self, tmp_path, clock, make_result):
        path = str(tmp_path / "store.json")
        store = NodeStore(FileKV(path), clock=clock).rehydrate()
        store.status_cache.set(1, make_result(1))
        store.metadata_cache.set(1, NodeMetadata(description="persisted"))
        store.set_filter_type("community")

        restored = NodeStore(FileKV(path), clock=clock).rehydrate()

        assert restored.status_cache.get_all() == []
        assert restored.metadata_cache.get(1).description == "persisted"
        assert restored.filter_type == NodeFilterType.COMMUNITY

    def test_unknown_stored_filter_falls_back_to_all(self):
        client = FileKV()
        client.set("preferences:filter_type", "bogus")

        assert NodeStore(client).rehydrate().filter_type == NodeFilterType.ALL

    def test_set_invalid_filter_raises(self):
        store = NodeStore()
        with pytest.raises(ValueError):
            store.set_filter_type("everything")
        assert store.filter_type == NodeFilterType.ALL

    def test_reset(self, make_result):
        store = NodeStore()
        store.status_cache.set(1, make_result(1))
        store.metadata_cache.set(1, NodeMetadata(description="x"))
        store.set_filter_type(NodeFilterType.CANONICAL)

        store.reset()

        assert len(store.status_cache) == 0
        assert store.metadata_cache.get(1) is None
        assert store.filter_type == NodeFilterType.ALL


class TestKeyValueBackend:

    def test_file_kv_persists(self, tmp_path):
        path = str(tmp_path / "kv.json")
        kv = FileKV(path)
        kv.set("a", "1")
        kv.set("b", "2")
        kv.delete("b")

        reloaded = FileKV(path)
        assert reloaded.get("a") == "1"
        assert reloaded.exists("b") == 0

    def test_file_kv_scan_matches_pattern(self):
        kv = FileKV()
        kv.set("metadata:1", "x")
        kv.set("other", "y")

        cursor, keys = kv.scan(match="metadata:*")
        assert cursor == 0
        assert keys == ["metadata:1"]

    def test_redis_unavailable_falls_back(self, tmp_path):
        path = str(tmp_path / "fallback.json")
        with patch("utils.redis.client.redis.Redis") as redis_cls:
            redis_cls.return_value.ping.side_effect = redis.exceptions.ConnectionError("refused")
            client = get_redis_client("localhost", 6379, 0, fallback_path=path)

        assert isinstance(client, FileKV)
        assert client.path == path

    def test_redis_available(self):
        with patch("utils.redis.client.redis.Redis") as redis_cls:
            redis_cls.return_value.ping.return_value = True
            client = get_redis_client("localhost", 6379, 0)

        assert client is redis_cls.return_value
