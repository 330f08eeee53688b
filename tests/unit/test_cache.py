"""
Name: Embedding Cache Tests

Responsibilities:
  - Validate LRU eviction and TTL expiry of the in-memory backend
  - Validate that Redis failures degrade to misses
  - Validate backend selection in create_embedding_cache
"""

from unittest.mock import Mock

import pytest
import redis

from ragcore.infrastructure import cache as cache_module
from ragcore.infrastructure.cache import (
    EmbeddingCache,
    InMemoryCacheBackend,
    RedisCacheBackend,
    create_embedding_cache,
)


@pytest.mark.unit
class TestInMemoryCacheBackend:
    def test_get_returns_stored_copy(self):
        backend = InMemoryCacheBackend()
        backend.set("k", [1.0, 2.0])

        value = backend.get("k")
        value.append(3.0)

        assert backend.get("k") == [1.0, 2.0]

    def test_evicts_least_recently_used(self):
        backend = InMemoryCacheBackend(max_size=2)
        backend.set("a", [1.0])
        backend.set("b", [2.0])
        backend.get("a")

        backend.set("c", [3.0])

        assert backend.get("b") is None
        assert backend.get("a") == [1.0]
        assert backend.get("c") == [3.0]

    def test_expired_entries_are_misses(self):
        backend = InMemoryCacheBackend(ttl_seconds=10)
        backend.set("k", [1.0])
        assert backend.get("k") == [1.0]

        backend._cache["k"].created_at -= 11

        assert backend.get("k") is None

    def test_stats(self):
        backend = InMemoryCacheBackend()
        backend.set("k", [1.0])
        backend.get("k")
        backend.get("missing")

        stats = backend.stats()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5


@pytest.mark.unit
class TestRedisCacheBackend:
    def test_round_trip_uses_prefix_and_ttl(self):
        client = Mock()
        backend = RedisCacheBackend(client, ttl_seconds=60)

        backend.set("k", [1.0, 2.0])

        client.setex.assert_called_once_with("ragcore:embedding:k", 60, "[1.0, 2.0]")

    def test_get_decodes_json(self):
        client = Mock()
        client.get.return_value = "[0.5, 0.25]"

        assert RedisCacheBackend(client).get("k") == [0.5, 0.25]

    def test_read_failure_is_a_miss(self):
        client = Mock()
        client.get.side_effect = redis.ConnectionError("down")
        backend = RedisCacheBackend(client)

        assert backend.get("k") is None
        assert backend.stats()["misses"] == 1

    def test_write_failure_is_ignored(self):
        client = Mock()
        client.setex.side_effect = redis.TimeoutError("slow")

        RedisCacheBackend(client).set("k", [1.0])


@pytest.mark.unit
class TestEmbeddingCache:
    def test_keys_are_hashed_before_backend(self):
        backend = InMemoryCacheBackend()
        cache = EmbeddingCache(backend)

        cache.set("model|task|text", [1.0])

        assert cache.get("model|task|text") == [1.0]
        assert backend.get("model|task|text") is None


@pytest.mark.unit
class TestCreateEmbeddingCache:
    def test_none_disables_cache(self):
        assert create_embedding_cache("none") is None

    def test_memory_backend(self):
        cache = create_embedding_cache("memory", max_size=5)

        assert cache.stats["backend"] == "in-memory"
        assert cache.stats["max_size"] == 5

    def test_redis_without_url_falls_back_to_memory(self):
        cache = create_embedding_cache("redis", redis_url="")

        assert cache.stats["backend"] == "in-memory"

    def test_unreachable_redis_falls_back_to_memory(self, monkeypatch):
        client = Mock()
        client.ping.side_effect = redis.ConnectionError("refused")
        monkeypatch.setattr(cache_module.redis, "from_url", lambda *a, **kw: client)

        cache = create_embedding_cache("redis", redis_url="redis://localhost:6399/0")

        assert cache.stats["backend"] == "in-memory"
