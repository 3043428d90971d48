"""Unit tests for the key-value cache backends."""

from unittest.mock import MagicMock, patch

import pytest

from backend.terra_voyage.cache.backends import MemoryCache, RedisCache, get_cache, reset_cache
from backend.terra_voyage.config import Settings


@pytest.mark.unit
class TestMemoryCache:
    def test_json_round_trip(self):
        cache = MemoryCache()
        cache.set("k", {"a": [1, 2]})
        assert cache.get("k") == {"a": [1, 2]}
        assert cache.get("missing") is None

    def test_returns_copies(self):
        """Test that mutating a fetched value does not change the cache."""
        cache = MemoryCache()
        cache.set("k", {"a": 1})
        cache.get("k")["a"] = 2
        assert cache.get("k") == {"a": 1}

    def test_ttl(self):
        now = [100.0]
        cache = MemoryCache(clock=lambda: now[0])
        cache.set("k", "v", ttl_seconds=10)
        now[0] = 109.9
        assert cache.get("k") == "v"
        now[0] = 110.0
        assert cache.get("k") is None

    def test_delete_and_clear(self):
        cache = MemoryCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        assert cache.get("a") is None
        cache.clear()
        assert cache.get("b") is None


@pytest.mark.unit
class TestRedisCache:
    def test_set_with_ttl(self):
        client = MagicMock()
        RedisCache(client).set("k", {"a": 1}, ttl_seconds=60)
        client.set.assert_called_once_with("k", '{"a": 1}', ex=60)

    def test_set_without_ttl(self):
        client = MagicMock()
        RedisCache(client).set("k", 1)
        client.set.assert_called_once_with("k", "1")

    def test_get_decodes_json(self):
        client = MagicMock()
        client.get.return_value = '{"a": 1}'
        assert RedisCache(client).get("k") == {"a": 1}
        client.get.return_value = None
        assert RedisCache(client).get("k") is None


@pytest.mark.unit
class TestSingleton:
    def test_memory_backend_by_default(self):
        reset_cache()
        assert isinstance(get_cache(), MemoryCache)
        assert get_cache() is get_cache()

    def test_redis_backend_from_settings(self):
        reset_cache()
        settings = Settings(cache_backend="redis", redis_url="redis://cache:6379/1")
        with (
            patch("backend.terra_voyage.cache.backends.get_settings", return_value=settings),
            patch("backend.terra_voyage.cache.backends.redis.from_url") as from_url,
        ):
            cache = get_cache()
        assert isinstance(cache, RedisCache)
        from_url.assert_called_once_with("redis://cache:6379/1", decode_responses=True)
