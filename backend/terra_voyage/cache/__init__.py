"""Key-value cache backends."""

from .backends import KeyValueCache, MemoryCache, RedisCache, get_cache, reset_cache

__all__ = ["KeyValueCache", "MemoryCache", "RedisCache", "get_cache", "reset_cache"]
