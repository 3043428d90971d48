"""Key-value cache with in-memory and Redis implementations.

Values are JSON-serializable objects. The backend is chosen by the
``cache_backend`` setting; both share the same Protocol so callers never
branch on it.
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Protocol

import redis

from backend.terra_voyage.config import get_settings


class KeyValueCache(Protocol):
    """Minimal JSON cache interface."""

    def get(self, key: str) -> Any | None:
        """Return the stored value or None if missing/expired."""
        ...

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store a value, optionally expiring after ``ttl_seconds``."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        ...


class MemoryCache:
    """Thread-safe process-local cache."""

    def __init__(self, clock=time.monotonic):
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            raw, expires = entry
            if expires is not None and self._clock() >= expires:
                del self._data[key]
                return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        expires = self._clock() + ttl_seconds if ttl_seconds else None
        raw = json.dumps(value, default=str)
        with self._lock:
            self._data[key] = (raw, expires)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class RedisCache:
    """Redis-backed cache storing JSON strings."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        return cls(redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Any | None:
        raw = self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        raw = json.dumps(value, default=str)
        if ttl_seconds:
            self.client.set(key, raw, ex=ttl_seconds)
        else:
            self.client.set(key, raw)

    def delete(self, key: str) -> None:
        self.client.delete(key)


_cache: KeyValueCache | None = None


def get_cache() -> KeyValueCache:
    """Get the configured cache singleton."""
    global _cache
    if _cache is None:
        settings = get_settings()
        if settings.cache_backend == "redis":
            _cache = RedisCache.from_url(settings.redis_url)
        else:
            _cache = MemoryCache()
    return _cache


def reset_cache(cache: KeyValueCache | None = None) -> None:
    """Replace the singleton (tests and reconfiguration)."""
    global _cache
    _cache = cache
