"""
Name: Embedding Cache

Responsibilities:
  - Cache embedding vectors to avoid repeated provider calls
  - Provide TTL-based expiration and LRU eviction (in-memory)
  - Support both in-memory (dev) and Redis (prod) backends

Collaborators:
  - domain.cache.EmbeddingCachePort: implemented by EmbeddingCache
  - infrastructure.services.cached_embedding_service: consumer
  - config.py: embedding_cache_backend / redis_url / size / ttl

Notes:
  - Keys are hashed with SHA-256 before reaching the backend
  - Redis failures are logged and treated as misses (the cache is optional)
  - An unreachable Redis at startup falls back to in-memory
"""

from __future__ import annotations

import hashlib
import json
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from threading import Lock
from typing import List, Optional

import redis

from ..logger import logger


class CacheBackend(ABC):
    """Abstract interface for cache backends."""

    @abstractmethod
    def get(self, key: str) -> Optional[List[float]]:
        ...

    @abstractmethod
    def set(self, key: str, embedding: List[float], ttl_seconds: float | None = None) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def stats(self) -> dict:
        ...


@dataclass
class CacheEntry:
    """Single cache entry with TTL."""

    embedding: List[float]
    created_at: float = field(default_factory=time.monotonic)

    def is_expired(self, ttl_seconds: float) -> bool:
        return time.monotonic() - self.created_at > ttl_seconds


class InMemoryCacheBackend(CacheBackend):
    """
    Thread-safe in-memory LRU cache for embeddings.

    Attributes:
        max_size: Maximum number of cached embeddings
        ttl_seconds: Time-to-live for cache entries
    """

    def __init__(self, max_size: int = 1000, ttl_seconds: float = 3600):
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._max_size = max_size
        self._ttl_seconds = ttl_seconds
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[List[float]]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(self._ttl_seconds):
                del self._cache[key]
                self._misses += 1
                return None
            self._cache.move_to_end(key)
            self._hits += 1
            return list(entry.embedding)

    def set(self, key: str, embedding: List[float], ttl_seconds: float | None = None) -> None:
        """Cache an embedding. Evicts the least recently used entry if full."""
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)
            self._cache[key] = CacheEntry(embedding=list(embedding))

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "backend": "in-memory",
                "size": len(self._cache),
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total > 0 else 0.0,
            }


class RedisCacheBackend(CacheBackend):
    """
    Redis-backed cache for embeddings.

    Provides persistent caching across restarts.
    """

    CACHE_PREFIX = "ragcore:embedding:"

    def __init__(self, client: "redis.Redis", ttl_seconds: float = 3600):
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: float = 3600) -> "RedisCacheBackend":
        return cls(redis.from_url(redis_url, decode_responses=True), ttl_seconds)

    def ping(self) -> bool:
        return bool(self._client.ping())

    def get(self, key: str) -> Optional[List[float]]:
        try:
            data = self._client.get(f"{self.CACHE_PREFIX}{key}")
        except redis.RedisError as exc:
            logger.warning("Embedding cache read failed", extra={"error": str(exc)})
            self._misses += 1
            return None
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    def set(self, key: str, embedding: List[float], ttl_seconds: float | None = None) -> None:
        ttl = max(1, int(ttl_seconds or self._ttl_seconds))
        try:
            self._client.setex(f"{self.CACHE_PREFIX}{key}", ttl, json.dumps(embedding))
        except redis.RedisError as exc:
            logger.warning("Embedding cache write failed", extra={"error": str(exc)})

    def clear(self) -> None:
        try:
            keys = list(self._client.scan_iter(match=f"{self.CACHE_PREFIX}*"))
            if keys:
                self._client.delete(*keys)
        except redis.RedisError as exc:
            logger.warning("Embedding cache clear failed", extra={"error": str(exc)})

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "backend": "redis",
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total > 0 else 0.0,
        }


class EmbeddingCache:
    """
    Facade implementing EmbeddingCachePort over a CacheBackend.

    Raw keys (model|task|text) are hashed so backends see fixed-size keys.
    """

    def __init__(self, backend: CacheBackend, ttl_seconds: float = 3600):
        self._backend = backend
        self._ttl_seconds = ttl_seconds

    @staticmethod
    def _hash_key(key: str) -> str:
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[List[float]]:
        return self._backend.get(self._hash_key(key))

    def set(self, key: str, embedding: List[float]) -> None:
        self._backend.set(self._hash_key(key), embedding, self._ttl_seconds)

    def clear(self) -> None:
        self._backend.clear()

    @property
    def stats(self) -> dict:
        return self._backend.stats()


def create_embedding_cache(
    backend: str,
    *,
    max_size: int = 1000,
    ttl_seconds: float = 3600,
    redis_url: str = "",
) -> Optional[EmbeddingCache]:
    """
    R: Build the configured cache, or None when caching is disabled.

    "redis" without a reachable server falls back to in-memory.
    """
    backend = (backend or "none").strip().lower()
    if backend == "none":
        return None

    if backend == "redis" and redis_url:
        try:
            redis_backend = RedisCacheBackend.from_url(redis_url, ttl_seconds)
            redis_backend.ping()
            logger.info("Embedding cache backend: redis")
            return EmbeddingCache(redis_backend, ttl_seconds)
        except redis.RedisError as exc:
            logger.warning(
                "Redis unavailable, falling back to in-memory embedding cache",
                extra={"error": str(exc)},
            )
    elif backend == "redis":
        logger.warning("REDIS_URL not set, falling back to in-memory embedding cache")

    logger.info("Embedding cache backend: in-memory", extra={"max_size": max_size})
    return EmbeddingCache(InMemoryCacheBackend(max_size, ttl_seconds), ttl_seconds)
