"""
Name: Embedding Cache Port

Responsibilities:
  - Define the minimal contract (get/set) for caching embedding vectors

Collaborators:
  - infrastructure.cache: in-memory and Redis backends
  - infrastructure.services.cached_embedding_service: consumer

Constraints:
  - Domain module: no Redis imports
  - Backend decides TTL, eviction and serialization
"""

from __future__ import annotations

from typing import Protocol


class EmbeddingCachePort(Protocol):
    """
    Key: deterministic string (model id + kind + hash of the text).
    Value: embedding vector.

    get() returns None when missing, expired or evicted.
    """

    def get(self, key: str) -> list[float] | None:
        ...

    def set(self, key: str, embedding: list[float]) -> None:
        ...
