"""
Name: Cached Embedding Service

Responsibilities:
  - Put an EmbeddingCachePort in front of any embedding provider
  - Embed each distinct cache miss of a batch once, keep input order

Collaborators:
  - domain.services.EmbeddingService
  - domain.cache.EmbeddingCachePort (infrastructure.cache.EmbeddingCache)
  - metrics: cache hit/miss counters

Constraints:
  - Keys include model id and kind (query vs document) so vectors from
    different models or task types never mix
  - Text is keyed exactly as given; the Embedder has already truncated it
"""

from __future__ import annotations

from typing import Dict, List

from ...domain.cache import EmbeddingCachePort
from ...domain.services import EmbeddingService
from ...exceptions import EmbeddingError
from ...metrics import record_embedding_cache_hit, record_embedding_cache_miss

KEY_VERSION = "v1"
KIND_QUERY = "query"
KIND_DOCUMENT = "document"


def build_embedding_cache_key(model_id: str, text: str, kind: str) -> str:
    return f"{KEY_VERSION}|{model_id}|{kind}|{text}"


class CachingEmbeddingService:
    """
    R: Provider decorator that reads and fills the embedding cache.

    Forwards thread_safe, max_input_chars and close() so the Embedder
    treats it as the wrapped provider.
    """

    def __init__(
        self,
        provider: EmbeddingService,
        cache: EmbeddingCachePort,
        model_id: str | None = None,
    ):
        self._provider = provider
        self._cache = cache
        self._model_id = model_id or getattr(provider, "model_id", "unknown")

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def thread_safe(self) -> bool:
        return bool(getattr(self._provider, "thread_safe", False))

    @property
    def max_input_chars(self) -> int | None:
        return getattr(self._provider, "max_input_chars", None)

    def close(self) -> None:
        close = getattr(self._provider, "close", None)
        if callable(close):
            close()

    def embed_query(self, query: str) -> List[float]:
        key = build_embedding_cache_key(self._model_id, query, KIND_QUERY)
        vector = self._cache.get(key)
        if vector is not None:
            record_embedding_cache_hit(kind=KIND_QUERY)
            return vector

        record_embedding_cache_miss(kind=KIND_QUERY)
        vector = self._provider.embed_query(query)
        self._cache.set(key, vector)
        return vector

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        keys = [build_embedding_cache_key(self._model_id, t, KIND_DOCUMENT) for t in texts]
        found: Dict[str, List[float]] = {}
        missing: Dict[str, str] = {}
        for key, text in zip(keys, texts):
            if key in found or key in missing:
                continue
            vector = self._cache.get(key)
            if vector is None:
                missing[key] = text
            else:
                found[key] = vector

        hit_count = sum(1 for key in keys if key in found)
        if hit_count:
            record_embedding_cache_hit(count=hit_count, kind=KIND_DOCUMENT)
        if not missing:
            return [found[key] for key in keys]

        record_embedding_cache_miss(count=len(keys) - hit_count, kind=KIND_DOCUMENT)
        vectors = self._provider.embed_batch(list(missing.values()))
        if len(vectors) != len(missing):
            raise EmbeddingError(
                f"Embedding provider returned {len(vectors)} vectors "
                f"for {len(missing)} texts"
            )
        for key, vector in zip(missing, vectors):
            self._cache.set(key, vector)
            found[key] = vector
        return [found[key] for key in keys]
