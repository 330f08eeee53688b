"""
Name: Fake Embeddings Service (Deterministic)

Responsibilities:
  - Provide deterministic embeddings for testing/CI
  - Match the configured dimensionality
  - Avoid external dependencies (no API calls)

Notes:
  - Vectors are SHA-256 derived: equal text -> equal vector, no semantics
"""

from __future__ import annotations

import hashlib
import struct
from typing import List

from ...logger import logger

EMBEDDING_DIMENSION = 768


def _hash_to_float(text: str, index: int) -> float:
    digest = hashlib.sha256(f"{text}|{index}".encode("utf-8")).digest()
    value = struct.unpack(">Q", digest[:8])[0]
    return (value / (2**63)) - 1.0


def _build_embedding(text: str, dimension: int) -> List[float]:
    return [_hash_to_float(text, i) for i in range(dimension)]


class FakeEmbeddingService:
    """R: Deterministic EmbeddingService for tests/CI (thread-safe, stateless)."""

    MODEL_ID = "fake-embedding-v1"
    thread_safe = True

    def __init__(self, dimension: int = EMBEDDING_DIMENSION, max_input_chars: int = 8_000):
        if dimension <= 0:
            raise ValueError("dimension must be > 0")
        self._dimension = dimension
        self.max_input_chars = max_input_chars
        logger.info("FakeEmbeddingService initialized", extra={"dimension": dimension})

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return [_build_embedding(text, self._dimension) for text in texts]

    def embed_query(self, query: str) -> List[float]:
        return _build_embedding(query, self._dimension)

    @property
    def model_id(self) -> str:
        return f"{self.MODEL_ID}-{self._dimension}"
