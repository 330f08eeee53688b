"""
Name: Local Embeddings Service (sentence-transformers)

Responsibilities:
  - Implement EmbeddingService with a local sentence-transformers model
  - Load the model on construction (the Embedder builds it lazily)

Collaborators:
  - sentence_transformers.SentenceTransformer (optional "local" extra)
  - application.embedder: serializes calls because thread_safe is False

Constraints:
  - Model load failures raise EmbeddingModelLoadError (systemic)
"""

from __future__ import annotations

from typing import List

from sentence_transformers import SentenceTransformer

from ...exceptions import EmbeddingModelLoadError
from ...logger import logger


class SentenceTransformerEmbeddingService:
    """R: Local model provider; not safe for concurrent encode() calls."""

    DEFAULT_MODEL_ID = "all-MiniLM-L6-v2"
    thread_safe = False

    def __init__(
        self,
        model_id: str | None = None,
        *,
        max_input_chars: int = 8_000,
        batch_size: int = 32,
    ):
        self._model_id = model_id or self.DEFAULT_MODEL_ID
        self._batch_size = batch_size
        self.max_input_chars = max_input_chars
        try:
            self._model = SentenceTransformer(self._model_id)
        except (OSError, ValueError) as exc:
            raise EmbeddingModelLoadError(
                f"Could not load embedding model {self._model_id!r}",
                original_error=exc,
            ) from exc
        logger.info(
            "SentenceTransformerEmbeddingService initialized",
            extra={"model_id": self._model_id},
        )

    @property
    def model_id(self) -> str:
        return self._model_id

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        vectors = self._model.encode(
            list(texts), batch_size=self._batch_size, convert_to_numpy=True
        )
        return [vector.tolist() for vector in vectors]

    def embed_query(self, query: str) -> List[float]:
        return self._model.encode(query, convert_to_numpy=True).tolist()

    def close(self) -> None:
        self._model = None
