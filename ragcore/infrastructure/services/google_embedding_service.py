"""
Name: Google Embedding Provider

Responsibilities:
  - Implement EmbeddingService on the Google Gen AI embed_content API
  - Split document batches to the API request limit
  - Use retrieval_document / retrieval_query task types
  - Retry transient HTTP failures (tenacity decorator from retry.py)

Collaborators:
  - google.genai.Client
  - infrastructure.services.retry.create_retry_decorator
  - application.embedder.Embedder: truncation, dimension checks, locking

Constraints:
  - Every failure leaves this module as EmbeddingError
  - Output order equals input order
"""

from __future__ import annotations

from typing import Any, Callable, List, Sequence

from google import genai

from ...exceptions import EmbeddingError
from ...logger import logger
from .retry import create_retry_decorator

TASK_TYPES = {"document": "retrieval_document", "query": "retrieval_query"}


def _vectors_from_response(response: Any, expected: int) -> List[List[float]]:
    """R: Pull `embeddings[i].values` out of an EmbedContentResponse."""
    embeddings = getattr(response, "embeddings", None) or []
    if len(embeddings) != expected:
        raise EmbeddingError(
            f"Embedding response size mismatch: expected {expected}, got {len(embeddings)}"
        )
    vectors = []
    for position, embedding in enumerate(embeddings):
        values = getattr(embedding, "values", None)
        if not values:
            raise EmbeddingError(f"Empty embedding returned at position {position}")
        vectors.append([float(v) for v in values])
    return vectors


class GoogleEmbeddingService:
    """R: Gemini embeddings; the genai client may be shared across threads."""

    DEFAULT_MODEL_ID = "text-embedding-004"
    REQUEST_LIMIT = 100
    MAX_INPUT_CHARS = 8_000

    thread_safe = True

    def __init__(
        self,
        api_key: str = "",
        *,
        client: genai.Client | None = None,
        model_id: str | None = None,
        batch_limit: int | None = None,
        max_input_chars: int | None = None,
        retry_decorator: Callable | None = None,
    ):
        """
        Args:
            api_key: From Settings.google_api_key (ignored when client is given)
            client: Pre-built genai.Client
            batch_limit: Texts per embed_content request
            max_input_chars: Reported to the Embedder for truncation
            retry_decorator: Replaces the Settings-driven tenacity decorator

        Raises:
            EmbeddingError: No API key and no client
        """
        if client is None:
            if not (api_key or "").strip():
                raise EmbeddingError("GOOGLE_API_KEY not configured")
            client = genai.Client(api_key=api_key.strip())

        self._client = client
        self._model_id = (model_id or self.DEFAULT_MODEL_ID).strip()
        self._batch_limit = max(1, min(batch_limit or self.REQUEST_LIMIT, self.REQUEST_LIMIT))
        self.max_input_chars = max_input_chars or self.MAX_INPUT_CHARS
        self._call = (retry_decorator or create_retry_decorator())(
            self._client.models.embed_content
        )

        logger.info(
            "Google embedding provider ready",
            extra={"model_id": self._model_id, "batch_limit": self._batch_limit},
        )

    @property
    def model_id(self) -> str:
        return self._model_id

    def embed_query(self, query: str) -> List[float]:
        return self._request([query], "query")[0]

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        vectors: List[List[float]] = []
        for start in range(0, len(texts), self._batch_limit):
            vectors.extend(self._request(texts[start : start + self._batch_limit], "document"))
        return vectors

    def _request(self, contents: Sequence[str], kind: str) -> List[List[float]]:
        try:
            response = self._call(
                model=self._model_id,
                contents=list(contents),
                config={"task_type": TASK_TYPES[kind]},
            )
        except Exception as exc:
            logger.error(
                "Google embed_content failed",
                exc_info=True,
                extra={
                    "model_id": self._model_id,
                    "task_type": TASK_TYPES[kind],
                    "batch_size": len(contents),
                },
            )
            raise EmbeddingError(
                "Failed to call embedding provider", original_error=exc
            ) from exc
        return _vectors_from_response(response, len(contents))

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()
