"""
Name: Embedder

Responsibilities:
  - Own the embedding provider: lazy creation, reload, close
  - Validate inputs (empty text) before they reach the provider
  - Truncate inputs longer than the provider limit (keep the prefix)
  - Serialize calls when the provider is not thread-safe
  - Enforce one dimensionality for every vector it returns

Collaborators:
  - domain.services.EmbeddingService: the provider contract
  - container.py: supplies the provider factory
  - application.use_cases.*: embed queries and document batches

Constraints:
  - Provider construction failures surface as EmbeddingModelLoadError
  - Deterministic for a fixed model; output order = input order

Notes:
  - The provider is created on first use under a lock (double-checked)
    and shared read-only afterwards
"""

from __future__ import annotations

import threading
from contextlib import nullcontext
from typing import Callable, List, Optional, Sequence

from ..domain.entities import EmbeddingResult
from ..domain.services import EmbeddingService
from ..exceptions import (
    DimensionMismatchError,
    EmbeddingError,
    EmbeddingModelLoadError,
    EmptyInputError,
    RAGError,
)
from ..logger import logger

ProviderFactory = Callable[[], EmbeddingService]


class Embedder:
    """
    R: Thread-safe facade over an EmbeddingService.

    Args:
        provider_factory: Zero-arg callable building the provider
        max_input_chars: Overrides the provider's own limit when set
    """

    def __init__(
        self,
        provider_factory: ProviderFactory,
        *,
        max_input_chars: Optional[int] = None,
    ):
        if max_input_chars is not None and max_input_chars <= 0:
            raise ValueError("max_input_chars must be > 0")
        self._factory = provider_factory
        self._max_input_chars = max_input_chars
        self._provider: Optional[EmbeddingService] = None
        self._load_lock = threading.Lock()
        self._call_lock = threading.Lock()
        self._dimension: Optional[int] = None

    # =========================================================
    # Provider lifecycle
    # =========================================================
    def _get_provider(self) -> EmbeddingService:
        provider = self._provider
        if provider is not None:
            return provider

        with self._load_lock:
            if self._provider is None:
                try:
                    self._provider = self._factory()
                except EmbeddingModelLoadError:
                    raise
                except Exception as exc:
                    logger.error(
                        "Embedding provider failed to load",
                        exc_info=True,
                        extra={"error_type": type(exc).__name__},
                    )
                    raise EmbeddingModelLoadError(
                        f"Embedding provider failed to load: {exc}",
                        original_error=exc,
                    ) from exc
                logger.info(
                    "Embedding provider loaded",
                    extra={"model_id": getattr(self._provider, "model_id", "unknown")},
                )
            return self._provider

    def reload(self) -> None:
        """R: Drop the current provider; the next call builds a fresh one."""
        with self._load_lock:
            self._release()
            self._dimension = None

    def close(self) -> None:
        with self._load_lock:
            self._release()

    def _release(self) -> None:
        provider, self._provider = self._provider, None
        if provider is None:
            return
        close = getattr(provider, "close", None)
        if callable(close):
            close()
        logger.info("Embedding provider released")

    @property
    def is_loaded(self) -> bool:
        return self._provider is not None

    @property
    def dimension(self) -> Optional[int]:
        """R: Vector length observed so far (None before the first call)."""
        return self._dimension

    @property
    def model_id(self) -> str:
        return str(getattr(self._get_provider(), "model_id", "unknown"))

    # =========================================================
    # Embedding
    # =========================================================
    def _limit_for(self, provider: EmbeddingService) -> Optional[int]:
        if self._max_input_chars is not None:
            return self._max_input_chars
        return getattr(provider, "max_input_chars", None)

    def _guard(self, provider: EmbeddingService):
        if getattr(provider, "thread_safe", False):
            return nullcontext()
        return self._call_lock

    @staticmethod
    def _require_text(text: str, index: Optional[int] = None) -> None:
        if not isinstance(text, str) or not text.strip():
            raise EmptyInputError(index=index)

    @staticmethod
    def _prepare(text: str, limit: Optional[int]) -> tuple[str, bool]:
        if limit is not None and len(text) > limit:
            return text[:limit], True
        return text, False

    def _check_dimensions(self, vectors: Sequence[Sequence[float]]) -> None:
        for vector in vectors:
            size = len(vector)
            if size == 0:
                raise EmbeddingError("Embedding provider returned an empty vector")
            if self._dimension is None:
                self._dimension = size
            elif size != self._dimension:
                raise DimensionMismatchError(self._dimension, size)

    def _call(self, provider: EmbeddingService, fn: Callable, arg):
        try:
            with self._guard(provider):
                return fn(arg)
        except RAGError:
            raise
        except Exception as exc:
            logger.error(
                "Embedding provider call failed",
                exc_info=True,
                extra={"error_type": type(exc).__name__},
            )
            raise EmbeddingError(
                f"Embedding provider call failed: {exc}", original_error=exc
            ) from exc

    def embed(self, text: str) -> EmbeddingResult:
        """
        R: Embed one query text.

        Raises:
            EmptyInputError: text is empty or whitespace-only
            EmbeddingModelLoadError: provider could not be created
            EmbeddingError: provider call failed
        """
        self._require_text(text)
        provider = self._get_provider()
        prepared, truncated = self._prepare(text, self._limit_for(provider))
        if truncated:
            logger.info(
                "Embedding input truncated",
                extra={"original_chars": len(text), "kept_chars": len(prepared)},
            )

        vector = list(self._call(provider, provider.embed_query, prepared))
        self._check_dimensions([vector])
        return EmbeddingResult(
            vector=vector,
            truncated=truncated,
            model_id=str(getattr(provider, "model_id", "")),
        )

    def embed_batch(self, texts: Sequence[str]) -> List[EmbeddingResult]:
        """
        R: Embed documents; one result per input, same order.

        Raises:
            EmptyInputError: names the offending batch index
        """
        if not texts:
            return []
        for index, text in enumerate(texts):
            self._require_text(text, index=index)
        provider = self._get_provider()
        limit = self._limit_for(provider)

        prepared: List[str] = []
        truncated: List[bool] = []
        for text in texts:
            value, was_truncated = self._prepare(text, limit)
            prepared.append(value)
            truncated.append(was_truncated)

        vectors = [list(v) for v in self._call(provider, provider.embed_batch, prepared)]
        if len(vectors) != len(prepared):
            raise EmbeddingError(
                f"Embedding provider returned {len(vectors)} vectors for {len(prepared)} texts"
            )
        self._check_dimensions(vectors)

        model_id = str(getattr(provider, "model_id", ""))
        return [
            EmbeddingResult(vector=vector, truncated=flag, model_id=model_id)
            for vector, flag in zip(vectors, truncated)
        ]
