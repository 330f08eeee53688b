"""
Name: Domain Service Interfaces

Responsibilities:
  - Define contracts for external model providers (embeddings, LLM)
  - Keep use cases independent from any provider SDK

Collaborators:
  - Implementations in infrastructure.services
  - application.embedder wraps an EmbeddingService

Constraints:
  - Pure interfaces (Protocol), no implementation
  - Provider-agnostic (cloud API or local model)

Notes:
  - Optional capabilities (thread_safe, max_input_chars, close) are read with
    getattr() by the callers, so minimal test doubles stay valid
"""

from typing import List, Protocol


class EmbeddingService(Protocol):
    """
    R: Interface for text embedding generation.

    Implementations must provide:
      - Batch embedding for documents
      - Single embedding for queries
      - Consistent dimensionality across embed_batch and embed_query

    Optional attributes:
      - thread_safe: bool (default False -> calls are serialized)
      - max_input_chars: int (provider input limit)
      - close(): release model/client resources
    """

    @property
    def model_id(self) -> str:
        """R: Stable identifier of the model (used in cache keys)."""
        ...

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        R: Generate embeddings for multiple texts (document ingestion).

        Args:
            texts: Strings to embed, already validated as non-empty

        Returns:
            One vector per input, same order
        """
        ...

    def embed_query(self, query: str) -> List[float]:
        """
        R: Generate embedding for a single query (search).

        Returns:
            Embedding vector (same dimensionality as embed_batch)
        """
        ...


class LLMService(Protocol):
    """
    R: Interface for language model generation.

    The orchestrator enforces the deadline but cannot interrupt a running
    call. Providers must bound their own network call with timeout_seconds,
    otherwise a hung call keeps a generation worker busy.

    A provider that sets `accepts_cancel_event = True` is also called with
    `cancel_event=`, a threading.Event set once the caller stops waiting.
    """

    def generate_answer(self, prompt: str, *, timeout_seconds: float) -> str:
        """
        R: Generate an answer for a fully rendered prompt.

        Args:
            prompt: Template + context + question
            timeout_seconds: Deadline for the call

        Returns:
            Generated answer text
        """
        ...
