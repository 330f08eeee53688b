"""
Name: Typed Engine Errors

Responsibilities:
  - Provide a stable error_code per failure family
  - Attach an error_id (UUID) for correlation with logs
  - Carry a human message without leaking secrets

Collaborators:
  - application/*: raise and classify these errors
  - interfaces.handlers: map them to typed statuses
  - logger.py: error_id is logged alongside the failure

Notes:
  - Component-local errors (IngestItemError, InvalidFilterError) are reported
    structurally; systemic ones (EmbeddingModelLoadError, transient
    RetrievalError) surface to the caller
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import uuid4


@dataclass(frozen=True)
class ErrorResponse:
    """R: Minimal serializable error payload."""

    error_code: str
    message: str
    error_id: str

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "error_id": self.error_id,
        }


class RAGError(Exception):
    """R: Base for internal engine errors (error_code + error_id + message)."""

    error_code: str = "RAG_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error_code=self.error_code, message=self.message, error_id=self.error_id
        )


# ---------------------------------------------------------------------------
# Embedding
# ---------------------------------------------------------------------------


class EmbeddingError(RAGError):
    """Embedding provider failures."""

    error_code: str = "EMBEDDING_ERROR"


class EmptyInputError(EmbeddingError):
    """Embedding requested for empty or whitespace-only text."""

    error_code: str = "EMPTY_INPUT"

    def __init__(
        self,
        message: str = "Text to embed must not be empty",
        *,
        index: int | None = None,
    ):
        self.index = index
        if index is not None:
            message = f"{message} (batch index {index})"
        super().__init__(message)


class EmbeddingModelLoadError(EmbeddingError):
    """The embedding model could not be initialized (systemic)."""

    error_code: str = "EMBEDDING_MODEL_LOAD_ERROR"


class DimensionMismatchError(RAGError):
    """A vector does not match the collection's fixed dimension."""

    error_code: str = "DIMENSION_MISMATCH"

    def __init__(self, expected: int, actual: int, *, document_id: Any = None):
        self.expected = expected
        self.actual = actual
        self.document_id = document_id
        target = f" for document {document_id!r}" if document_id is not None else ""
        super().__init__(
            f"Vector dimension {actual} does not match collection dimension {expected}{target}"
        )


# ---------------------------------------------------------------------------
# Retrieval / collections
# ---------------------------------------------------------------------------


class RetrievalError(RAGError):
    """
    Similarity index unreachable or query malformed.

    transient=True marks network/availability causes (retried once);
    malformed queries are never retried.
    """

    error_code: str = "RETRIEVAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        transient: bool = False,
        original_error: Exception | None = None,
    ):
        self.transient = transient
        super().__init__(message, original_error=original_error)


class InvalidFilterError(RetrievalError):
    """Metadata filter could not be parsed."""

    error_code: str = "INVALID_FILTER"

    def __init__(self, message: str):
        super().__init__(message, transient=False)


class CollectionNotFoundError(RAGError):
    error_code: str = "COLLECTION_NOT_FOUND"


class CollectionConflictError(RAGError):
    """Collection exists with a different dimension or metric."""

    error_code: str = "COLLECTION_CONFLICT"


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class GenerationError(RAGError):
    """Generative model call failed (never retried automatically)."""

    error_code: str = "GENERATION_ERROR"


class GenerationTimeout(GenerationError):
    """Generative model call exceeded its deadline."""

    error_code: str = "GENERATION_TIMEOUT"


class GenerationCancelled(GenerationError):
    """Caller cancelled the generation call."""

    error_code: str = "GENERATION_CANCELLED"


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class IngestItemError(RAGError):
    """Per-document ingestion failure, collected into the IngestReport."""

    error_code: str = "INGEST_ITEM_ERROR"

    def __init__(
        self,
        document_id: Any,
        reason: str,
        message: str,
        *,
        original_error: Exception | None = None,
    ):
        self.document_id = document_id
        self.reason = reason
        super().__init__(message, original_error=original_error)

    def to_dict(self) -> dict:
        return {
            "document_id": self.document_id,
            "reason": self.reason,
            "message": self.message,
            "error_id": self.error_id,
        }


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RequestValidationError(RAGError):
    """Request payload failed schema validation."""

    error_code: str = "VALIDATION_ERROR"
