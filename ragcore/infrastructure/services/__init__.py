"""Infrastructure services"""

from .cached_embedding_service import CachingEmbeddingService
from .fake_embedding_service import FakeEmbeddingService
from .fake_llm_service import FakeLLMService
from .google_embedding_service import GoogleEmbeddingService
from .google_llm_service import GoogleLLMService
from .retry import (
    PERMANENT_HTTP_CODES,
    TRANSIENT_HTTP_CODES,
    create_retrieval_retry,
    create_retry_decorator,
    is_transient_error,
    is_transient_retrieval_error,
)

__all__ = [
    "CachingEmbeddingService",
    "FakeEmbeddingService",
    "FakeLLMService",
    "GoogleEmbeddingService",
    "GoogleLLMService",
    "is_transient_error",
    "is_transient_retrieval_error",
    "create_retry_decorator",
    "create_retrieval_retry",
    "TRANSIENT_HTTP_CODES",
    "PERMANENT_HTTP_CODES",
]
