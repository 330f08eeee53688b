"""Domain layer exports"""

from .entities import (
    CollectionInfo,
    DistanceMetric,
    Document,
    EmbeddingResult,
    GenerationContext,
    IndexRecord,
    IngestOutcome,
    IngestReport,
    Query,
    RagResponse,
    RagState,
    RagStatus,
    ScoredMatch,
    id_sort_key,
)
from .filters import MetadataFilter
from .repositories import CollectionCatalog, SimilarityIndex
from .services import EmbeddingService, LLMService

__all__ = [
    "CollectionInfo",
    "DistanceMetric",
    "Document",
    "EmbeddingResult",
    "GenerationContext",
    "IndexRecord",
    "IngestOutcome",
    "IngestReport",
    "Query",
    "RagResponse",
    "RagState",
    "RagStatus",
    "ScoredMatch",
    "id_sort_key",
    "MetadataFilter",
    "CollectionCatalog",
    "SimilarityIndex",
    "EmbeddingService",
    "LLMService",
]
