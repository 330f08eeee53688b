"""Application use cases"""

from .answer_query import AnswerQueryInput, AnswerQueryUseCase
from .delete_documents import DeleteDocumentsResult, DeleteDocumentsUseCase
from .ingest_documents import IngestDocumentsInput, IngestDocumentsUseCase
from .search_documents import SearchDocumentsUseCase, SearchResult

__all__ = [
    "AnswerQueryInput",
    "AnswerQueryUseCase",
    "DeleteDocumentsResult",
    "DeleteDocumentsUseCase",
    "IngestDocumentsInput",
    "IngestDocumentsUseCase",
    "SearchDocumentsUseCase",
    "SearchResult",
]
