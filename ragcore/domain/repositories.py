"""
Name: Domain Repository Interfaces

Responsibilities:
  - Define the contract of a similarity index (vector store)
  - Define the catalog that creates/looks up collections

Collaborators:
  - domain.entities: IndexRecord, ScoredMatch, CollectionInfo
  - Implementations in infrastructure.index (in-memory, PostgreSQL/pgvector)

Constraints:
  - Pure interfaces (Protocol), no implementation
  - Storage-agnostic
  - search() results: descending score, ties by id_sort_key, at most k items

Notes:
  - Backend failures surface as RetrievalError (transient=True when the
    backend is unreachable)
"""

from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence

from .entities import CollectionInfo, DistanceMetric, DocumentId, IndexRecord, ScoredMatch


class SimilarityIndex(Protocol):
    """
    R: One collection of (id, vector, payload) records with a fixed
    dimension and metric.

    Implementations must provide:
      - Idempotent upsert keyed by id
      - Exact top-k search with optional metadata filter
      - Safe concurrent reads with serialized writes
    """

    @property
    def info(self) -> CollectionInfo:
        ...

    def upsert(
        self, document_id: DocumentId, vector: Sequence[float], payload: Mapping[str, Any]
    ) -> bool:
        """
        R: Insert or replace a record.

        Returns:
            True if the id was new, False if an existing record was replaced

        Raises:
            DimensionMismatchError: vector length differs from the collection
        """
        ...

    def upsert_many(self, records: Iterable[IndexRecord]) -> List[bool]:
        """R: Upsert a batch (validated up front, applied atomically where supported)."""
        ...

    def delete(self, document_id: DocumentId) -> bool:
        """R: Remove a record. Returns False if it did not exist."""
        ...

    def get(self, document_id: DocumentId) -> Optional[IndexRecord]:
        ...

    def search(
        self,
        vector: Sequence[float],
        k: int,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[ScoredMatch]:
        """
        R: Return up to k nearest records by the collection metric.

        Raises:
            DimensionMismatchError: query vector has the wrong dimension
            RetrievalError: backend unavailable or filter malformed
        """
        ...

    def count(self) -> int:
        ...

    def ids(self) -> List[DocumentId]:
        ...

    def clear(self) -> None:
        ...

    def close(self) -> None:
        ...


class CollectionCatalog(Protocol):
    """R: Creates, opens and drops named collections."""

    def create_collection(
        self,
        name: str,
        dimension: Optional[int] = None,
        metric: DistanceMetric = DistanceMetric.COSINE,
    ) -> SimilarityIndex:
        """
        R: Create a collection (idempotent when dimension/metric match).

        Raises:
            CollectionConflictError: collection exists with other settings
        """
        ...

    def get_collection(self, name: str) -> SimilarityIndex:
        """
        Raises:
            CollectionNotFoundError
        """
        ...

    def list_collections(self) -> List[CollectionInfo]:
        ...

    def drop_collection(self, name: str) -> bool:
        ...

    def close(self) -> None:
        ...
