"""
Name: In-Memory Similarity Index

Responsibilities:
  - Store (id, vector, payload) records for one collection in memory
  - Exact top-k search with numpy (cosine / dot / euclidean)
  - Provide a catalog of named collections

Collaborators:
  - domain.similarity: vectorized scoring
  - domain.filters: metadata predicate evaluation
  - infrastructure.locks.ReadWriteLock: per-collection concurrency

Constraints:
  - Deterministic ordering: score desc, id_sort_key asc
  - Dimension fixed at creation or by the first insert, never changes
  - A wrong-dimension vector fails only the current operation

Notes:
  - Filters are evaluated against payload["metadata"]
  - Payloads are copied on write and on read so callers never share stored state
"""

from __future__ import annotations

import copy
import heapq
from dataclasses import replace
from threading import Lock
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from ...domain.entities import (
    CollectionInfo,
    DistanceMetric,
    DocumentId,
    IndexRecord,
    ScoredMatch,
    id_sort_key,
)
from ...domain.filters import MetadataFilter
from ...domain.similarity import as_vector, score_matrix
from ...exceptions import (
    CollectionConflictError,
    CollectionNotFoundError,
    DimensionMismatchError,
)
from ...logger import logger
from ..locks import ReadWriteLock


class InMemorySimilarityIndex:
    """
    R: Exact in-memory vector index for one collection.

    Readers (search/get/count) run concurrently; writers (upsert/delete/clear)
    take the exclusive side of the lock.
    """

    def __init__(
        self,
        name: str,
        dimension: Optional[int] = None,
        metric: DistanceMetric | str = DistanceMetric.COSINE,
    ):
        if dimension is not None and dimension <= 0:
            raise ValueError("dimension must be a positive integer")
        self._name = name
        self._metric = DistanceMetric(metric)
        self._dimension = dimension
        self._records: Dict[DocumentId, IndexRecord] = {}
        self._vectors: Dict[DocumentId, np.ndarray] = {}
        self._lock = ReadWriteLock()

    @property
    def info(self) -> CollectionInfo:
        return CollectionInfo(name=self._name, metric=self._metric, dimension=self._dimension)

    # =========================================================
    # Writes
    # =========================================================
    def _check_dimension(self, vector: np.ndarray, document_id: Any = None) -> None:
        if vector.ndim != 1:
            raise DimensionMismatchError(
                self._dimension or 0, int(vector.size), document_id=document_id
            )
        if self._dimension is not None and vector.shape[0] != self._dimension:
            raise DimensionMismatchError(
                self._dimension, int(vector.shape[0]), document_id=document_id
            )

    def _put(self, record: IndexRecord, vector: np.ndarray) -> bool:
        if self._dimension is None:
            self._dimension = int(vector.shape[0])
            logger.info(
                "Collection dimension fixed by first insert",
                extra={"collection": self._name, "dimension": self._dimension},
            )
        is_new = record.id not in self._records
        self._records[record.id] = record
        self._vectors[record.id] = vector
        return is_new

    @staticmethod
    def _prepare(
        document_id: DocumentId, vector: Sequence[float], payload: Mapping[str, Any]
    ) -> tuple[IndexRecord, np.ndarray]:
        array = as_vector(vector)
        record = IndexRecord(
            id=document_id,
            vector=tuple(float(v) for v in array.ravel()),
            payload=copy.deepcopy(dict(payload or {})),
        )
        return record, array

    def upsert(
        self, document_id: DocumentId, vector: Sequence[float], payload: Mapping[str, Any]
    ) -> bool:
        record, array = self._prepare(document_id, vector, payload)
        with self._lock.write():
            self._check_dimension(array, document_id)
            return self._put(record, array)

    def upsert_many(self, records: Iterable[IndexRecord]) -> List[bool]:
        """
        R: All-or-nothing batch upsert.

        Every vector is validated before any write, so a dimension mismatch
        leaves the collection untouched.
        """
        prepared = [self._prepare(r.id, r.vector, r.payload) for r in records]
        if not prepared:
            return []

        with self._lock.write():
            expected = self._dimension
            if expected is None:
                expected = int(prepared[0][1].shape[0])
            for record, array in prepared:
                if array.ndim != 1 or array.shape[0] != expected:
                    raise DimensionMismatchError(
                        expected, int(array.size), document_id=record.id
                    )
            return [self._put(record, array) for record, array in prepared]

    def delete(self, document_id: DocumentId) -> bool:
        with self._lock.write():
            existed = self._records.pop(document_id, None) is not None
            self._vectors.pop(document_id, None)
            return existed

    def clear(self) -> None:
        with self._lock.write():
            self._records.clear()
            self._vectors.clear()

    # =========================================================
    # Reads
    # =========================================================
    def get(self, document_id: DocumentId) -> Optional[IndexRecord]:
        with self._lock.read():
            record = self._records.get(document_id)
        if record is None:
            return None
        return replace(record, payload=copy.deepcopy(record.payload))

    def count(self) -> int:
        with self._lock.read():
            return len(self._records)

    def ids(self) -> List[DocumentId]:
        with self._lock.read():
            return sorted(self._records, key=id_sort_key)

    def search(
        self,
        vector: Sequence[float],
        k: int,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[ScoredMatch]:
        """
        R: Exact top-k over all (filtered) records.

        Returns every matching record when fewer than k exist.
        """
        if k <= 0:
            raise ValueError("k must be a positive integer")
        predicate = MetadataFilter.parse(filters)
        query = as_vector(vector)

        with self._lock.read():
            if self._dimension is None:
                return []
            self._check_dimension(query)

            candidates = [
                record
                for record in self._records.values()
                if predicate.is_empty or predicate.matches(_metadata_of(record.payload))
            ]
            if not candidates:
                return []

            matrix = np.vstack([self._vectors[record.id] for record in candidates])
            scores = score_matrix(self._metric, query, matrix)

        top = heapq.nsmallest(
            k,
            range(len(candidates)),
            key=lambda i: (-scores[i], id_sort_key(candidates[i].id)),
        )
        return [
            ScoredMatch(
                document_id=candidates[i].id,
                score=float(scores[i]),
                payload=copy.deepcopy(candidates[i].payload),
            )
            for i in top
        ]

    def close(self) -> None:
        self.clear()


def _metadata_of(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    metadata = payload.get("metadata")
    return metadata if isinstance(metadata, Mapping) else {}


class InMemoryCollectionCatalog:
    """R: Named in-memory collections (tests / local dev)."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._collections: Dict[str, InMemorySimilarityIndex] = {}

    def create_collection(
        self,
        name: str,
        dimension: Optional[int] = None,
        metric: DistanceMetric | str = DistanceMetric.COSINE,
    ) -> InMemorySimilarityIndex:
        metric = DistanceMetric(metric)
        with self._lock:
            existing = self._collections.get(name)
            if existing is not None:
                info = existing.info
                dimension_conflict = (
                    dimension is not None
                    and info.dimension is not None
                    and dimension != info.dimension
                )
                if info.metric is not metric or dimension_conflict:
                    raise CollectionConflictError(
                        f"Collection {name!r} already exists with "
                        f"metric={info.metric.value} dimension={info.dimension}"
                    )
                return existing

            index = InMemorySimilarityIndex(name, dimension=dimension, metric=metric)
            self._collections[name] = index
            logger.info(
                "Collection created",
                extra={"collection": name, "dimension": dimension, "metric": metric.value},
            )
            return index

    def get_collection(self, name: str) -> InMemorySimilarityIndex:
        with self._lock:
            index = self._collections.get(name)
        if index is None:
            raise CollectionNotFoundError(f"Collection {name!r} does not exist")
        return index

    def list_collections(self) -> List[CollectionInfo]:
        with self._lock:
            return [self._collections[name].info for name in sorted(self._collections)]

    def drop_collection(self, name: str) -> bool:
        with self._lock:
            index = self._collections.pop(name, None)
        if index is None:
            return False
        index.close()
        logger.info("Collection dropped", extra={"collection": name})
        return True

    def close(self) -> None:
        with self._lock:
            collections = list(self._collections.values())
            self._collections.clear()
        for index in collections:
            index.close()
