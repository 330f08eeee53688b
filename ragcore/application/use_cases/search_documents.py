"""
Name: Search Documents Use Case

Responsibilities:
  - Embed the query, search the index, rank the raw matches
  - Retry transient index failures once (tenacity)
  - Report stage timings

Collaborators:
  - application.embedder.Embedder
  - domain.repositories.SimilarityIndex
  - application.ranker.rank
  - infrastructure.services.retry.create_retrieval_retry

Constraints:
  - Retrieval only: never calls the generator
  - Malformed filters raise InvalidFilterError immediately (no retry)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from ...domain.entities import Query, ScoredMatch
from ...domain.filters import MetadataFilter
from ...domain.repositories import SimilarityIndex
from ...logger import logger
from ...metrics import record_stage_metrics
from ...timing import StageTimings
from ..embedder import Embedder
from ..ranker import rank


@dataclass
class SearchResult:
    """
    R: Ranked matches plus what the search cost.

    matches_found counts raw index hits before ranking.
    """

    matches: List[ScoredMatch]
    k_retrieve: int
    matches_found: int
    query_truncated: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)


class SearchDocumentsUseCase:
    """R: Retrieval pipeline: embed -> search (k * oversample) -> rank (k)."""

    def __init__(
        self,
        index: SimilarityIndex,
        embedder: Embedder,
        *,
        oversample_factor: int = 4,
        retry_policy: Optional[Callable] = None,
    ):
        if oversample_factor <= 0:
            raise ValueError("oversample_factor must be > 0")
        self.index = index
        self.embedder = embedder
        self.oversample_factor = oversample_factor
        self._search = retry_policy(self._search_once) if retry_policy else self._search_once

    def _search_once(
        self, vector: List[float], k: int, filters: Optional[Mapping[str, Any]]
    ) -> List[ScoredMatch]:
        return self.index.search(vector, k, filters)

    def embed_query(self, query: Query, timings: StageTimings):
        with timings.measure("embed"):
            return self.embedder.embed(query.text)

    def retrieve(
        self, query: Query, vector: List[float], timings: StageTimings
    ) -> tuple[List[ScoredMatch], int]:
        """R: Search k_retrieve candidates; returns (raw_matches, k_retrieve)."""
        k_retrieve = query.k * self.oversample_factor
        with timings.measure("retrieve"):
            raw = self._search(vector, k_retrieve, query.filters)
        return raw, k_retrieve

    def rank(self, query: Query, raw: List[ScoredMatch], timings: StageTimings) -> List[ScoredMatch]:
        with timings.measure("rank"):
            return rank(raw, query.min_score, query.k)

    def execute(self, query: Query) -> SearchResult:
        """
        Raises:
            EmptyInputError / EmbeddingError: query could not be embedded
            RetrievalError: index failure (after one retry when transient)
        """
        # R: Fail fast on malformed filters before spending an embedding call
        MetadataFilter.parse(query.filters)

        timings = StageTimings()
        embedding = self.embed_query(query, timings)
        raw, k_retrieve = self.retrieve(query, embedding.vector, timings)
        ranked = self.rank(query, raw, timings)

        record_stage_metrics(
            embed=timings.seconds("embed"),
            retrieve=timings.seconds("retrieve"),
            rank=timings.seconds("rank"),
        )
        timing_data = timings.to_dict()
        logger.info(
            "Search completed",
            extra={
                "k": query.k,
                "k_retrieve": k_retrieve,
                "matches_found": len(raw),
                "matches_returned": len(ranked),
                **timing_data,
            },
        )
        return SearchResult(
            matches=ranked,
            k_retrieve=k_retrieve,
            matches_found=len(raw),
            query_truncated=embedding.truncated,
            metadata=timing_data,
        )
