"""
Name: Search Documents Use Case Tests

Responsibilities:
  - Validate the embed -> retrieve -> rank pipeline on a known corpus
  - Validate oversampling and the single retry on transient failures
"""

import pytest

from ragcore.application.use_cases import (
    IngestDocumentsInput,
    IngestDocumentsUseCase,
    SearchDocumentsUseCase,
)
from ragcore.domain.entities import Query
from ragcore.exceptions import InvalidFilterError, RetrievalError
from ragcore.infrastructure.services.retry import create_retrieval_retry


class FlakyIndex:
    """Delegates to a real index but fails the first N searches."""

    def __init__(self, inner, failures, transient=True):
        self.inner = inner
        self.failures = failures
        self.transient = transient
        self.search_calls = []

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def search(self, vector, k, filters=None):
        self.search_calls.append(k)
        if self.failures > 0:
            self.failures -= 1
            raise RetrievalError("connection reset", transient=self.transient)
        return self.inner.search(vector, k, filters)


@pytest.fixture
def populated_index(memory_index, keyword_embedder, health_documents):
    IngestDocumentsUseCase(memory_index, keyword_embedder).execute(
        IngestDocumentsInput(documents=health_documents)
    )
    return memory_index


@pytest.mark.unit
class TestSearchDocuments:
    def test_remedy_for_fever_returns_health_documents(self, populated_index, keyword_embedder):
        """R: Should rank the two health documents (tied) and drop travel."""
        use_case = SearchDocumentsUseCase(populated_index, keyword_embedder)

        result = use_case.execute(Query(text="remedy for fever", k=2, min_score=0.5))

        assert [m.document_id for m in result.matches] == [1, 3]
        assert [round(m.score, 4) for m in result.matches] == [0.7071, 0.7071]

    def test_oversamples_candidates(self, populated_index, keyword_embedder):
        flaky = FlakyIndex(populated_index, failures=0)
        use_case = SearchDocumentsUseCase(flaky, keyword_embedder, oversample_factor=3)

        result = use_case.execute(Query(text="flu", k=2))

        assert flaky.search_calls == [6]
        assert result.k_retrieve == 6
        assert result.matches_found == 3
        assert len(result.matches) == 2

    def test_filters_restrict_candidates(self, populated_index, keyword_embedder):
        use_case = SearchDocumentsUseCase(populated_index, keyword_embedder)

        result = use_case.execute(
            Query(text="train to shimla", k=5, min_score=0.0, filters={"topic": "health"})
        )

        assert {m.document_id for m in result.matches} == {1, 3}

    def test_transient_failure_is_retried_once(self, populated_index, keyword_embedder):
        flaky = FlakyIndex(populated_index, failures=1)
        use_case = SearchDocumentsUseCase(
            flaky, keyword_embedder, retry_policy=create_retrieval_retry(2, 0.0)
        )

        result = use_case.execute(Query(text="flu", k=1))

        assert len(flaky.search_calls) == 2
        assert [m.document_id for m in result.matches] == [1]

    def test_persistent_transient_failure_raises_after_one_retry(
        self, populated_index, keyword_embedder
    ):
        flaky = FlakyIndex(populated_index, failures=5)
        use_case = SearchDocumentsUseCase(
            flaky, keyword_embedder, retry_policy=create_retrieval_retry(2, 0.0)
        )

        with pytest.raises(RetrievalError):
            use_case.execute(Query(text="flu", k=1))

        assert len(flaky.search_calls) == 2

    def test_non_transient_failure_is_not_retried(self, populated_index, keyword_embedder):
        flaky = FlakyIndex(populated_index, failures=1, transient=False)
        use_case = SearchDocumentsUseCase(
            flaky, keyword_embedder, retry_policy=create_retrieval_retry(2, 0.0)
        )

        with pytest.raises(RetrievalError):
            use_case.execute(Query(text="flu", k=1))

        assert len(flaky.search_calls) == 1

    def test_invalid_filter_fails_before_embedding(
        self, populated_index, keyword_embedder, keyword_provider
    ):
        use_case = SearchDocumentsUseCase(populated_index, keyword_embedder)

        with pytest.raises(InvalidFilterError):
            use_case.execute(Query(text="flu", k=1, filters={"topic": {"$regex": "h"}}))

        assert keyword_provider.query_calls == []

    def test_timings_reported(self, populated_index, keyword_embedder):
        result = SearchDocumentsUseCase(populated_index, keyword_embedder).execute(
            Query(text="flu", k=1)
        )

        for key in ("embed_ms", "retrieve_ms", "rank_ms", "total_ms"):
            assert key in result.metadata
