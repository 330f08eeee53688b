"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Provide reusable test fixtures
  - Provide deterministic stand-ins for the embedding and generation models
  - Configure test environment

Collaborators:
  - pytest: Test framework
  - ragcore.domain: Entities and protocols

Notes:
  - KeywordEmbeddingService maps a few words onto fixed axes, so cosine
    scores are known in advance
  - Use @pytest.fixture(scope="function") for per-test isolation
"""

from typing import Dict, List

import pytest

from ragcore import config as ragcore_config

ragcore_config.Settings.model_config["env_file"] = None

from ragcore.application.embedder import Embedder  # noqa: E402
from ragcore.domain.entities import Document, ScoredMatch  # noqa: E402
from ragcore.infrastructure.index import InMemorySimilarityIndex  # noqa: E402


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (require PostgreSQL + pgvector)"
    )


# ============================================================================
# Model stand-ins
# ============================================================================


KEYWORD_AXES: Dict[str, int] = {
    "fever": 0,
    "flu": 0,
    "cough": 0,
    "headache": 1,
    "remedy": 1,
    "remedies": 1,
    "hydration": 1,
    "rest": 1,
    "train": 2,
    "ticket": 2,
    "shimla": 2,
}


class KeywordEmbeddingService:
    """R: Axis i is 1.0 when any keyword of that axis appears in the text."""

    model_id = "keyword-test-v1"
    thread_safe = True
    dimension = 4

    def __init__(self) -> None:
        self.query_calls: List[str] = []
        self.batch_calls: List[List[str]] = []

    def _vector(self, text: str) -> List[float]:
        vector = [0.0] * self.dimension
        for word in text.lower().replace(".", " ").replace(",", " ").split():
            axis = KEYWORD_AXES.get(word)
            if axis is not None:
                vector[axis] = 1.0
        return vector

    def embed_query(self, query: str) -> List[float]:
        self.query_calls.append(query)
        return self._vector(query)

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.batch_calls.append(list(texts))
        return [self._vector(text) for text in texts]


class RecordingLLMService:
    """R: Returns a fixed answer and remembers every prompt."""

    def __init__(self, answer: str = "Generated answer") -> None:
        self.answer = answer
        self.prompts: List[str] = []

    def generate_answer(self, prompt: str, *, timeout_seconds: float) -> str:
        self.prompts.append(prompt)
        return self.answer


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def keyword_provider() -> KeywordEmbeddingService:
    return KeywordEmbeddingService()


@pytest.fixture
def keyword_embedder(keyword_provider: KeywordEmbeddingService) -> Embedder:
    return Embedder(lambda: keyword_provider)


@pytest.fixture
def recording_llm() -> RecordingLLMService:
    return RecordingLLMService()


@pytest.fixture
def memory_index() -> InMemorySimilarityIndex:
    return InMemorySimilarityIndex("docs")


@pytest.fixture
def health_documents() -> List[Document]:
    """R: Three documents: two about health, one about travel."""
    return [
        Document(id=1, text="Flu causes fever and cough", metadata={"topic": "health"}),
        Document(id=2, text="Train ticket to Shimla", metadata={"topic": "travel"}),
        Document(
            id=3,
            text="Home remedies for headache include rest and hydration",
            metadata={"topic": "health"},
        ),
    ]


@pytest.fixture
def make_match():
    """R: Factory for ScoredMatch with a text payload."""

    def _make(document_id, score: float, text: str = "") -> ScoredMatch:
        return ScoredMatch(
            document_id=document_id,
            score=score,
            payload={"text": text or f"text of {document_id}", "metadata": {}},
        )

    return _make
