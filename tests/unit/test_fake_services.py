"""
Name: Fake AI Services Tests

Responsibilities:
  - Validate deterministic fake embeddings
  - Validate deterministic fake answers
"""

import pytest

from ragcore.infrastructure.services.fake_embedding_service import (
    EMBEDDING_DIMENSION,
    FakeEmbeddingService,
)
from ragcore.infrastructure.services.fake_llm_service import FakeLLMService


@pytest.mark.unit
def test_fake_embeddings_deterministic():
    service = FakeEmbeddingService()
    first = service.embed_query("hola")
    second = service.embed_query("hola")

    assert first == second
    assert len(first) == EMBEDDING_DIMENSION

    batch = service.embed_batch(["hola", "chau"])
    assert batch[0] == first
    assert batch[1] != first


@pytest.mark.unit
def test_fake_embeddings_respect_dimension():
    service = FakeEmbeddingService(dimension=16)

    assert len(service.embed_query("x")) == 16
    assert service.model_id == "fake-embedding-v1-16"
    assert all(-1.0 <= value <= 1.0 for value in service.embed_query("x"))


@pytest.mark.unit
def test_fake_embeddings_reject_bad_dimension():
    with pytest.raises(ValueError):
        FakeEmbeddingService(dimension=0)


@pytest.mark.unit
def test_fake_llm_is_deterministic():
    service = FakeLLMService()

    first = service.generate_answer("prompt A", timeout_seconds=1.0)

    assert first == service.generate_answer("prompt A", timeout_seconds=1.0)
    assert first != service.generate_answer("prompt B", timeout_seconds=1.0)
