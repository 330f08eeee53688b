"""
Name: Container Wiring Tests

Responsibilities:
  - Validate that startup() wires a working engine from Settings alone
  - Validate that shutdown() releases the model and the generation pool
"""

import pytest

from ragcore.application.embedder import Embedder
from ragcore.config import Settings
from ragcore.container import Container, build_embedding_provider
from ragcore.infrastructure.services import CachingEmbeddingService, FakeEmbeddingService


@pytest.fixture
def settings():
    return Settings(
        embedding_provider="fake",
        llm_provider="fake",
        index_backend="memory",
        embedding_dimension=8,
        collection_name="test-docs",
    )


@pytest.mark.unit
class TestContainer:
    def test_fake_stack_round_trip(self, settings):
        container = Container(settings).startup()
        try:
            report = container.handler.handle_ingest(
                [{"id": "a", "text": "alpha"}, {"id": "b", "text": "beta"}]
            )
            body = container.handler.handle_query({"text": "alpha", "k": 1})
        finally:
            container.shutdown()

        assert report["inserted"] == 2
        assert body["status"] == "answered"
        assert body["matches"][0]["id"] == "a"
        assert body["matches"][0]["score"] == 1.0
        assert body["answer"].startswith("Simulated answer")

    def test_collection_created_with_settings(self, settings):
        container = Container(settings).startup()
        try:
            infos = container.catalog.list_collections()
        finally:
            container.shutdown()

        assert [info.name for info in infos] == ["test-docs"]
        assert infos[0].metric.value == "cosine"

    def test_injected_embedder_is_used(self, settings, keyword_embedder, health_documents):
        container = Container(settings, embedder=keyword_embedder).startup()
        try:
            container.handler.handle_ingest(
                [{"id": d.id, "text": d.text, "metadata": d.metadata} for d in health_documents]
            )
            body = container.handler.handle_query(
                {"text": "remedy for fever", "k": 2, "min_score": 0.5, "generate": False}
            )
        finally:
            container.shutdown()

        assert [m["id"] for m in body["matches"]] == [1, 3]

    def test_shutdown_releases_embedder(self, settings):
        container = Container(settings).startup()
        container.handler.handle_query({"text": "warm up", "generate": False})
        assert container.embedder.is_loaded

        container.shutdown()

        assert container.embedder.is_loaded is False

    def test_catalog_requires_startup(self, settings):
        with pytest.raises(RuntimeError):
            Container(settings).catalog


@pytest.mark.unit
class TestBuildEmbeddingProvider:
    def test_memory_cache_wraps_provider(self, settings):
        provider = build_embedding_provider(settings)

        assert isinstance(provider, CachingEmbeddingService)
        assert provider.model_id == "fake-embedding-v1-8"

    def test_cache_disabled_returns_bare_provider(self):
        provider = build_embedding_provider(
            Settings(embedding_cache_backend="none", embedding_dimension=8)
        )

        assert isinstance(provider, FakeEmbeddingService)

    def test_embedder_loads_provider_lazily(self, settings):
        built = []

        def factory():
            built.append(1)
            return build_embedding_provider(settings)

        embedder = Embedder(factory)

        assert built == []
        assert len(embedder.embed("x").vector) == 8
        assert built == [1]
