"""
Name: Composition Root (Container)

Responsibilities:
  - Wire providers, index backend, use cases and the request handler
  - Own the lifecycle: startup() opens the pool / catalog and collection,
    shutdown() releases the model, generation pool, index and DB pool

Collaborators:
  - config.Settings: every choice is driven by configuration
  - infrastructure.*: concrete adapters
  - application.*: use cases
  - interfaces.handlers.RequestHandler

Constraints:
  - Manual DI (no library)
  - Use cases never see concrete implementations

Notes:
  - Provider modules with optional dependencies (sentence-transformers,
    psycopg) are imported only when selected
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from .application.context_builder import ContextBuilder
from .application.embedder import Embedder
from .application.use_cases import (
    AnswerQueryUseCase,
    DeleteDocumentsUseCase,
    IngestDocumentsUseCase,
    SearchDocumentsUseCase,
)
from .config import Settings, get_settings
from .domain.entities import DistanceMetric
from .domain.repositories import CollectionCatalog, SimilarityIndex
from .domain.services import EmbeddingService, LLMService
from .infrastructure.cache import create_embedding_cache
from .infrastructure.index import InMemoryCollectionCatalog
from .infrastructure.prompts import PromptLoader
from .infrastructure.services import (
    CachingEmbeddingService,
    FakeEmbeddingService,
    FakeLLMService,
    GoogleEmbeddingService,
    GoogleLLMService,
    create_retrieval_retry,
)
from .interfaces.handlers import RequestHandler
from .logger import logger


def build_embedding_provider(settings: Settings) -> EmbeddingService:
    """R: Provider factory handed to the Embedder (called lazily, once)."""
    provider: EmbeddingService
    if settings.embedding_provider == "google":
        provider = GoogleEmbeddingService(
            settings.google_api_key,
            model_id=settings.embedding_model_id,
            batch_limit=settings.embedding_batch_size,
            max_input_chars=settings.embedding_max_input_chars,
        )
    elif settings.embedding_provider == "local":
        from .infrastructure.services.sentence_transformer_embedding_service import (
            SentenceTransformerEmbeddingService,
        )

        provider = SentenceTransformerEmbeddingService(
            settings.local_embedding_model_id,
            max_input_chars=settings.embedding_max_input_chars,
            batch_size=settings.embedding_batch_size,
        )
    else:
        provider = FakeEmbeddingService(
            dimension=settings.embedding_dimension,
            max_input_chars=settings.embedding_max_input_chars,
        )

    cache = create_embedding_cache(
        settings.embedding_cache_backend,
        max_size=settings.embedding_cache_max_size,
        ttl_seconds=settings.embedding_cache_ttl_seconds,
        redis_url=settings.redis_url,
    )
    if cache is None:
        return provider
    return CachingEmbeddingService(provider, cache)


def build_llm_service(settings: Settings) -> LLMService:
    if settings.llm_provider == "google":
        return GoogleLLMService(settings.google_api_key, model_id=settings.llm_model_id)
    return FakeLLMService()


class Container:
    """
    R: Holds the wired object graph for one process.

    Use as:
        container = Container(settings)
        container.startup()
        ...
        container.shutdown()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        embedder: Optional[Embedder] = None,
        llm_service: Optional[LLMService] = None,
        catalog: Optional[CollectionCatalog] = None,
    ):
        self.settings = settings or get_settings()
        self.embedder = embedder or Embedder(
            lambda: build_embedding_provider(self.settings),
            max_input_chars=self.settings.embedding_max_input_chars,
        )
        self.llm_service = llm_service or build_llm_service(self.settings)
        self._catalog = catalog
        self._owns_pool = False
        self.index: Optional[SimilarityIndex] = None
        self.search: Optional[SearchDocumentsUseCase] = None
        self.answer_query: Optional[AnswerQueryUseCase] = None
        self.ingest_documents: Optional[IngestDocumentsUseCase] = None
        self.delete_documents: Optional[DeleteDocumentsUseCase] = None
        self.handler: Optional[RequestHandler] = None

    @property
    def catalog(self) -> CollectionCatalog:
        if self._catalog is None:
            raise RuntimeError("Container not started. Call startup() first.")
        return self._catalog

    def _open_catalog(self) -> CollectionCatalog:
        if self.settings.index_backend == "postgres":
            from .infrastructure.db.pool import init_pool
            from .infrastructure.index.postgres import PostgresCollectionCatalog

            pool = init_pool(
                self.settings.database_url,
                self.settings.db_pool_min_size,
                self.settings.db_pool_max_size,
                self.settings.db_statement_timeout_ms,
            )
            self._owns_pool = True
            catalog = PostgresCollectionCatalog(pool)
            catalog.ensure_schema()
            return catalog
        return InMemoryCollectionCatalog()

    def startup(self) -> "Container":
        """R: Open the catalog, create/open the collection and wire use cases."""
        settings = self.settings
        if self._catalog is None:
            self._catalog = self._open_catalog()

        self.index = self._catalog.create_collection(
            settings.collection_name,
            metric=DistanceMetric(settings.distance_metric),
        )

        self.search = SearchDocumentsUseCase(
            self.index,
            self.embedder,
            oversample_factor=settings.oversample_factor,
            retry_policy=create_retrieval_retry(
                settings.retrieval_retry_attempts,
                settings.retrieval_retry_delay_seconds,
            ),
        )
        self.answer_query = AnswerQueryUseCase(
            self.search,
            self.llm_service,
            ContextBuilder(
                max_chars=settings.max_context_chars,
                score_precision=settings.score_precision,
            ),
            PromptLoader(version=settings.prompt_version),
            generation_timeout_seconds=settings.generation_timeout_seconds,
            generation_workers=settings.generation_workers,
        )
        self.ingest_documents = IngestDocumentsUseCase(
            self.index,
            self.embedder,
            batch_size=settings.ingest_batch_size,
            max_text_chars=settings.max_ingest_chars,
        )
        self.delete_documents = DeleteDocumentsUseCase(self.index)
        self.handler = RequestHandler(
            self.answer_query,
            self.ingest_documents,
            self.delete_documents,
            collection=settings.collection_name,
            default_top_k=settings.default_top_k,
            max_top_k=settings.max_top_k,
            default_min_score=settings.default_min_score,
            score_precision=settings.score_precision,
        )

        logger.info(
            "Container started",
            extra={
                "index_backend": settings.index_backend,
                "collection": settings.collection_name,
                "embedding_provider": settings.embedding_provider,
                "llm_provider": settings.llm_provider,
            },
        )
        return self

    def shutdown(self) -> None:
        """R: Release everything startup() and the embedder acquired."""
        self.embedder.close()
        if self.answer_query is not None:
            self.answer_query.close()
        close_llm = getattr(self.llm_service, "close", None)
        if callable(close_llm):
            close_llm()
        if self._catalog is not None:
            self._catalog.close()
        if self._owns_pool:
            from .infrastructure.db.pool import close_pool

            close_pool()
            self._owns_pool = False
        logger.info("Container stopped")


@lru_cache
def get_container() -> Container:
    """R: Process-wide started container."""
    return Container(get_settings()).startup()
