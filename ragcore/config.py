"""
Name: Engine Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults for providers, index backend, ranking and generation

Collaborators:
  - container.py: reads settings to wire providers and backends
  - logger.py: reads log_level / log_json
  - infrastructure.services.retry: reads retry limits

Constraints:
  - No business logic, pure configuration
  - min_score defaults are tunable, never hardcoded in use cases

Notes:
  - Singleton via lru_cache (call get_settings.cache_clear() in tests)
  - Reads .env when present, ignores unknown variables
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_EMBEDDING_PROVIDERS = {"fake", "google", "local"}
_LLM_PROVIDERS = {"fake", "google"}
_INDEX_BACKENDS = {"memory", "postgres"}
_CACHE_BACKENDS = {"none", "memory", "redis"}
_METRICS = {"cosine", "dot", "euclidean"}


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Attributes:
        embedding_provider: fake | google | local (sentence-transformers)
        llm_provider: fake | google
        google_api_key: Google GenAI API key (required by google providers)
        embedding_model_id: Model id for the google embedding provider
        local_embedding_model_id: sentence-transformers model for "local"
        llm_model_id: Model id for the google generation provider
        embedding_dimension: Dimension produced by the fake provider
        embedding_max_input_chars: Inputs longer than this are truncated
        embedding_batch_size: Provider batch limit
        embedding_cache_backend: none | memory | redis
        index_backend: memory | postgres
        collection_name: Default collection used by the container
        distance_metric: cosine | dot | euclidean
        default_top_k / max_top_k: Final k bounds
        default_min_score: Threshold when the caller does not send one
        oversample_factor: k_retrieve = k * oversample_factor
        score_precision: Decimal digits of scores surfaced to callers
        generation_timeout_seconds: Deadline for one generation call
        max_context_chars: Upper bound of the rendered context block
    """

    # Providers
    embedding_provider: str = "fake"
    llm_provider: str = "fake"
    google_api_key: str = ""
    embedding_model_id: str = "text-embedding-004"
    local_embedding_model_id: str = "all-MiniLM-L6-v2"
    llm_model_id: str = "gemini-1.5-flash"

    # Embedder
    embedding_dimension: int = 768
    embedding_max_input_chars: int = 8_000
    embedding_batch_size: int = 10

    # Embedding cache
    embedding_cache_backend: str = "memory"
    embedding_cache_max_size: int = 1000
    embedding_cache_ttl_seconds: float = 3600.0
    redis_url: str = ""

    # Similarity index
    index_backend: str = "memory"
    collection_name: str = "documents"
    distance_metric: str = "cosine"
    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_statement_timeout_ms: int = 30000  # 30 seconds

    # Ranking
    default_top_k: int = 5
    max_top_k: int = 50
    default_min_score: float = 0.0
    oversample_factor: int = 4
    score_precision: int = 4

    # Generation
    generation_timeout_seconds: float = 30.0
    generation_workers: int = 4
    max_context_chars: int = 12000
    prompt_version: str = "v1"

    # Ingestion
    ingest_batch_size: int = 32
    max_ingest_chars: int = 100_000

    # Retry/Resilience
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 30.0
    retrieval_retry_attempts: int = 2  # R: first try + one retry
    retrieval_retry_delay_seconds: float = 0.2

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    @field_validator("embedding_provider")
    @classmethod
    def embedding_provider_valid(cls, v: str) -> str:
        value = (v or "").strip().lower()
        if value not in _EMBEDDING_PROVIDERS:
            raise ValueError(
                f"embedding_provider must be one of {sorted(_EMBEDDING_PROVIDERS)}"
            )
        return value

    @field_validator("llm_provider")
    @classmethod
    def llm_provider_valid(cls, v: str) -> str:
        value = (v or "").strip().lower()
        if value not in _LLM_PROVIDERS:
            raise ValueError(f"llm_provider must be one of {sorted(_LLM_PROVIDERS)}")
        return value

    @field_validator("index_backend")
    @classmethod
    def index_backend_valid(cls, v: str) -> str:
        value = (v or "").strip().lower()
        if value not in _INDEX_BACKENDS:
            raise ValueError(f"index_backend must be one of {sorted(_INDEX_BACKENDS)}")
        return value

    @field_validator("embedding_cache_backend")
    @classmethod
    def cache_backend_valid(cls, v: str) -> str:
        value = (v or "none").strip().lower()
        if value not in _CACHE_BACKENDS:
            raise ValueError(
                f"embedding_cache_backend must be one of {sorted(_CACHE_BACKENDS)}"
            )
        return value

    @field_validator("distance_metric")
    @classmethod
    def distance_metric_valid(cls, v: str) -> str:
        value = (v or "").strip().lower()
        if value not in _METRICS:
            raise ValueError(f"distance_metric must be one of {sorted(_METRICS)}")
        return value

    @field_validator(
        "embedding_dimension",
        "embedding_max_input_chars",
        "embedding_batch_size",
        "default_top_k",
        "max_top_k",
        "oversample_factor",
        "generation_workers",
        "max_context_chars",
        "ingest_batch_size",
        "retrieval_retry_attempts",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("default_min_score")
    @classmethod
    def min_score_in_unit_interval(cls, v: float) -> float:
        if v < 0 or v > 1:
            raise ValueError("default_min_score must be between 0 and 1")
        return v

    @field_validator("generation_timeout_seconds")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("generation_timeout_seconds must be greater than 0")
        return v

    @field_validator("score_precision")
    @classmethod
    def precision_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("score_precision must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_provider_requirements(self):
        uses_google = (
            self.embedding_provider == "google" or self.llm_provider == "google"
        )
        if uses_google and not self.google_api_key:
            raise ValueError(
                "GOOGLE_API_KEY is required when a google provider is configured"
            )
        if self.index_backend == "postgres" and not self.database_url:
            raise ValueError("DATABASE_URL is required when INDEX_BACKEND=postgres")
        if self.default_top_k > self.max_top_k:
            raise ValueError(
                f"default_top_k ({self.default_top_k}) must not exceed "
                f"max_top_k ({self.max_top_k})"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If env vars are missing or invalid
    """
    return Settings()
