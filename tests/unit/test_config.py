"""Unit tests for engine settings validation."""

import pytest
from pydantic import ValidationError

from ragcore.config import Settings


@pytest.mark.unit
class TestSettings:
    def test_defaults_need_no_external_services(self, monkeypatch):
        monkeypatch.delenv("EMBEDDING_PROVIDER", raising=False)
        monkeypatch.delenv("INDEX_BACKEND", raising=False)

        settings = Settings()

        assert settings.embedding_provider == "fake"
        assert settings.index_backend == "memory"
        assert settings.default_top_k == 5
        assert settings.oversample_factor == 4

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DISTANCE_METRIC", "DOT")
        monkeypatch.setenv("MAX_TOP_K", "20")

        settings = Settings()

        assert settings.distance_metric == "dot"
        assert settings.max_top_k == 20

    @pytest.mark.parametrize(
        "overrides",
        [
            {"embedding_provider": "openai"},
            {"index_backend": "sqlite"},
            {"distance_metric": "manhattan"},
            {"embedding_cache_backend": "disk"},
            {"default_top_k": 0},
            {"oversample_factor": -1},
            {"default_min_score": 1.5},
            {"generation_timeout_seconds": 0},
            {"score_precision": -1},
            {"default_top_k": 60, "max_top_k": 50},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValidationError):
            Settings(**overrides)

    def test_google_provider_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

        with pytest.raises(ValidationError):
            Settings(embedding_provider="google")

        assert Settings(embedding_provider="google", google_api_key="k").embedding_provider == "google"

    def test_postgres_requires_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)

        with pytest.raises(ValidationError):
            Settings(index_backend="postgres")
