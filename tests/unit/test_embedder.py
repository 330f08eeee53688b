"""
Name: Embedder Unit Tests

Responsibilities:
  - Validate lazy provider loading, reload and close
  - Validate empty input rejection and truncation
  - Validate call serialization for non thread-safe providers
  - Validate dimension consistency checks
"""

import threading
import time
from typing import List

import pytest

from ragcore.application.embedder import Embedder
from ragcore.exceptions import (
    DimensionMismatchError,
    EmbeddingError,
    EmbeddingModelLoadError,
    EmptyInputError,
)


class LengthEmbeddingService:
    """Stub provider: vector is [len(text), 1.0]; records every call."""

    model_id = "length-test"
    thread_safe = True
    max_input_chars = 50

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.closed = False

    def embed_query(self, query: str) -> List[float]:
        self.calls.append(query)
        return [float(len(query)), 1.0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.calls.extend(texts)
        return [[float(len(t)), 1.0] for t in texts]

    def close(self) -> None:
        self.closed = True


class SlowUnsafeService:
    """Stub provider that detects overlapping calls."""

    model_id = "unsafe-test"
    thread_safe = False

    def __init__(self) -> None:
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def embed_query(self, query: str) -> List[float]:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.01)
        with self._lock:
            self.active -= 1
        return [1.0, 0.0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return [self.embed_query(t) for t in texts]


@pytest.mark.unit
class TestEmbedderLifecycle:
    def test_provider_is_created_lazily_once(self):
        created = []

        def factory():
            created.append(1)
            return LengthEmbeddingService()

        embedder = Embedder(factory)
        assert created == []
        assert embedder.is_loaded is False

        embedder.embed("hello")
        embedder.embed("again")

        assert created == [1]
        assert embedder.is_loaded is True

    def test_concurrent_first_use_creates_one_provider(self):
        created = []

        def factory():
            created.append(1)
            time.sleep(0.02)
            return LengthEmbeddingService()

        embedder = Embedder(factory)
        threads = [threading.Thread(target=embedder.embed, args=("x",)) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert created == [1]

    def test_factory_failure_raises_model_load_error(self):
        def factory():
            raise OSError("model files missing")

        embedder = Embedder(factory)

        with pytest.raises(EmbeddingModelLoadError) as exc_info:
            embedder.embed("hello")

        assert isinstance(exc_info.value.original_error, OSError)
        assert embedder.is_loaded is False

    def test_reload_builds_a_fresh_provider(self):
        providers = []

        def factory():
            providers.append(LengthEmbeddingService())
            return providers[-1]

        embedder = Embedder(factory)
        embedder.embed("a")

        embedder.reload()
        embedder.embed("b")

        assert len(providers) == 2
        assert providers[0].closed is True

    def test_close_releases_provider(self):
        provider = LengthEmbeddingService()
        embedder = Embedder(lambda: provider)
        embedder.embed("a")

        embedder.close()

        assert provider.closed is True
        assert embedder.is_loaded is False


@pytest.mark.unit
class TestEmbedderInputs:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_empty_query_rejected_before_provider(self, text):
        provider = LengthEmbeddingService()
        embedder = Embedder(lambda: provider)

        with pytest.raises(EmptyInputError):
            embedder.embed(text)

        assert provider.calls == []
        assert embedder.is_loaded is False

    def test_empty_batch_item_names_its_index(self):
        provider = LengthEmbeddingService()
        embedder = Embedder(lambda: provider)

        with pytest.raises(EmptyInputError) as exc_info:
            embedder.embed_batch(["ok", " ", "fine"])

        assert exc_info.value.index == 1
        assert provider.calls == []

    def test_long_input_is_truncated_to_prefix(self):
        """R: Should keep the prefix and flag the truncation."""
        provider = LengthEmbeddingService()
        embedder = Embedder(lambda: provider)

        result = embedder.embed("a" * 100000)

        assert result.truncated is True
        assert provider.calls == ["a" * 50]
        assert result.vector == [50.0, 1.0]

    def test_max_input_chars_overrides_provider_limit(self):
        provider = LengthEmbeddingService()
        embedder = Embedder(lambda: provider, max_input_chars=10)

        results = embedder.embed_batch(["short", "x" * 30])

        assert [r.truncated for r in results] == [False, True]
        assert provider.calls == ["short", "x" * 10]

    def test_batch_preserves_order_and_model_id(self):
        embedder = Embedder(LengthEmbeddingService)

        results = embedder.embed_batch(["a", "bbb", "cc"])

        assert [r.vector[0] for r in results] == [1.0, 3.0, 2.0]
        assert {r.model_id for r in results} == {"length-test"}

    def test_empty_batch_returns_empty(self):
        assert Embedder(LengthEmbeddingService).embed_batch([]) == []

    def test_deterministic_for_same_input(self):
        embedder = Embedder(LengthEmbeddingService)

        assert embedder.embed("same").vector == embedder.embed("same").vector


@pytest.mark.unit
class TestEmbedderProviderContract:
    def test_non_thread_safe_provider_calls_are_serialized(self):
        provider = SlowUnsafeService()
        embedder = Embedder(lambda: provider)

        threads = [threading.Thread(target=embedder.embed, args=("x",)) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert provider.max_active == 1

    def test_inconsistent_dimension_raises(self):
        class ShiftingService(LengthEmbeddingService):
            def embed_query(self, query):
                return [1.0] * (2 if query == "first" else 3)

        embedder = Embedder(ShiftingService)
        embedder.embed("first")

        with pytest.raises(DimensionMismatchError):
            embedder.embed("second")
        assert embedder.dimension == 2

    def test_wrong_vector_count_raises(self):
        class ShortBatchService(LengthEmbeddingService):
            def embed_batch(self, texts):
                return [[1.0, 1.0]]

        with pytest.raises(EmbeddingError):
            Embedder(ShortBatchService).embed_batch(["a", "b"])

    def test_provider_exception_wrapped_in_embedding_error(self):
        class BrokenService(LengthEmbeddingService):
            def embed_query(self, query):
                raise ConnectionError("provider down")

        with pytest.raises(EmbeddingError) as exc_info:
            Embedder(BrokenService).embed("hello")

        assert isinstance(exc_info.value.original_error, ConnectionError)
