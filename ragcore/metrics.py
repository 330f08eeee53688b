"""
Name: Prometheus Metrics

Responsibilities:
  - Define engine metrics in a private registry
  - Record stage latencies (embed, retrieve, rank, generate)
  - Count RAG outcomes by status and ingestion outcomes by kind
  - Count embedding cache hits/misses

Collaborators:
  - application/use_cases: record stage timings and outcomes
  - infrastructure.services.cached_embedding_service: cache counters

Constraints:
  - Low cardinality labels only (status, outcome, kind), never ids or text

Notes:
  - Metrics are module-level singletons (Prometheus requirement)
  - Histogram buckets chosen for typical latencies
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_registry = CollectorRegistry()

_stage_latency = Histogram(
    "ragcore_stage_latency_seconds",
    "Pipeline stage latency in seconds",
    ["stage"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=_registry,
)

_rag_outcomes = Counter(
    "ragcore_rag_outcomes_total",
    "RAG orchestrator terminal states",
    ["status"],
    registry=_registry,
)

_ingest_outcomes = Counter(
    "ragcore_ingest_documents_total",
    "Ingested documents by outcome",
    ["outcome"],
    registry=_registry,
)

_embedding_cache = Counter(
    "ragcore_embedding_cache_total",
    "Embedding cache lookups",
    ["result", "kind"],
    registry=_registry,
)


def record_stage_metrics(**stage_seconds: float | None) -> None:
    """
    R: Record stage latencies, e.g. record_stage_metrics(embed=0.01, rank=0.001).

    None values are skipped (stage did not run).
    """
    for stage, seconds in stage_seconds.items():
        if seconds is not None:
            _stage_latency.labels(stage=stage).observe(seconds)


def record_rag_outcome(status: str) -> None:
    _rag_outcomes.labels(status=status).inc()


def record_ingest_outcomes(
    *, inserted: int = 0, updated: int = 0, skipped: int = 0, failed: int = 0
) -> None:
    for outcome, count in (
        ("inserted", inserted),
        ("updated", updated),
        ("skipped", skipped),
        ("failed", failed),
    ):
        if count:
            _ingest_outcomes.labels(outcome=outcome).inc(count)


def record_embedding_cache_hit(count: int = 1, kind: str = "query") -> None:
    _embedding_cache.labels(result="hit", kind=kind).inc(count)


def record_embedding_cache_miss(count: int = 1, kind: str = "query") -> None:
    _embedding_cache.labels(result="miss", kind=kind).inc(count)


def get_metrics_response() -> tuple[bytes, str]:
    """
    R: Render the Prometheus exposition format.

    Returns:
        Tuple of (body_bytes, content_type)
    """
    return generate_latest(_registry), CONTENT_TYPE_LATEST
