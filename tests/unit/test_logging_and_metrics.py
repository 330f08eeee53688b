"""
Name: Logging and Metrics Tests

Responsibilities:
  - Validate JSON log records carry operation context and redact secrets
  - Validate Prometheus counters and stage histograms
"""

import json
import logging
import sys

import pytest

from ragcore.context import get_context_dict, operation_context
from ragcore.logger import JSONFormatter
from ragcore.metrics import (
    get_metrics_response,
    record_ingest_outcomes,
    record_rag_outcome,
    record_stage_metrics,
)
from ragcore.timing import StageTimings


def _record(message="hello", **extra):
    record = logging.LogRecord("ragcore", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestJSONFormatter:
    def test_includes_operation_context(self):
        with operation_context("query", collection="docs", request_id="rid-1"):
            body = json.loads(JSONFormatter().format(_record()))

        assert body["request_id"] == "rid-1"
        assert body["collection"] == "docs"
        assert body["operation"] == "query"
        assert body["message"] == "hello"

    def test_context_is_reset_after_operation(self):
        with operation_context("ingest"):
            pass

        assert get_context_dict() == {}

    def test_redacts_secrets(self):
        body = json.loads(
            JSONFormatter().format(_record(google_api_key="abc", detail={"password": "x"}))
        )

        assert body["google_api_key"] == "***REDACTED***"
        assert body["detail"]["password"] == "***REDACTED***"

    def test_long_strings_are_truncated(self):
        body = json.loads(JSONFormatter().format(_record(payload_text="x" * 5_000)))

        assert body["payload_text"].endswith("...(truncated)")
        assert len(body["payload_text"]) < 5_000

    def test_exception_is_serialized(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "ragcore", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )

        body = json.loads(JSONFormatter().format(record))

        assert body["exception"]["type"] == "RuntimeError"
        assert body["exception"]["message"] == "boom"


@pytest.mark.unit
class TestMetrics:
    def test_exposition_contains_recorded_series(self):
        record_rag_outcome("answered")
        record_ingest_outcomes(inserted=2, failed=1)
        record_stage_metrics(embed=0.01, generate=None)

        body, content_type = get_metrics_response()
        text = body.decode("utf-8")

        assert content_type.startswith("text/plain")
        assert 'ragcore_rag_outcomes_total{status="answered"}' in text
        assert 'ragcore_ingest_documents_total{outcome="inserted"}' in text
        assert 'ragcore_stage_latency_seconds_count{stage="embed"}' in text


@pytest.mark.unit
class TestStageTimings:
    def test_measure_and_accumulate(self):
        timings = StageTimings()
        timings.record("embed", 0.001)
        timings.record("embed", 0.002)

        data = timings.to_dict()

        assert data["embed_ms"] == 3.0
        assert "total_ms" in data
        assert timings.seconds("missing") is None
