"""
Name: Ingest Documents Use Case

Responsibilities:
  - Validate and de-duplicate incoming documents
  - Skip documents whose content hash did not change
  - Embed in batches, isolating per-document failures
  - Upsert into the similarity index and report every outcome

Collaborators:
  - application.embedder.Embedder
  - domain.repositories.SimilarityIndex
  - application.content_hash
  - metrics: ingest outcome counters

Constraints:
  - Component-local failures become IngestItemError entries, the rest continues
  - Systemic failures raise: EmbeddingModelLoadError, index unavailability,
    or a batch whose documents all fail individually

Notes:
  - Duplicate ids in one call: last occurrence wins
  - Identical text under different ids is embedded for each id
  - Metadata-only changes reuse the stored vector (no embedding call)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ...domain.entities import (
    Document,
    DocumentId,
    EmbeddingResult,
    IndexRecord,
    IngestOutcome,
    IngestReport,
)
from ...domain.repositories import SimilarityIndex
from ...exceptions import (
    EmbeddingError,
    EmbeddingModelLoadError,
    IngestItemError,
    RAGError,
)
from ...logger import logger
from ...metrics import record_ingest_outcomes, record_stage_metrics
from ...timing import StageTimings
from ..content_hash import compute_content_hash
from ..embedder import Embedder

_SCALAR_TYPES = (str, int, float, bool, type(None))


@dataclass
class IngestDocumentsInput:
    """
    R: Input data for ingestion.

    Attributes:
        documents: Documents to insert or update (ids unique after dedup)
    """

    documents: Sequence[Document]


@dataclass
class _Pending:
    document: Document
    content_hash: str


def _valid_id(document_id: Any) -> bool:
    if isinstance(document_id, bool):
        return False
    if isinstance(document_id, int):
        return True
    return isinstance(document_id, str) and bool(document_id.strip())


def _payload(document: Document, content_hash: str) -> Dict[str, Any]:
    return {
        "text": document.text,
        "metadata": dict(document.metadata or {}),
        "content_hash": content_hash,
    }


class IngestDocumentsUseCase:
    """R: Insert/update documents in one collection."""

    def __init__(
        self,
        index: SimilarityIndex,
        embedder: Embedder,
        *,
        batch_size: int = 32,
        max_text_chars: Optional[int] = None,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self.index = index
        self.embedder = embedder
        self.batch_size = batch_size
        self.max_text_chars = max_text_chars

    # =========================================================
    # Validation
    # =========================================================
    def _validate(self, document: Document) -> Optional[IngestItemError]:
        if not isinstance(document.text, str) or not document.text.strip():
            return IngestItemError(document.id, "empty_text", "Document text must not be empty")
        if self.max_text_chars is not None and len(document.text) > self.max_text_chars:
            return IngestItemError(
                document.id,
                "text_too_long",
                f"Document text exceeds {self.max_text_chars} characters",
            )
        metadata = document.metadata if document.metadata is not None else {}
        if not isinstance(metadata, Mapping):
            return IngestItemError(document.id, "invalid_metadata", "Metadata must be a mapping")
        for key, value in metadata.items():
            if not isinstance(key, str) or not isinstance(value, _SCALAR_TYPES):
                return IngestItemError(
                    document.id,
                    "invalid_metadata",
                    f"Metadata field {key!r} must be a string key with a scalar value",
                )
        return None

    def _deduplicate(
        self, documents: Sequence[Document], report: IngestReport
    ) -> List[Document]:
        unique: Dict[DocumentId, Document] = {}
        for document in documents:
            if not _valid_id(document.id):
                report.record_error(
                    IngestItemError(
                        repr(document.id),
                        "invalid_id",
                        "Document id must be an integer or a non-empty string",
                    )
                )
                continue
            if document.id in unique:
                report.duplicates += 1
                del unique[document.id]
            unique[document.id] = document
        return list(unique.values())

    # =========================================================
    # Embedding with failure isolation
    # =========================================================
    def _embed_batch(
        self, batch: List[_Pending], report: IngestReport
    ) -> List[Tuple[_Pending, EmbeddingResult]]:
        texts = [item.document.text for item in batch]
        try:
            results = self.embedder.embed_batch(texts)
            return list(zip(batch, results))
        except EmbeddingModelLoadError:
            raise
        except RAGError as exc:
            logger.warning(
                "Embedding batch failed, isolating documents",
                extra={"batch_size": len(batch), "error": exc.message},
            )

        embedded: List[Tuple[_Pending, EmbeddingResult]] = []
        failures: List[IngestItemError] = []
        last_error: Optional[RAGError] = None
        for item in batch:
            try:
                result = self.embedder.embed_batch([item.document.text])[0]
            except EmbeddingModelLoadError:
                raise
            except RAGError as exc:
                last_error = exc
                failures.append(
                    IngestItemError(
                        item.document.id,
                        "embedding_failed",
                        exc.message,
                        original_error=exc,
                    )
                )
                continue
            embedded.append((item, result))

        if len(batch) > 1 and not embedded and last_error is not None:
            logger.error(
                "Every document of the batch failed to embed",
                extra={"batch_size": len(batch)},
            )
            raise EmbeddingError(
                f"Embedding provider unavailable: {last_error.message}",
                original_error=last_error,
            )

        for failure in failures:
            report.record_error(failure)
        return embedded

    # =========================================================
    # Execute
    # =========================================================
    def execute(self, input_data: IngestDocumentsInput) -> IngestReport:
        """
        R: Ingest documents.

        Returns:
            IngestReport with counts, duplicates, item errors and outcomes

        Raises:
            EmbeddingModelLoadError: provider cannot be loaded
            EmbeddingError: a whole batch failed document by document
            RetrievalError: similarity index unavailable
        """
        timings = StageTimings()
        report = IngestReport()
        collection = self.index.info.name

        pending: List[_Pending] = []
        metadata_only: List[IndexRecord] = []

        for document in self._deduplicate(input_data.documents, report):
            error = self._validate(document)
            if error is not None:
                report.record_error(error)
                continue

            content_hash = compute_content_hash(collection, document.text)
            existing = self.index.get(document.id)
            if existing is not None and existing.payload.get("content_hash") == content_hash:
                if dict(existing.payload.get("metadata") or {}) == dict(document.metadata or {}):
                    report.record(document.id, IngestOutcome.SKIPPED)
                else:
                    metadata_only.append(
                        IndexRecord(document.id, existing.vector, _payload(document, content_hash))
                    )
                continue
            pending.append(_Pending(document, content_hash))

        if metadata_only:
            self.index.upsert_many(metadata_only)
            for record in metadata_only:
                report.record(record.id, IngestOutcome.UPDATED)

        for start in range(0, len(pending), self.batch_size):
            batch = pending[start : start + self.batch_size]
            with timings.measure("embed"):
                embedded = self._embed_batch(batch, report)
            if not embedded:
                continue

            records = []
            for item, result in embedded:
                item.document.embedding = result.vector
                records.append(
                    IndexRecord(
                        item.document.id,
                        tuple(result.vector),
                        _payload(item.document, item.content_hash),
                    )
                )
            with timings.measure("upsert"):
                created = self.index.upsert_many(records)
            for record, is_new in zip(records, created):
                report.record(
                    record.id, IngestOutcome.INSERTED if is_new else IngestOutcome.UPDATED
                )

        record_stage_metrics(
            ingest_embed=timings.seconds("embed"), ingest_upsert=timings.seconds("upsert")
        )
        record_ingest_outcomes(
            inserted=report.inserted,
            updated=report.updated,
            skipped=report.skipped,
            failed=len(report.errors),
        )
        logger.info(
            "Ingestion completed",
            extra={
                "inserted": report.inserted,
                "updated": report.updated,
                "skipped": report.skipped,
                "duplicates": report.duplicates,
                "failed": len(report.errors),
                **timings.to_dict(),
            },
        )
        return report
