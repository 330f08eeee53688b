"""
Name: Domain Entities

Responsibilities:
  - Define the core value objects (Document, Query, ScoredMatch,
    GenerationContext, IngestReport, RagResponse)
  - Keep simple invariants close to the data (k > 0, min_score in [0, 1])
  - Provide the deterministic id ordering used for tie-breaking

Collaborators:
  - domain.repositories: SimilarityIndex stores/returns these entities
  - application/*: builds and consumes them
  - interfaces.handlers: serializes them

Constraints:
  - No infrastructure dependencies (no DB, no SDKs)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..exceptions import ErrorResponse, IngestItemError

DocumentId = Union[int, str]
Scalar = Union[str, int, float, bool, None]


def id_sort_key(document_id: DocumentId) -> Tuple[int, Any]:
    """
    R: Total order over mixed ids: integers first (numeric), then strings.

    Used as the tie-breaker everywhere so that equal scores are always
    returned in the same order.
    """
    if isinstance(document_id, bool):
        return (1, str(document_id))
    if isinstance(document_id, int):
        return (0, document_id)
    return (1, str(document_id))


class DistanceMetric(str, Enum):
    """Similarity metric fixed per collection."""

    COSINE = "cosine"
    DOT = "dot"
    EUCLIDEAN = "euclidean"


@dataclass(frozen=True)
class CollectionInfo:
    """R: Name, dimension (None until the first insert) and metric of a collection."""

    name: str
    metric: DistanceMetric = DistanceMetric.COSINE
    dimension: Optional[int] = None


# ---------------------------------------------------------------------------
# Documents and index records
# ---------------------------------------------------------------------------


@dataclass
class Document:
    """
    Document to ingest.

    embedding stays None until the pipeline computes it; once set it always
    has the collection's dimension.
    """

    id: DocumentId
    text: str
    metadata: Dict[str, Scalar] = field(default_factory=dict)
    embedding: Optional[List[float]] = None


@dataclass(frozen=True)
class IndexRecord:
    """R: One stored (id, vector, payload) tuple."""

    id: DocumentId
    vector: Tuple[float, ...]
    payload: Mapping[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Query side
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Query:
    """R: Retrieval request; filters is a raw metadata predicate (see domain.filters)."""

    text: str
    k: int
    min_score: float = 0.0
    filters: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        if self.k <= 0:
            raise ValueError("k must be a positive integer")
        if not 0.0 <= self.min_score <= 1.0:
            raise ValueError("min_score must be between 0 and 1")


@dataclass(frozen=True)
class ScoredMatch:
    """
    Search hit. Higher score = more similar under the collection metric.

    Scores keep full precision; rounding happens only when surfaced.
    """

    document_id: DocumentId
    score: float
    payload: Mapping[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return str(self.payload.get("text", ""))

    def to_dict(self, precision: int | None = None) -> dict:
        score = self.score if precision is None else round(self.score, precision)
        return {"id": self.document_id, "score": score, "payload": dict(self.payload)}


@dataclass(frozen=True)
class GenerationContext:
    """
    Ordered, immutable evidence used to build a prompt.

    matches: items actually rendered (descending score)
    text: rendered context block (bounded length)
    """

    matches: Tuple[ScoredMatch, ...]
    text: str

    @property
    def items_used(self) -> int:
        return len(self.matches)

    @property
    def is_empty(self) -> bool:
        return not self.matches


@dataclass(frozen=True)
class EmbeddingResult:
    """R: Vector plus whether the input was truncated to fit the model."""

    vector: List[float]
    truncated: bool = False
    model_id: str = ""

    @property
    def dimension(self) -> int:
        return len(self.vector)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class IngestOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class IngestReport:
    """
    Result of one ingest() call.

    duplicates counts input rows collapsed by id (last occurrence wins).
    outcomes maps every distinct input id to its IngestOutcome.
    """

    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    duplicates: int = 0
    errors: List[IngestItemError] = field(default_factory=list)
    outcomes: Dict[DocumentId, IngestOutcome] = field(default_factory=dict)

    def record(self, document_id: DocumentId, outcome: IngestOutcome) -> None:
        self.outcomes[document_id] = outcome
        if outcome is IngestOutcome.INSERTED:
            self.inserted += 1
        elif outcome is IngestOutcome.UPDATED:
            self.updated += 1
        elif outcome is IngestOutcome.SKIPPED:
            self.skipped += 1

    def record_error(self, error: IngestItemError) -> None:
        self.errors.append(error)
        self.outcomes[error.document_id] = IngestOutcome.FAILED

    def to_dict(self) -> dict:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "duplicates": self.duplicates,
            "errors": [error.to_dict() for error in self.errors],
            "outcomes": [
                {"id": doc_id, "outcome": outcome.value}
                for doc_id, outcome in self.outcomes.items()
            ],
        }


# ---------------------------------------------------------------------------
# RAG
# ---------------------------------------------------------------------------


class RagStatus(str, Enum):
    """Typed status surfaced to callers."""

    ANSWERED = "answered"
    NO_CONTEXT = "no_context"
    GENERATION_FAILED = "generation_failed"
    RETRIEVAL_ERROR = "retrieval_error"


class RagState(str, Enum):
    """Orchestrator states; the last four are terminal."""

    START = "start"
    EMBEDDING = "embedding"
    RETRIEVING = "retrieving"
    RANKING = "ranking"
    GENERATING = "generating"
    ANSWERED = "answered"
    NO_CONTEXT = "no_context"
    GENERATION_FAILED = "generation_failed"
    RETRIEVAL_ERROR = "retrieval_error"


NO_CONTEXT_MESSAGE = "No relevant context found for the query."


@dataclass
class RagResponse:
    """
    Orchestrator result.

    evidence is exactly the ranked list, also when generation failed.
    """

    status: RagStatus
    query: str
    evidence: List[ScoredMatch] = field(default_factory=list)
    answer: Optional[str] = None
    message: Optional[str] = None
    error: Optional[ErrorResponse] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self, precision: int = 4) -> dict:
        body: dict[str, Any] = {
            "status": self.status.value,
            "query": self.query,
            "matches": [match.to_dict(precision) for match in self.evidence],
            "metadata": dict(self.metadata),
        }
        if self.answer is not None:
            body["answer"] = self.answer
        if self.message is not None:
            body["message"] = self.message
        if self.error is not None:
            body["error"] = self.error.to_dict()
        return body
