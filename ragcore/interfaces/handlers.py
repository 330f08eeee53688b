"""
Name: Request Handler

Responsibilities:
  - Transport-agnostic entry points: query, ingest, delete
  - Validate payloads and fill defaults from Settings
  - Bind operation context (request_id, collection) for logging
  - Serialize results (scores rounded to score_precision)

Collaborators:
  - interfaces.schemas: pydantic request models
  - application.use_cases: AnswerQuery, IngestDocuments, DeleteDocuments
  - context.operation_context: log correlation

Constraints:
  - handle_query always returns a typed status, invalid payloads included
  - handle_ingest raises pydantic.ValidationError on a malformed payload
"""

from __future__ import annotations

import threading
from typing import Any, Mapping, Optional, Sequence

from pydantic import ValidationError

from ..application.use_cases import (
    AnswerQueryInput,
    AnswerQueryUseCase,
    DeleteDocumentsUseCase,
    IngestDocumentsInput,
    IngestDocumentsUseCase,
)
from ..context import operation_context
from ..domain.entities import Document, Query, RagResponse, RagStatus
from ..exceptions import RequestValidationError
from ..logger import logger
from .schemas import DeleteRequest, IngestRequest, QueryRequest


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "payload"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


class RequestHandler:
    """R: Entry points shared by the CLI and any transport adapter."""

    def __init__(
        self,
        answer_query: AnswerQueryUseCase,
        ingest_documents: IngestDocumentsUseCase,
        delete_documents: DeleteDocumentsUseCase,
        *,
        collection: str = "",
        default_top_k: int = 5,
        max_top_k: int = 50,
        default_min_score: float = 0.0,
        score_precision: int = 4,
    ):
        self.answer_query = answer_query
        self.ingest_documents = ingest_documents
        self.delete_documents = delete_documents
        self.collection = collection
        self.default_top_k = default_top_k
        self.max_top_k = max_top_k
        self.default_min_score = default_min_score
        self.score_precision = score_precision

    def handle_query(
        self,
        payload: Mapping[str, Any],
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> dict:
        """
        R: {text, k?, min_score?, filters?, generate?} ->
        {status, query, matches, answer?, message?, error?, metadata}.
        """
        with operation_context("query", collection=self.collection) as request_id:
            try:
                request = QueryRequest.model_validate(
                    payload, context={"max_top_k": self.max_top_k}
                )
            except ValidationError as exc:
                error = RequestValidationError(_validation_message(exc))
                logger.warning(
                    "Invalid query payload",
                    extra={"error_id": error.error_id, "error": error.message},
                )
                raw_text = payload.get("text", "") if isinstance(payload, Mapping) else ""
                response = RagResponse(
                    status=RagStatus.RETRIEVAL_ERROR,
                    query=raw_text if isinstance(raw_text, str) else "",
                    error=error.to_response(),
                )
                body = response.to_dict(self.score_precision)
                body["metadata"]["request_id"] = request_id
                return body

            query = Query(
                text=request.text,
                k=request.k or self.default_top_k,
                min_score=(
                    request.min_score
                    if request.min_score is not None
                    else self.default_min_score
                ),
                filters=request.filters,
            )
            response = self.answer_query.execute(
                AnswerQueryInput(
                    query=query, generate=request.generate, cancel_event=cancel_event
                )
            )
            body = response.to_dict(self.score_precision)
            body["metadata"]["request_id"] = request_id
            return body

    def handle_ingest(self, documents: Sequence[Mapping[str, Any]]) -> dict:
        """
        R: [{id, text, metadata?}] -> IngestReport dict.

        Raises:
            pydantic.ValidationError: payload is not a list of documents
        """
        with operation_context("ingest", collection=self.collection):
            request = IngestRequest.model_validate({"documents": documents})
            report = self.ingest_documents.execute(
                IngestDocumentsInput(
                    documents=[
                        Document(id=item.id, text=item.text, metadata=dict(item.metadata))
                        for item in request.documents
                    ]
                )
            )
            return report.to_dict()

    def handle_delete(self, payload: Mapping[str, Any]) -> dict:
        """R: {ids} -> {deleted, missing}."""
        with operation_context("delete", collection=self.collection):
            request = DeleteRequest.model_validate(payload)
            return self.delete_documents.execute(request.ids).to_dict()
