"""
Name: Answer Query Use Case (RAG Orchestrator)

Responsibilities:
  - Drive one query through Embedding -> Retrieving -> Ranking -> Generating
  - Short-circuit to NoContext when ranking is empty (generator never called)
  - Call the generator with a deadline, cancellable through a threading.Event
  - Return a typed RagResponse whose evidence is exactly the ranked list
  - Measure and report stage timings and the state trace

Collaborators:
  - application.use_cases.search_documents: embed/retrieve/rank stages
  - application.context_builder.ContextBuilder: bounded context with provenance
  - infrastructure.prompts.PromptLoader: versioned template
  - domain.services.LLMService: generation
  - metrics: stage latency and outcome counters

Constraints:
  - Generation is never retried
  - Any embedding error ends in GenerationFailed (no retry)
  - Index failures (after the single transient retry) end in RetrievalError
  - Evidence is preserved when generation fails

Notes:
  - Generation runs on a bounded thread pool owned by this use case;
    close() shuts it down
  - On timeout/cancel a queued call is cancelled. A running call cannot be
    interrupted: providers setting accepts_cancel_event receive a stop event,
    every provider must bound its own call with timeout_seconds
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import List, Optional

from ...domain.entities import (
    NO_CONTEXT_MESSAGE,
    Query,
    RagResponse,
    RagState,
    RagStatus,
    ScoredMatch,
)
from ...domain.services import LLMService
from ...exceptions import (
    DimensionMismatchError,
    GenerationCancelled,
    GenerationError,
    GenerationTimeout,
    RAGError,
    RetrievalError,
)
from ...infrastructure.prompts import PromptLoader
from ...logger import logger
from ...metrics import record_rag_outcome, record_stage_metrics
from ...timing import StageTimings
from ..context_builder import ContextBuilder
from .search_documents import SearchDocumentsUseCase

# R: How often the wait loop checks the cancel event
_CANCEL_POLL_SECONDS = 0.05


@dataclass
class AnswerQueryInput:
    """
    R: Input data for the RAG orchestrator.

    Attributes:
        query: Text, k, min_score and optional filters
        generate: False stops after ranking (retrieval only)
        cancel_event: Set by the caller to abort generation
    """

    query: Query
    generate: bool = True
    cancel_event: Optional[threading.Event] = None


class _Run:
    """R: Per-request mutable state (trace, timings, counters)."""

    def __init__(self, query: Query):
        self.query = query
        self.states: List[RagState] = [RagState.START]
        self.timings = StageTimings()
        self.k_retrieve = 0
        self.matches_found = 0
        self.context_items_used = 0
        self.query_truncated = False

    def enter(self, state: RagState) -> None:
        self.states.append(state)


class AnswerQueryUseCase:
    """R: RAG state machine over the retrieval pipeline and the generator."""

    def __init__(
        self,
        search: SearchDocumentsUseCase,
        llm_service: LLMService,
        context_builder: ContextBuilder,
        prompt_loader: PromptLoader,
        *,
        generation_timeout_seconds: float = 30.0,
        generation_workers: int = 4,
    ):
        if generation_timeout_seconds <= 0:
            raise ValueError("generation_timeout_seconds must be > 0")
        self.search = search
        self.llm_service = llm_service
        self.context_builder = context_builder
        self.prompt_loader = prompt_loader
        self.generation_timeout_seconds = generation_timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=generation_workers, thread_name_prefix="ragcore-generate"
        )

    def close(self) -> None:
        """R: Stop the generation pool; pending calls are cancelled."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _abandon(future: Future, stop: threading.Event) -> None:
        """R: Give up on a generation call; a running call is only signalled."""
        stop.set()
        if not future.cancel() and not future.done():
            logger.warning(
                "Generation still running after the caller gave up",
                extra={"bounded_by": "provider timeout_seconds"},
            )

    # =========================================================
    # Generation with deadline + cancellation
    # =========================================================
    def _generate(self, prompt: str, cancel_event: Optional[threading.Event]) -> str:
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelled("Generation cancelled before it started")

        timeout = self.generation_timeout_seconds
        deadline = time.monotonic() + timeout
        stop = threading.Event()
        kwargs = {"timeout_seconds": timeout}
        if getattr(self.llm_service, "accepts_cancel_event", False):
            kwargs["cancel_event"] = stop
        future = self._executor.submit(self.llm_service.generate_answer, prompt, **kwargs)

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._abandon(future, stop)
                raise GenerationTimeout(f"Generation exceeded {timeout:g}s")
            done, _ = wait(
                [future],
                timeout=min(_CANCEL_POLL_SECONDS, remaining),
                return_when=FIRST_COMPLETED,
            )
            if done:
                break
            if cancel_event is not None and cancel_event.is_set():
                self._abandon(future, stop)
                raise GenerationCancelled("Generation cancelled by caller")

        try:
            answer = future.result()
        except GenerationError:
            raise
        except Exception as exc:
            raise GenerationError(
                f"Generator failed: {type(exc).__name__}", original_error=exc
            ) from exc
        if not isinstance(answer, str):
            raise GenerationError("Generator returned a non-text answer")
        return answer

    # =========================================================
    # Response helpers
    # =========================================================
    def _finish(
        self,
        run: _Run,
        status: RagStatus,
        *,
        evidence: Optional[List[ScoredMatch]] = None,
        answer: Optional[str] = None,
        message: Optional[str] = None,
        error: Optional[RAGError] = None,
    ) -> RagResponse:
        run.enter(RagState(status.value))
        timing_data = run.timings.to_dict()

        record_rag_outcome(status.value)
        record_stage_metrics(
            embed=run.timings.seconds("embed"),
            retrieve=run.timings.seconds("retrieve"),
            rank=run.timings.seconds("rank"),
            generate=run.timings.seconds("generate"),
        )

        log_extra = {
            "status": status.value,
            "k": run.query.k,
            "matches_found": run.matches_found,
            "evidence": len(evidence or []),
            **timing_data,
        }
        if error is not None:
            log_extra.update(error_code=error.error_code, error_id=error.error_id)
            logger.warning("RAG query finished without answer", extra=log_extra)
        else:
            logger.info("RAG query finished", extra=log_extra)

        return RagResponse(
            status=status,
            query=run.query.text,
            evidence=list(evidence or []),
            answer=answer,
            message=message,
            error=error.to_response() if error is not None else None,
            metadata={
                **timing_data,
                "k": run.query.k,
                "k_retrieve": run.k_retrieve,
                "matches_found": run.matches_found,
                "context_items_used": run.context_items_used,
                "query_truncated": run.query_truncated,
                "states": [state.value for state in run.states],
            },
        )

    # =========================================================
    # Execute
    # =========================================================
    def execute(self, input_data: AnswerQueryInput) -> RagResponse:
        """
        R: Run the state machine for one query.

        Never raises for pipeline failures: every outcome is a typed status.
        """
        query = input_data.query
        run = _Run(query)

        # R: STEP 1 - Embed query (any failure -> GenerationFailed)
        run.enter(RagState.EMBEDDING)
        try:
            embedding = self.search.embed_query(query, run.timings)
        except RAGError as exc:
            return self._finish(run, RagStatus.GENERATION_FAILED, error=exc)
        run.query_truncated = embedding.truncated

        # R: STEP 2 - Retrieve k * oversample candidates
        run.enter(RagState.RETRIEVING)
        try:
            raw, run.k_retrieve = self.search.retrieve(query, embedding.vector, run.timings)
        except (RetrievalError, DimensionMismatchError) as exc:
            return self._finish(run, RagStatus.RETRIEVAL_ERROR, error=exc)
        run.matches_found = len(raw)

        # R: STEP 3 - Rank to k with min_score
        run.enter(RagState.RANKING)
        evidence = self.search.rank(query, raw, run.timings)

        if not evidence:
            return self._finish(run, RagStatus.NO_CONTEXT, message=NO_CONTEXT_MESSAGE)

        if not input_data.generate:
            return self._finish(run, RagStatus.ANSWERED, evidence=evidence)

        # R: STEP 4 - Build bounded prompt and generate
        run.enter(RagState.GENERATING)
        context = self.context_builder.build(evidence)
        run.context_items_used = context.items_used
        prompt = self.prompt_loader.format(context=context.text, query=query.text)

        try:
            with run.timings.measure("generate"):
                answer = self._generate(prompt, input_data.cancel_event)
        except GenerationError as exc:
            return self._finish(
                run, RagStatus.GENERATION_FAILED, evidence=evidence, error=exc
            )

        return self._finish(run, RagStatus.ANSWERED, evidence=evidence, answer=answer)
