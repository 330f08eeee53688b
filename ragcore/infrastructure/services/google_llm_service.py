"""
Name: Google Gemini LLM Service Implementation

Responsibilities:
  - Implement LLMService using Google GenAI (Gemini)
  - Bound the provider request with the caller's timeout
  - Map provider failures to GenerationError

Collaborators:
  - google.genai.Client: SDK
  - application.use_cases.answer_query: owns the deadline and cancellation

Constraints:
  - Never retried: a generation failure is reported, not repeated
  - Receives a fully rendered prompt (PromptLoader + ContextBuilder upstream)
"""

from __future__ import annotations

from google import genai

from ...exceptions import GenerationError
from ...logger import logger


class GoogleLLMService:
    """R: Google Gemini implementation of LLMService."""

    DEFAULT_MODEL_ID = "gemini-1.5-flash"

    def __init__(
        self,
        api_key: str = "",
        *,
        client: genai.Client | None = None,
        model_id: str | None = None,
    ) -> None:
        """
        Raises:
            GenerationError: if there is no API key and no injected client
        """
        resolved_key = (api_key or "").strip()
        if not resolved_key and client is None:
            logger.error("GoogleLLMService: GOOGLE_API_KEY not configured")
            raise GenerationError("GOOGLE_API_KEY not configured")

        self._client = client or genai.Client(api_key=resolved_key)
        self._model_id = (model_id or self.DEFAULT_MODEL_ID).strip()

        logger.info("GoogleLLMService initialized", extra={"model_id": self._model_id})

    @property
    def model_id(self) -> str:
        return self._model_id

    def generate_answer(self, prompt: str, *, timeout_seconds: float) -> str:
        if not (prompt or "").strip():
            raise GenerationError("Prompt must not be empty")

        try:
            response = self._client.models.generate_content(
                model=self._model_id,
                contents=prompt,
                config={"http_options": {"timeout": int(timeout_seconds * 1000)}},
            )
        except Exception as exc:
            logger.error(
                "GoogleLLMService: Generation failed",
                exc_info=True,
                extra={"model_id": self._model_id, "error_type": type(exc).__name__},
            )
            raise GenerationError(
                "Failed to generate response", original_error=exc
            ) from exc

        text = (getattr(response, "text", "") or "").strip()
        logger.info(
            "GoogleLLMService: Response generated",
            extra={"model_id": self._model_id, "answer_chars": len(text)},
        )
        return text

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()
