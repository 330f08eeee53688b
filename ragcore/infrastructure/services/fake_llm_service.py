"""
Name: Fake LLM Service (Deterministic)

Responsibilities:
  - Provide deterministic answers for testing/CI
  - Avoid external dependencies (no API calls)
"""

from __future__ import annotations

import hashlib

from ...logger import logger


def _build_answer(prompt: str) -> str:
    digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:16]
    return f"Simulated answer ({digest}) based on the provided context."


class FakeLLMService:
    """R: Deterministic LLMService for tests/CI."""

    MODEL_ID = "fake-llm-v1"

    def __init__(self) -> None:
        logger.info("FakeLLMService initialized")

    def generate_answer(self, prompt: str, *, timeout_seconds: float) -> str:
        return _build_answer(prompt)

    @property
    def model_id(self) -> str:
        return self.MODEL_ID
