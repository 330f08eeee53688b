"""
Name: Context Builder

Responsibilities:
  - Render ranked matches into a bounded context block for the prompt
  - Attach provenance (document id and score) to every item
  - Escape delimiters to prevent prompt injection

Collaborators:
  - domain.entities.ScoredMatch / GenerationContext
  - config: max_context_chars, score_precision

Notes:
  - Input is already ranked; order is preserved
  - Items that do not fit are dropped; the first item is truncated instead,
    so a non-empty ranking never yields an empty context
  - The rendered text never exceeds max_chars, even when that cuts a header
"""

from typing import List, Sequence

from ..domain.entities import GenerationContext, ScoredMatch
from ..logger import logger


# R: Delimiters around each item (hard to inject)
ITEM_HEADER = "\n---[SOURCE {index} | id={document_id} | score={score}]---\n"
ITEM_END = "\n---[END SOURCE]---\n"
TRUNCATION_MARKER = " [...]"


def _escape_delimiters(text: str) -> str:
    """R: Neutralize patterns that could forge item boundaries."""
    return text.replace("---[", "-- [").replace("]---", "] --")


def _format_item(match: ScoredMatch, index: int, precision: int, body: str) -> str:
    header = ITEM_HEADER.format(
        index=index,
        document_id=_escape_delimiters(str(match.document_id)),
        score=f"{match.score:.{precision}f}",
    )
    return f"{header}{body}{ITEM_END}"


class ContextBuilder:
    """R: Build a GenerationContext from ranked matches."""

    def __init__(self, max_chars: int = 12000, score_precision: int = 4):
        if max_chars <= 0:
            raise ValueError("max_chars must be > 0")
        self.max_chars = max_chars
        self.score_precision = score_precision

    def build(self, matches: Sequence[ScoredMatch]) -> GenerationContext:
        """
        R: Render matches in rank order within max_chars.

        Returns:
            GenerationContext with the items actually rendered
        """
        parts: List[str] = []
        used: List[ScoredMatch] = []
        total_chars = 0
        dropped = 0

        for position, match in enumerate(matches):
            index = len(used) + 1
            body = _escape_delimiters(match.text)
            formatted = _format_item(match, index, self.score_precision, body)

            if total_chars + len(formatted) > self.max_chars:
                if position > 0:
                    dropped += 1
                    continue
                overhead = len(formatted) - len(body) + len(TRUNCATION_MARKER)
                room = max(0, self.max_chars - overhead)
                formatted = _format_item(
                    match, index, self.score_precision, body[:room] + TRUNCATION_MARKER
                )
                # Header alone may exceed a tiny max_chars
                formatted = formatted[: self.max_chars]
                logger.debug(
                    "Top context item truncated",
                    extra={"document_id": str(match.document_id), "kept_chars": room},
                )

            parts.append(formatted)
            used.append(match)
            total_chars += len(formatted)

        if dropped:
            logger.debug(
                "Context items dropped to fit max_chars",
                extra={"dropped": dropped, "max_chars": self.max_chars},
            )

        return GenerationContext(matches=tuple(used), text="".join(parts))
