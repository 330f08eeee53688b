"""
Name: Ranker

Responsibilities:
  - Turn raw index matches into the final ordered evidence list

Collaborators:
  - application.use_cases.search_documents / answer_query

Constraints:
  - Pure: inputs are never mutated, no IO
  - Deterministic: score desc, then id_sort_key asc
  - Never returns a match below min_score

Notes:
  - Empty result is a normal outcome, not an error
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from ..domain.entities import DocumentId, ScoredMatch, id_sort_key


def rank(raw_matches: Iterable[ScoredMatch], min_score: float, k: int) -> List[ScoredMatch]:
    """
    R: Dedupe by id (highest score wins), threshold, sort and truncate.

    Args:
        raw_matches: Matches from one or more index searches
        min_score: Inclusive lower bound on score
        k: Maximum number of results (must be > 0)

    Returns:
        At most k matches, score descending, ties by ascending id
    """
    if k <= 0:
        raise ValueError("k must be a positive integer")

    best: Dict[DocumentId, ScoredMatch] = {}
    for match in raw_matches:
        current = best.get(match.document_id)
        if current is None or match.score > current.score:
            best[match.document_id] = match

    kept = [match for match in best.values() if match.score >= min_score]
    kept.sort(key=lambda m: (-m.score, id_sort_key(m.document_id)))
    return kept[:k]
