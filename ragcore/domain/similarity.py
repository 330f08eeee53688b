"""
Name: Similarity Metrics

Responsibilities:
  - Score one query vector against a matrix of stored vectors
  - Map every metric to "higher = more similar"

Collaborators:
  - infrastructure.index.in_memory: vectorized scoring
  - infrastructure.index.postgres: mirrors the same score conventions in SQL

Constraints:
  - cosine: raw cosine in [-1, 1]; zero-norm vectors score 0.0
  - dot: raw inner product
  - euclidean: 1 / (1 + distance), in (0, 1]
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .entities import DistanceMetric


def as_vector(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    query_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * query_norm
    dots = matrix @ query
    scores = np.zeros(matrix.shape[0], dtype=np.float64)
    nonzero = denom > 0
    scores[nonzero] = dots[nonzero] / denom[nonzero]
    return np.clip(scores, -1.0, 1.0)


def dot_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    return matrix @ query


def euclidean_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    distances = np.linalg.norm(matrix - query, axis=1)
    return 1.0 / (1.0 + distances)


_SCORERS = {
    DistanceMetric.COSINE: cosine_scores,
    DistanceMetric.DOT: dot_scores,
    DistanceMetric.EUCLIDEAN: euclidean_scores,
}


def score_matrix(metric: DistanceMetric, query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """R: Scores for every row of matrix (shape [n, d]) against query (shape [d])."""
    if matrix.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)
    return _SCORERS[DistanceMetric(metric)](query, matrix)


def score_pair(metric: DistanceMetric, a: Sequence[float], b: Sequence[float]) -> float:
    matrix = as_vector(b).reshape(1, -1)
    return float(score_matrix(metric, as_vector(a), matrix)[0])
