"""
MiniRAG - Similarity Scorer
============================
Cosine similarity between fixed-length float vectors, backed by numpy.

A zero-magnitude vector scores exactly ``0.0`` against anything, so a
degenerate embedding never injects ``NaN`` into a ranking.  Vectors of
different lengths are rejected with ``DimensionMismatchError``.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from minirag.src.core.exceptions import DimensionMismatchError

Vector = Sequence[float]


def _as_array(vector: Vector) -> np.ndarray:
    arr = np.asarray(vector, dtype=np.float64)
    if arr.ndim != 1 or arr.size == 0:
        raise DimensionMismatchError(expected=arr.size, actual=arr.size, message="Embedding vectors must be non-empty and one-dimensional.")
    return arr


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    Return ``dot(a, b) / (‖a‖ · ‖b‖)`` clamped to ``[-1, 1]``.

    Raises
    ------
    DimensionMismatchError
        If ``len(a) != len(b)`` or either vector is empty.
    """
    va = _as_array(a)
    vb = _as_array(b)
    if va.shape != vb.shape:
        raise DimensionMismatchError(expected=va.size, actual=vb.size)

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    score = float(np.dot(va, vb)) / (norm_a * norm_b)
    return float(np.clip(score, -1.0, 1.0))


def cosine_similarities(query: Vector, vectors: Sequence[Vector]) -> np.ndarray:
    """
    Score *query* against every row of *vectors* in one pass.

    Rows with zero magnitude (and a zero query) score ``0.0``.  Every row
    must have the query's dimension.
    """
    q = _as_array(query)
    if not vectors:
        return np.zeros(0, dtype=np.float64)

    for row in vectors:
        if len(row) != q.size:
            raise DimensionMismatchError(expected=q.size, actual=len(row))

    matrix = np.asarray(vectors, dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q

    scores = np.zeros(len(vectors), dtype=np.float64)
    nonzero = norms > 0
    scores[nonzero] = dots[nonzero] / norms[nonzero]
    return np.clip(scores, -1.0, 1.0)
