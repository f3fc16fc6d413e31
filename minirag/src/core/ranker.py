"""
MiniRAG - Candidate Ranker (brute-force mode)
==============================================
Scores every chunk of a corpus snapshot against the query vector and
returns the top ``k``.

Ordering rules:
    • Descending cosine score at full precision.
    • Ties keep corpus order (stable sort), so identical inputs always
      produce identical rankings and a larger ``k`` only extends the
      prefix returned by a smaller one.
    • Displayed scores are rounded to ``SCORE_DIGITS`` decimals *after*
      ranking.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from minirag.src.core.models import Chunk, ChunkMeta, ScoredCandidate
from minirag.src.core.similarity import Vector, cosine_similarities
from minirag.src.utils.logger import get_logger

logger = get_logger(__name__)

SCORE_DIGITS = 4

# (score, text, id, meta) prior to label assignment
RankedRow = tuple[float, str, int, ChunkMeta | None]


def assign_refs(rows: Sequence[RankedRow]) -> list[ScoredCandidate]:
    """Label already-ordered rows ``#1``..``#n`` and round their scores."""
    return [
        ScoredCandidate(ref=f"#{rank}", score=round(float(score), SCORE_DIGITS), text=text, id=chunk_id, meta=meta)
        for rank, (score, text, chunk_id, meta) in enumerate(rows, 1)
    ]


def top_k(query_vector: Vector, corpus: Sequence[Chunk], k: int = 4) -> list[ScoredCandidate]:
    """
    Rank *corpus* by cosine similarity to *query_vector*.

    Parameters
    ----------
    query_vector
        Embedding of the query; must match every chunk's dimension.
    corpus
        Chunks in insertion order (ties resolve in this order).
    k
        Maximum number of results, must be ≥ 1.

    Returns
    -------
    list[ScoredCandidate]
        At most ``k`` candidates, best first.

    Raises
    ------
    ValueError
        If ``k`` < 1.
    DimensionMismatchError
        If any chunk embedding differs in length from the query vector.
    """
    if k < 1:
        raise ValueError(f"k must be ≥ 1, got {k}")
    if not corpus:
        return []

    scores = cosine_similarities(query_vector, [chunk.embedding for chunk in corpus])
    order = np.argsort(-scores, kind="stable")[:k]

    rows: list[RankedRow] = [(float(scores[i]), corpus[i].text, corpus[i].id, corpus[i].meta) for i in order]
    logger.debug("[RANK] Scored %d chunk(s), returning top %d.", len(corpus), len(rows))
    return assign_refs(rows)
