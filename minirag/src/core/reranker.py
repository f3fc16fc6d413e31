"""
MiniRAG - Keyword Re-ranker
============================
Lexical boost layered on top of approximate vector search.

Dense embeddings tend to under-rank passages that contain the exact
entity a user asked about.  ``KeywordReranker`` adds a small, capped
bonus per query keyword that appears verbatim in a candidate's text and
re-sorts the pool.

Algorithm
---------
1. Tokenise the query: lower-case, split on non-alphanumerics, drop
   tokens shorter than ``min_token_len`` and stop words.
2. For every candidate count the tokens that occur as a substring of
   its lower-cased text.
3. ``boost = min(hits × per_hit, cap)``; ``final = vector_score + boost``.
4. Drop blank candidates, stable-sort by ``final`` descending, keep ``k``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from minirag.config.prompt_templates import STOP_WORDS
from minirag.config.settings import settings
from minirag.src.core.models import ChunkMeta
from minirag.src.utils.logger import get_logger
from minirag.src.utils.text_utils import tokenize_query

logger = get_logger(__name__)

# (vector score, text, id, meta) for one hydrated candidate
PoolEntry = tuple[float, str, int, ChunkMeta | None]


class KeywordReranker:
    """
    Capped additive keyword boost.

    Parameters
    ----------
    per_hit
        Score added for each matching keyword (default ``KEYWORD_BOOST_PER_HIT``).
    cap
        Upper bound on the total boost (default ``KEYWORD_BOOST_CAP``).
    stop_words
        Tokens that never count as keywords (default ``STOP_WORDS``).
    min_token_len
        Shortest token considered (default ``KEYWORD_MIN_TOKEN_LEN``).
    """

    __slots__ = ("_per_hit", "_cap", "_stop_words", "_min_len")

    def __init__(self, per_hit: float | None = None, cap: float | None = None, stop_words: Iterable[str] | None = None, min_token_len: int | None = None) -> None:
        self._per_hit = settings.KEYWORD_BOOST_PER_HIT if per_hit is None else per_hit
        self._cap = settings.KEYWORD_BOOST_CAP if cap is None else cap
        self._stop_words = frozenset(STOP_WORDS if stop_words is None else stop_words)
        self._min_len = settings.KEYWORD_MIN_TOKEN_LEN if min_token_len is None else min_token_len
        if self._per_hit < 0 or self._cap < 0:
            raise ValueError("keyword boost values must be ≥ 0")


    def keywords(self, query: str) -> list[str]:
        """Return the query tokens eligible for a boost."""
        return tokenize_query(query, self._stop_words, self._min_len)


    def boost(self, keywords: Sequence[str], text: str) -> float:
        """Return the boost in ``[0, cap]`` earned by *text* for *keywords*."""
        text_lower = text.lower()
        hits = sum(1 for kw in keywords if kw in text_lower)
        return min(hits * self._per_hit, self._cap)


    def rerank(self, query: str, pool: Sequence[PoolEntry], k: int) -> list[PoolEntry]:
        """
        Boost, filter and re-sort *pool*, returning at most *k* entries.

        The returned scores are the boosted scores at full precision.
        """
        keywords = self.keywords(query)

        boosted: list[PoolEntry] = []
        for score, text, chunk_id, meta in pool:
            if not text or not text.strip():
                continue
            bonus = self.boost(keywords, text) if keywords else 0.0
            boosted.append((score + bonus, text, chunk_id, meta))

        # sorted() is stable: equal scores keep vector-search order
        boosted = sorted(boosted, key=lambda entry: entry[0], reverse=True)

        logger.debug("[RERANK] keywords=%s, pool=%d, kept=%d, returning top %d.", keywords, len(pool), len(boosted), min(k, len(boosted)))
        return boosted[:k]


    def __repr__(self) -> str:
        return f"KeywordReranker(per_hit={self._per_hit}, cap={self._cap}, stop_words={len(self._stop_words)}, min_token_len={self._min_len})"
