"""
MiniRAG - RAG Engine
=====================
Read-side orchestration of the retrieval pipeline and the grounded
answer built on top of it.

Architecture
------------
``RAGManager``
    Stateless orchestrator.  The embedder, the candidate source and the
    generator are injected; nothing is cached between calls, so one
    instance can serve concurrent queries.  Flow of ``retrieve``:
        1. Embed the query (fails fast on ``EmbeddingUnavailableError``).
        2. Obtain candidates from the configured source:
           • ``CorpusSource``     → score the whole snapshot (cosine).
           • ``ApproximateIndex`` → over-fetch ``max(k, pool_min)``,
             hydrate each id, drop failures, keyword re-rank.
        3. Truncate to ``k``, label ``#1``..``#k``, round scores.
        4. Join ``"[ref] text"`` blocks into the context, or report
           "no relevant context" when nothing survived.

    ``answer`` adds generation: the sentinel response when there is no
    context, otherwise the generator, falling back to a naive summary
    of the chunks when the generator is absent or fails.

Usage:
    from minirag.src.core.rag_engine import RAGManager
    rag = RAGManager(embedder, store, generator=GeminiGenerator())
    result = rag.retrieve("What is the capital of Sweden?", k=4)
    answer = await rag.answer("What is the capital of Sweden?")
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Literal

from minirag.config.prompt_templates import NO_CONTEXT_RESPONSE
from minirag.config.settings import settings
from minirag.src.core.candidate_sources import ApproximateIndex, CorpusSource
from minirag.src.core.embeddings import Embedder, embed_query
from minirag.src.core.generator import Generator, naive_answer
from minirag.src.core.models import AnswerResult, RetrievalResult, ScoredCandidate
from minirag.src.core.ranker import assign_refs, top_k
from minirag.src.core.reranker import KeywordReranker, PoolEntry
from minirag.src.utils.logger import get_logger

logger = get_logger(__name__)

CONTEXT_SEPARATOR = "\n\n"


def format_context(candidates: Sequence[ScoredCandidate]) -> str | None:
    """Join candidates into ``"[#n] text"`` blocks, or ``None`` if there are none."""
    if not candidates:
        return None
    return CONTEXT_SEPARATOR.join(candidate.as_context_block() for candidate in candidates)


class RAGManager:
    """
    Retrieval orchestrator.

    Parameters
    ----------
    embedder
        ``Embedder``-compatible object used for the query vector.
    source
        A ``CorpusSource`` (brute-force) or an ``ApproximateIndex``.
    generator
        Optional ``Generator`` used by ``answer``.
    reranker
        Optional custom ``KeywordReranker`` for index mode.
    candidate_pool_min
        Minimum pool size requested from an approximate index
        (default ``settings.CANDIDATE_POOL_MIN``).
    """

    __slots__ = ("_embedder", "_source", "_mode", "_generator", "_reranker", "_pool_min")

    def __init__(self, embedder: Embedder, source: CorpusSource | ApproximateIndex, generator: Generator | None = None, reranker: KeywordReranker | None = None, candidate_pool_min: int | None = None) -> None:
        self._embedder = embedder
        self._source = source
        self._mode: Literal["memory", "index"] = self._detect_mode(source)
        self._generator = generator
        self._reranker = reranker or KeywordReranker()
        self._pool_min = settings.CANDIDATE_POOL_MIN if candidate_pool_min is None else candidate_pool_min


    @staticmethod
    def _detect_mode(source: object) -> Literal["memory", "index"]:
        if isinstance(source, ApproximateIndex):
            return "index"
        if isinstance(source, CorpusSource):
            return "memory"
        raise TypeError(f"{type(source).__name__} is neither a CorpusSource nor an ApproximateIndex.")


    @property
    def mode(self) -> Literal["memory", "index"]:
        return self._mode

    # ══════════════════════════════════════════════════════════════════
    #  RETRIEVAL
    # ══════════════════════════════════════════════════════════════════

    def retrieve(self, query: str, k: int | None = None) -> RetrievalResult:
        """
        Return the ``k`` most relevant chunks for *query*.

        Raises
        ------
        ValueError
            If ``k`` < 1.
        EmbeddingUnavailableError
            If the query cannot be embedded.
        DimensionMismatchError
            If the query vector and stored vectors differ in length.
        """
        k = settings.TOP_K if k is None else k
        if k < 1:
            raise ValueError(f"k must be ≥ 1, got {k}")

        t_start = time.perf_counter()
        query_vector = embed_query(self._embedder, query)
        embed_ms = (time.perf_counter() - t_start) * 1000

        if self._mode == "index":
            candidates = self._retrieve_from_index(query, query_vector, k)
        else:
            candidates = self._retrieve_from_corpus(query_vector, k)

        total_ms = (time.perf_counter() - t_start) * 1000
        logger.info("[RAG] mode=%s k=%d → %d candidate(s) in %.1fms (embed=%.1fms)", self._mode, k, len(candidates), total_ms, embed_ms)

        if not candidates:
            logger.warning("[RAG] No relevant context for query '%s'.", query[:50])

        return RetrievalResult(query=query, top_k=k, mode=self._mode, candidates=candidates, context=format_context(candidates))


    def _retrieve_from_corpus(self, query_vector: list[float], k: int) -> list[ScoredCandidate]:
        corpus = self._source.list_all()  # type: ignore[union-attr]
        return top_k(query_vector, corpus, k)


    def _retrieve_from_index(self, query: str, query_vector: list[float], k: int) -> list[ScoredCandidate]:
        pool_size = max(k, self._pool_min)
        matches = self._source.query(query_vector, pool_size)  # type: ignore[union-attr]

        pool: list[PoolEntry] = []
        for match in matches:
            chunk_id = int(match["id"])
            try:
                row = self._source.hydrate(chunk_id)  # type: ignore[union-attr]
            except Exception as exc:
                logger.warning("[RAG] Hydration failed for chunk %d — dropped: %s", chunk_id, exc)
                continue
            if not row:
                logger.warning("[RAG] Chunk %d has no stored row — dropped.", chunk_id)
                continue
            pool.append((float(match.get("score", 0.0) or 0.0), str(row.get("text") or ""), chunk_id, row.get("meta")))

        logger.debug("[RAG] Index returned %d match(es), %d hydrated (requested %d).", len(matches), len(pool), pool_size)
        return assign_refs(self._reranker.rerank(query, pool, k))

    # ══════════════════════════════════════════════════════════════════
    #  ANSWER
    # ══════════════════════════════════════════════════════════════════

    async def answer(self, question: str, k: int | None = None) -> AnswerResult:
        """
        Retrieve context for *question* and produce a grounded answer.

        Never calls the generator without context: an empty retrieval
        yields ``NO_CONTEXT_RESPONSE``.  A failing or empty generator
        response falls back to ``naive_answer``.
        """
        result = self.retrieve(question, k)

        if not result.has_context:
            answer = NO_CONTEXT_RESPONSE
        else:
            answer = await self._generate(question, result)

        return AnswerResult(
            query=question,
            top_k=result.top_k,
            chunks=[{"ref": c.ref, "score": c.score, "text": c.text} for c in result.candidates],
            citations=[{"id": c.id, "meta": c.meta} for c in result.candidates],
            answer=answer,
        )


    async def _generate(self, question: str, result: RetrievalResult) -> str:
        if self._generator is not None:
            t_llm = time.perf_counter()
            try:
                answer = await self._generator.generate(question, result.context)
            except Exception:
                logger.exception("[RAG] LLM call failed — using naive summary.")
            else:
                llm_ms = (time.perf_counter() - t_llm) * 1000
                if answer and answer.strip():
                    logger.info("[RAG] LLM response: %.1fms (%d chars)", llm_ms, len(answer))
                    return answer
                logger.warning("[RAG] LLM returned an empty answer — using naive summary.")

        return naive_answer(result.candidates)


    def __repr__(self) -> str:
        return f"RAGManager(mode='{self._mode}', source={type(self._source).__name__}, generator={type(self._generator).__name__ if self._generator else None})"
