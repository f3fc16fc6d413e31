"""
MiniRAG - Data Models
======================
Pydantic models shared by the stores, the retrieval core and the CLI.

``Chunk``
    A stored text segment with its embedding.  Persisted by the stores,
    read-only for the retrieval core.
``ScoredCandidate``
    One ranked result.  Built per query, never persisted.
``RetrievalResult`` / ``AnswerResult``
    What ``RAGManager.retrieve`` and ``RAGManager.answer`` hand back.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ChunkMeta = dict[str, Any]


class Chunk(BaseModel):
    """A contiguous, trimmed text segment stored with its embedding."""

    model_config = ConfigDict(frozen=True)

    id: int
    text: str
    embedding: list[float]
    meta: ChunkMeta | None = None

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("chunk text must not be empty")
        return v


class ScoredCandidate(BaseModel):
    """A ranked chunk; ``ref`` is ``#1``..``#k`` in rank order."""

    ref: str
    score: float
    text: str
    id: int
    meta: ChunkMeta | None = None

    def as_context_block(self) -> str:
        return f"[{self.ref}] {self.text}"


class RetrievalResult(BaseModel):
    """
    Outcome of one retrieval call.

    ``context`` is ``None`` when no candidate survived filtering, which is
    the "no relevant context" outcome rather than an error.
    """

    query: str
    top_k: int
    mode: Literal["memory", "index"]
    candidates: list[ScoredCandidate] = Field(default_factory=list)
    context: str | None = None

    @property
    def has_context(self) -> bool:
        return bool(self.candidates)


class AnswerResult(BaseModel):
    """Response shape of an ``ask``: ranked chunks, citations and the answer."""

    query: str
    top_k: int
    chunks: list[dict[str, Any]]
    citations: list[dict[str, Any]]
    answer: str
