"""
MiniRAG - Candidate Sources
============================
Structural types for the two ways the orchestrator can obtain ranking
candidates.  Which one is used is a deployment decision
(``settings.RETRIEVAL_MODE``); the retrieval core only checks which
capability set the injected object provides.

``CorpusSource``
    Brute-force: hands out a consistent snapshot of every stored chunk.
``ApproximateIndex``
    Nearest-neighbour search returning ids + scores, plus per-id
    hydration of text and metadata.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from minirag.src.core.models import Chunk

# ── Type Aliases ──────────────────────────────────────────────────────
IndexMatch = dict[str, int | float]
HydratedRecord = dict[str, Any]


@runtime_checkable
class CorpusSource(Protocol):
    """Anything that can list its whole corpus in insertion order."""

    def list_all(self) -> Sequence[Chunk]: ...


@runtime_checkable
class ApproximateIndex(Protocol):
    """Approximate nearest-neighbour index with a hydration side-channel."""

    def query(self, vector: Sequence[float], top_k: int) -> list[IndexMatch]: ...

    def hydrate(self, chunk_id: int) -> HydratedRecord | None: ...
