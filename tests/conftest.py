"""Shared pytest fixtures and fakes for MiniRAG tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from minirag.src.core.candidate_sources import HydratedRecord, IndexMatch
from minirag.src.database.memory_store import MemoryStore

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

VOCAB = ["capital", "sweden", "stockholm", "norway", "oslo", "python", "language"]


class VocabEmbedder:
    """Deterministic bag-of-words embedder: one dimension per vocabulary word."""

    def __init__(self, vocab: Sequence[str] = VOCAB) -> None:
        self.vocab = list(vocab)
        self.query_calls: list[str] = []
        self.document_calls: list[list[str]] = []

    def _vector(self, text: str) -> list[float]:
        lower = text.lower()
        return [float(lower.count(word)) for word in self.vocab]

    def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return self._vector(text)

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [self._vector(t) for t in texts]


class FakeIndex:
    """In-memory ``ApproximateIndex`` with scripted matches and rows."""

    def __init__(self, matches: list[IndexMatch], rows: dict[int, HydratedRecord | None], failing: set[int] | None = None) -> None:
        self.matches = matches
        self.rows = rows
        self.failing = failing or set()
        self.requested_top_k: list[int] = []

    def query(self, vector: Sequence[float], top_k: int) -> list[IndexMatch]:
        self.requested_top_k.append(top_k)
        return self.matches[:top_k]

    def hydrate(self, chunk_id: int) -> HydratedRecord | None:
        if chunk_id in self.failing:
            raise ConnectionError(f"row {chunk_id} unavailable")
        return self.rows.get(chunk_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedder() -> VocabEmbedder:
    return VocabEmbedder()


@pytest.fixture
def embedder_factory() -> type[VocabEmbedder]:
    """The fake embedder class, for tests that build their own instances."""
    return VocabEmbedder


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "memory.json"


@pytest.fixture
def store(store_path: Path) -> MemoryStore:
    return MemoryStore(store_path)


@pytest.fixture
def sweden_store(store: MemoryStore, embedder: VocabEmbedder) -> MemoryStore:
    text = "Stockholm is the capital of Sweden."
    store.add_chunks([text], embedder.embed_documents([text]))
    return store


@pytest.fixture
def make_index() -> Callable[..., FakeIndex]:
    """Factory building a ``FakeIndex`` from ``(id, score, text)`` triples in rank order."""
    return _build_index


def _build_index(entries: list[tuple[int, float, str]], **kwargs: Any) -> FakeIndex:
    matches: list[IndexMatch] = [{"id": cid, "score": score} for cid, score, _ in entries]
    rows: dict[int, HydratedRecord | None] = {cid: {"text": text, "meta": {"n": cid}} for cid, _, text in entries}
    return FakeIndex(matches, rows, **kwargs)
