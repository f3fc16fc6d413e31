"""Tests for embedder validation and the Gemini generator wrapper."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from minirag.config.prompt_templates import SYSTEM_PROMPT
from minirag.config.settings import settings
from minirag.src.core.embeddings import build_embedder, embed_documents, embed_query
from minirag.src.core.exceptions import EmbeddingUnavailableError
from minirag.src.core.generator import GeminiGenerator, naive_answer
from minirag.src.core.models import ScoredCandidate


class TestEmbedQuery:
    def test_returns_floats(self):
        embedder = MagicMock()
        embedder.embed_query.return_value = [1, 2, 3]
        assert embed_query(embedder, "hi") == [1.0, 2.0, 3.0]

    def test_missing_embedder(self):
        with pytest.raises(EmbeddingUnavailableError):
            embed_query(None, "hi")

    @pytest.mark.parametrize("bad", [None, "0.1,0.2", [], ["a", "b"], [float("nan")]])
    def test_malformed_vector_rejected(self, bad):
        embedder = MagicMock()
        embedder.embed_query.return_value = bad
        with pytest.raises(EmbeddingUnavailableError):
            embed_query(embedder, "hi")

    def test_client_error_wrapped(self):
        embedder = MagicMock()
        embedder.embed_query.side_effect = TimeoutError("slow")
        with pytest.raises(EmbeddingUnavailableError, match="slow"):
            embed_query(embedder, "hi")


class TestEmbedDocuments:
    def test_batches_large_inputs(self):
        embedder = MagicMock()
        embedder.embed_documents.side_effect = lambda batch: [[1.0, 0.0] for _ in batch]

        vectors = embed_documents(embedder, [f"t{i}" for i in range(130)])

        assert len(vectors) == 130
        assert [len(call.args[0]) for call in embedder.embed_documents.call_args_list] == [64, 64, 2]

    def test_count_mismatch_rejected(self):
        embedder = MagicMock()
        embedder.embed_documents.return_value = [[1.0]]
        with pytest.raises(EmbeddingUnavailableError):
            embed_documents(embedder, ["a", "b"])

    def test_inconsistent_dimensions_rejected(self):
        embedder = MagicMock()
        embedder.embed_documents.return_value = [[1.0, 0.0], [1.0]]
        with pytest.raises(EmbeddingUnavailableError):
            embed_documents(embedder, ["a", "b"])


def test_build_embedder_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_API_KEY", None)
    with pytest.raises(EmbeddingUnavailableError):
        build_embedder()


class TestGenerator:
    @pytest.mark.asyncio
    async def test_sends_system_and_context_prompt(self):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=MagicMock(content="Stockholm [#1]"))

        answer = await GeminiGenerator(llm=llm).generate("Capital?", "[#1] Stockholm is the capital of Sweden.")

        assert answer == "Stockholm [#1]"
        messages = llm.ainvoke.await_args.args[0]
        assert messages[0].content == SYSTEM_PROMPT
        assert "[#1] Stockholm is the capital of Sweden." in messages[1].content
        assert "Capital?" in messages[1].content

    def test_naive_answer_lists_chunks_in_rank_order(self):
        candidates = [ScoredCandidate(ref="#1", score=0.9, text="first", id=3), ScoredCandidate(ref="#2", score=0.5, text="second", id=1)]
        lines = naive_answer(candidates).splitlines()
        assert lines[1:] == ["• first [1]", "• second [2]"]
