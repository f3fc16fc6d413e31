"""Tests for the ingestion pipeline."""

from unittest.mock import MagicMock

import pytest

from minirag.src.core.exceptions import EmbeddingUnavailableError
from minirag.src.core.ingestor import IngestionPipeline


class TestIngestText:
    def test_chunks_embeds_and_stores(self, store, embedder):
        pipeline = IngestionPipeline(store, embedder, chunk_size=20, overlap=5)
        summary = pipeline.ingest_text("Stockholm is the capital of Sweden. Oslo is the capital of Norway.", meta={"lang": "en"})

        assert summary["chunks_added"] == store.count() == summary["total_chunks"]
        assert summary["chunks_skipped"] == 0
        assert all(chunk.meta == {"lang": "en"} for chunk in store.list_all())

    def test_duplicates_are_not_re_embedded(self, store, embedder):
        pipeline = IngestionPipeline(store, embedder)
        pipeline.ingest_text("Stockholm is the capital of Sweden.")
        summary = pipeline.ingest_text("Stockholm is the capital of Sweden.")

        assert summary == {"chunks_added": 0, "chunks_skipped": 1, "total_chunks": 1}
        assert len(embedder.document_calls) == 1

    def test_repeated_chunks_within_one_document_stored_once(self, store, embedder):
        pipeline = IngestionPipeline(store, embedder, chunk_size=4, overlap=0)
        summary = pipeline.ingest_text("abcdabcdabcd")

        assert summary["chunks_added"] == 1
        assert summary["chunks_skipped"] == 2
        assert embedder.document_calls == [["abcd"]]

    @pytest.mark.parametrize("text", ["", "   \n  "])
    def test_blank_text_rejected(self, store, embedder, text):
        with pytest.raises(ValueError, match="Missing"):
            IngestionPipeline(store, embedder).ingest_text(text)

    @pytest.mark.parametrize("size", [0, -1])
    def test_explicit_non_positive_chunk_size_rejected(self, store, embedder, size):
        with pytest.raises(ValueError, match="chunk_size"):
            IngestionPipeline(store, embedder, chunk_size=size).ingest_text("some text")
        assert embedder.document_calls == []

    def test_embedding_failure_stores_nothing(self, store):
        broken = MagicMock()
        broken.embed_documents.side_effect = RuntimeError("boom")

        with pytest.raises(EmbeddingUnavailableError):
            IngestionPipeline(store, broken).ingest_text("some text")
        assert store.count() == 0


class TestIngestFiles:
    def test_mixed_files(self, store, embedder, tmp_path):
        (tmp_path / "a.txt").write_text("Stockholm is the capital of Sweden.", encoding="utf-8")
        (tmp_path / "b.md").write_text("# Norway\nOslo is the capital of Norway.", encoding="utf-8")
        (tmp_path / "empty.txt").write_text("   ", encoding="utf-8")
        (tmp_path / "image.png").write_bytes(b"\x89PNG")

        pipeline = IngestionPipeline(store, embedder, max_workers=2)
        summary = pipeline.ingest_files(sorted(tmp_path.iterdir()))

        assert summary["total_files"] == 4
        assert summary["files_processed"] == 2
        assert summary["files_failed"] == 2
        assert summary["chunks_added"] == 2
        assert {chunk.meta["source_file"] for chunk in store.list_all()} == {"a.txt", "b.md"}
