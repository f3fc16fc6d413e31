"""
MiniRAG - IngestionPipeline
============================
Reads raw text, cleans it, splits it with the fixed-size sliding window
and persists the embedded chunks into the configured store.

Key design decisions:
    • **Dependency Injection** – receives the store + embedder.
    • **Dedup before embedding** – chunk texts whose content hash is
      already stored (or repeated within the same document) are never
      sent to the embedder, so duplicates cost nothing and never add a
      second index entry.
    • **Concurrency** – files are processed in parallel via
      ``ThreadPoolExecutor`` (embedding calls are I/O-bound).  Stores
      serialise their own writes.

Usage:
    from minirag.src.core.ingestor import IngestionPipeline
    pipeline = IngestionPipeline(store, embedder)
    pipeline.ingest_text("Stockholm is the capital of Sweden.")
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Protocol

from minirag.config.settings import settings
from minirag.src.core.embeddings import Embedder, embed_documents
from minirag.src.core.models import ChunkMeta
from minirag.src.utils.logger import get_logger
from minirag.src.utils.text_utils import chunk_text, clean_text, content_hash

logger = get_logger(__name__)

# File extensions the pipeline knows how to read
_SUPPORTED_EXTENSIONS = {".txt", ".md"}

IngestSummary = dict[str, int]


class ChunkSink(Protocol):
    """Write side shared by ``MemoryStore`` and ``LanceChunkIndex``."""

    def known_hashes(self, hashes: Iterable[str]) -> set[str]: ...

    def add_chunks(self, texts: Sequence[str], vectors: Sequence[Sequence[float]], meta: ChunkMeta | None = None) -> list[int]: ...

    def count(self) -> int: ...


class IngestionPipeline:
    """
    End-to-end ingestion: clean → chunk → dedup → embed → store.

    Parameters
    ----------
    store
        A ``ChunkSink`` (``MemoryStore`` or ``LanceChunkIndex``).
    embedder
        An ``Embedder``-compatible model.
    chunk_size, overlap
        Sliding-window parameters.  Default to ``settings.CHUNK_SIZE`` /
        ``settings.CHUNK_OVERLAP``.
    max_workers
        Number of parallel threads for file processing.
    """

    def __init__(self, store: ChunkSink, embedder: Embedder, chunk_size: int | None = None, overlap: int | None = None, max_workers: int | None = None) -> None:
        self._store = store
        self._embedder = embedder
        self._chunk_size = settings.CHUNK_SIZE if chunk_size is None else chunk_size
        self._overlap = settings.CHUNK_OVERLAP if overlap is None else overlap
        self._max_workers = max_workers or settings.MAX_WORKERS

    # ══════════════════════════════════════════════════════════════════
    #  TEXT INGESTION
    # ══════════════════════════════════════════════════════════════════

    def ingest_text(self, text: str, meta: ChunkMeta | None = None) -> IngestSummary:
        """
        Chunk, embed and store one document.

        Returns
        -------
        dict
            ``chunks_added``, ``chunks_skipped``, ``total_chunks``.

        Raises
        ------
        ValueError
            If *text* is blank or yields no usable chunk.
        EmbeddingUnavailableError
            If the embedder fails; nothing is stored in that case.
        """
        clean = clean_text(text or "")
        if not clean:
            raise ValueError('Missing "text"')

        t_chunk = time.perf_counter()
        chunks = chunk_text(clean, self._chunk_size, self._overlap)
        chunk_ms = (time.perf_counter() - t_chunk) * 1000
        logger.info("INGEST text length=%d → %d chunk(s) in %.1fms.", len(clean), len(chunks), chunk_ms)

        if not chunks:
            raise ValueError("No usable text")

        fresh = self._drop_duplicates(chunks)
        skipped = len(chunks) - len(fresh)

        added: list[int] = []
        if fresh:
            t_embed = time.perf_counter()
            vectors = embed_documents(self._embedder, fresh)
            added = self._store.add_chunks(fresh, vectors, meta)
            embed_ms = (time.perf_counter() - t_embed) * 1000
            logger.info("INGEST embedded + stored %d chunk(s) in %.1fms.", len(added), embed_ms)

        # a concurrent writer may have stored the same text in the meantime
        skipped += len(fresh) - len(added)
        return {"chunks_added": len(added), "chunks_skipped": skipped, "total_chunks": self._store.count()}


    def _drop_duplicates(self, chunks: list[str]) -> list[str]:
        """Remove chunks repeated within *chunks* or already stored."""
        digests = [content_hash(c) for c in chunks]
        stored = self._store.known_hashes(digests)

        fresh: list[str] = []
        seen: set[str] = set(stored)
        for chunk, digest in zip(chunks, digests):
            if digest in seen:
                logger.debug("  Duplicate chunk skipped: %.60s…", chunk.replace("\n", " "))
                continue
            seen.add(digest)
            fresh.append(chunk)
        return fresh

    # ══════════════════════════════════════════════════════════════════
    #  FILE INGESTION
    # ══════════════════════════════════════════════════════════════════

    def ingest_files(self, paths: Iterable[Path | str]) -> dict[str, Any]:
        """
        Ingest several text files in parallel.

        A file that cannot be read or embedded is logged and counted in
        ``files_failed``; the remaining files are still processed.

        Returns
        -------
        dict
            ``total_files``, ``files_processed``, ``files_failed``,
            ``chunks_added``, ``chunks_skipped``, ``elapsed_seconds``.
        """
        t_start = time.perf_counter()
        files = sorted(Path(p) for p in paths)
        unsupported = [f for f in files if f.suffix.lower() not in _SUPPORTED_EXTENSIONS]
        for f in unsupported:
            logger.warning("Unsupported file type skipped: %s", f.name)
        files = [f for f in files if f not in unsupported]

        chunks_added = 0
        chunks_skipped = 0
        files_processed = 0
        files_failed = len(unsupported)

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            future_to_path = {pool.submit(self._ingest_file, fp): fp for fp in files}

            for future in as_completed(future_to_path):
                filepath = future_to_path[future]
                try:
                    result = future.result()
                except Exception:
                    logger.exception("Failed to ingest file: %s", filepath.name)
                    files_failed += 1
                    continue
                chunks_added += result["chunks_added"]
                chunks_skipped += result["chunks_skipped"]
                files_processed += 1

        elapsed = time.perf_counter() - t_start
        logger.info("Ingestion complete — %d file(s) processed, %d failed, %d chunk(s) stored in %.2fs.", files_processed, files_failed, chunks_added, elapsed)
        return {
            "total_files": len(files) + len(unsupported),
            "files_processed": files_processed,
            "files_failed": files_failed,
            "chunks_added": chunks_added,
            "chunks_skipped": chunks_skipped,
            "elapsed_seconds": round(elapsed, 2),
        }


    def _ingest_file(self, filepath: Path) -> IngestSummary:
        logger.info("Processing file: %s", filepath.name)
        raw_text = filepath.read_text(encoding="utf-8")
        return self.ingest_text(raw_text, meta={"source_file": filepath.name})
