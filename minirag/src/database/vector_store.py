"""
MiniRAG - LanceChunkIndex
==========================
LanceDB-backed approximate nearest-neighbour index.  This is the
candidate source for ``RETRIEVAL_MODE="index"``.

It provides:
  • Table creation with a strict PyArrow schema
  • Chunk insertion (vectors + text + JSON metadata) with content-hash dedup
  • Cosine nearest-neighbour queries returning ``{id, score}`` pairs
  • Per-id hydration of text and metadata

Design decisions:
  • **Singleton DB connection** — ``_get_connection()`` caches the
    ``lancedb.DBConnection`` per path to avoid file-lock issues.
  • **Fixed-size vector column** — the dimension is declared up front and
    every write and query is checked against it.
  • **Serialised writes** — id assignment and dedup happen under a lock,
    so concurrent ingestion never hands out the same id twice.

Usage:
    from minirag.src.database.vector_store import LanceChunkIndex

    index = LanceChunkIndex(embedding_dim=768)
    index.add_chunks(texts=[...], vectors=[...], meta={"source_file": "a.txt"})
    matches = index.query(query_vector, top_k=12)
    row = index.hydrate(matches[0]["id"])
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable, Sequence

import lancedb
import pyarrow as pa
import pyarrow.compute as pc

from minirag.config.settings import settings
from minirag.src.core.candidate_sources import HydratedRecord, IndexMatch
from minirag.src.core.exceptions import DimensionMismatchError
from minirag.src.core.models import ChunkMeta
from minirag.src.utils.logger import get_logger
from minirag.src.utils.text_utils import content_hash, preview

logger = get_logger(__name__)

# ── Constants ──────────────────────────────────────────────────────────
_DB_LOCK = threading.Lock()
_db_connection_cache: dict[str, lancedb.DBConnection] = {}


def chunk_schema(embedding_dim: int) -> pa.Schema:
    """Return the table schema for vectors of *embedding_dim* floats."""
    return pa.schema([
        pa.field("id", pa.int64()),
        pa.field("vector", pa.list_(pa.float32(), embedding_dim)),
        pa.field("text", pa.utf8()),
        pa.field("meta", pa.utf8()),
        pa.field("content_hash", pa.utf8()),
    ])


def _get_connection(db_path: str) -> lancedb.DBConnection:
    """
    Return a **singleton** ``lancedb.DBConnection`` for *db_path*.

    Thread-safe via ``_DB_LOCK``.
    """
    if db_path not in _db_connection_cache:
        with _DB_LOCK:
            if db_path not in _db_connection_cache:
                logger.info("Opening new LanceDB connection: %s", db_path)
                _db_connection_cache[db_path] = lancedb.connect(db_path)
    return _db_connection_cache[db_path]


class LanceChunkIndex:
    """
    Approximate index over a LanceDB table.

    Parameters
    ----------
    embedding_dim
        Vector width.  Defaults to ``settings.EMBEDDING_DIM``.
    db_path
        Override the database directory.  Defaults to ``settings.LANCEDB_PATH``.
    table_name
        Override the table name.  Defaults to ``settings.LANCEDB_TABLE_NAME``.
    """

    __slots__ = ("_dim", "_db_path", "_table_name", "_write_lock", "db", "table")

    def __init__(self, embedding_dim: int | None = None, db_path: str | None = None, table_name: str | None = None) -> None:
        self._dim: int = embedding_dim or settings.EMBEDDING_DIM
        self._db_path: str = str(db_path or settings.LANCEDB_PATH)
        self._table_name: str = table_name or settings.LANCEDB_TABLE_NAME
        self._write_lock = threading.Lock()
        self.db: lancedb.DBConnection | None = None
        self.table: lancedb.table.Table | None = None
        self._connect()


    def _connect(self) -> None:
        """Open (or re-use) the LanceDB connection and initialise the table."""
        try:
            self.db = _get_connection(self._db_path)
            existing = self.db.table_names()

            if self._table_name in existing:
                self.table = self.db.open_table(self._table_name)
                logger.info("Opened existing table '%s' (%d rows).", self._table_name, self.table.count_rows())
            else:
                self.table = self.db.create_table(self._table_name, schema=chunk_schema(self._dim))
                logger.info("Created new table '%s' (dim=%d).", self._table_name, self._dim)

        except OSError as exc:
            logger.error("LanceDB filesystem error at %s: %s", self._db_path, exc)
            raise


    def _require_table(self) -> lancedb.table.Table:
        if self.table is None:
            raise RuntimeError("Vector table is not initialised. Call _connect() first.")
        return self.table


    def _check_dim(self, vector: Sequence[float]) -> None:
        if len(vector) != self._dim:
            raise DimensionMismatchError(expected=self._dim, actual=len(vector))

    # ══════════════════════════════════════════════════════════════════
    #  WRITE SIDE
    # ══════════════════════════════════════════════════════════════════

    def add_chunks(self, texts: Sequence[str], vectors: Sequence[Sequence[float]], meta: ChunkMeta | None = None) -> list[int]:
        """
        Insert embedded chunks, skipping texts that are already indexed.

        Returns
        -------
        list[int]
            Ids assigned to the newly stored chunks.

        Raises
        ------
        ValueError
            If ``texts`` and ``vectors`` have mismatched lengths.
        DimensionMismatchError
            If a vector does not have ``embedding_dim`` entries.
        """
        if len(texts) != len(vectors):
            raise ValueError(f"Length mismatch: {len(texts)} texts vs {len(vectors)} vectors.")
        for vector in vectors:
            self._check_dim(vector)

        table = self._require_table()
        meta_json = json.dumps(meta or {}, ensure_ascii=False)

        with self._write_lock:
            digests = [content_hash(text.strip()) for text in texts]
            seen = self.known_hashes(digests)
            next_id = self._next_id()

            records: list[dict[str, object]] = []
            for text, vector, digest in zip(texts, vectors, digests):
                if digest in seen:
                    continue
                seen.add(digest)
                records.append({"id": next_id, "vector": [float(x) for x in vector], "text": text.strip(), "meta": meta_json, "content_hash": digest})
                next_id += 1

            if records:
                try:
                    table.add(records)
                except OSError as exc:
                    logger.error("Failed to write records to LanceDB: %s", exc)
                    raise

        logger.info("Added %d chunk(s), skipped %d duplicate(s). Table '%s' now has %d rows.", len(records), len(texts) - len(records), self._table_name, self.count())
        return [int(r["id"]) for r in records]  # type: ignore[call-overload]


    def delete(self, chunk_id: int) -> bool:
        """Remove one chunk.  Returns ``True`` if it existed."""
        table = self._require_table()
        with self._write_lock:
            existed = table.count_rows(f"id = {int(chunk_id)}") > 0
            if existed:
                table.delete(f"id = {int(chunk_id)}")
                logger.info("Deleted chunk %d.", chunk_id)
        return existed


    def _next_id(self) -> int:
        # max(id) + 1: only an id deleted from the top of the range can come back
        table = self._require_table()
        if table.count_rows() == 0:
            return 1
        ids = table.to_arrow().column("id")
        return int(pc.max(ids).as_py()) + 1

    # ══════════════════════════════════════════════════════════════════
    #  READ SIDE
    # ══════════════════════════════════════════════════════════════════

    def query(self, vector: Sequence[float], top_k: int) -> list[IndexMatch]:
        """
        Return up to *top_k* nearest chunks as ``{"id", "score"}``.

        ``score`` is cosine similarity (``1 - cosine distance``).
        """
        self._check_dim(vector)
        table = self._require_table()

        rows = table.search([float(x) for x in vector]).distance_type("cosine").select(["id"]).limit(top_k).to_list()
        matches: list[IndexMatch] = [{"id": int(row["id"]), "score": 1.0 - float(row["_distance"])} for row in rows]
        logger.debug("Index query returned %d match(es) (limit=%d).", len(matches), top_k)
        return matches


    def hydrate(self, chunk_id: int) -> HydratedRecord | None:
        """Return ``{"text", "meta"}`` for *chunk_id*, or ``None`` if absent."""
        table = self._require_table()
        rows = table.search().where(f"id = {int(chunk_id)}").select(["text", "meta"]).limit(1).to_list()
        if not rows:
            return None

        row = rows[0]
        raw_meta = row.get("meta")
        meta = json.loads(raw_meta) if raw_meta else None
        return {"text": row.get("text") or "", "meta": meta or None}


    def known_hashes(self, hashes: Iterable[str]) -> set[str]:
        """Return the subset of *hashes* already present in the table."""
        wanted = sorted(set(hashes))
        if not wanted:
            return set()

        table = self._require_table()
        quoted = ", ".join(f"'{h}'" for h in wanted)
        rows = table.search().where(f"content_hash IN ({quoted})").select(["content_hash"]).limit(len(wanted)).to_list()
        return {row["content_hash"] for row in rows}


    def list_previews(self, max_chars: int | None = None) -> list[dict[str, int | str]]:
        """Return ``{id, idx, preview}`` rows ordered by id."""
        limit = settings.PREVIEW_CHARS if max_chars is None else max_chars
        table = self._require_table()
        rows = sorted(table.to_arrow().select(["id", "text"]).to_pylist(), key=lambda row: row["id"])
        return [{"id": int(row["id"]), "idx": idx, "preview": preview(row["text"], limit)} for idx, row in enumerate(rows)]


    def count(self) -> int:
        """Return the total number of rows in the table."""
        if self.table is None:
            return 0
        return self.table.count_rows()


    def drop_table(self) -> None:
        """Drop the table (used by ``clear``)."""
        if self.db is None:
            logger.warning("No database connection; nothing to drop.")
            return
        try:
            self.db.drop_table(self._table_name)
            self.table = None
            logger.info("Dropped table '%s'.", self._table_name)
        except ValueError:
            logger.warning("Table '%s' does not exist — nothing to drop.", self._table_name)
        except OSError as exc:
            logger.error("Filesystem error dropping table '%s': %s", self._table_name, exc)
            raise


    def clear(self) -> None:
        """Drop every chunk and recreate an empty table."""
        self.drop_table()
        self._connect()


    def __repr__(self) -> str:
        return f"LanceChunkIndex(db='{self._db_path}', table='{self._table_name}', dim={self._dim}, rows={self.count()})"
