"""
MiniRAG - MemoryStore
======================
In-memory chunk corpus persisted to a single JSON file.  This is the
candidate source for ``RETRIEVAL_MODE="memory"``.

File format (``memory.json``)::

    {"nextId": int, "items": [{"id": int, "text": str, "embedding": [float, ...], "meta": {...}}, ...]}

Design decisions:
  • **Explicit lifecycle** — ``load()`` at startup, ``save()`` after every
    mutation, ``clear()`` removes the file.  No module-level state.
  • **Copy-on-read** — ``list_all()`` returns a tuple snapshot taken under
    the lock.  Chunks are only appended after they are embedded, so a scan
    never sees a half-ingested chunk.
  • **Monotonic ids** — ``nextId`` only grows; deleted ids are not reused.
  • **Content-hash dedup** — identical chunk texts are stored once.

Usage:
    store = MemoryStore()
    store.load()
    store.add_chunks(["some text"], [[0.1, 0.2, ...]])
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from minirag.config.settings import settings
from minirag.src.core.exceptions import DimensionMismatchError, InvalidStoreFileError
from minirag.src.core.models import Chunk, ChunkMeta
from minirag.src.utils.logger import get_logger
from minirag.src.utils.text_utils import content_hash, preview

logger = get_logger(__name__)

StorePayload = dict[str, Any]


class MemoryStore:
    """
    Brute-force corpus with JSON persistence.

    Parameters
    ----------
    path
        Override the persistence file.  Defaults to ``settings.MEMORY_FILE``.
    """

    __slots__ = ("_path", "_items", "_hashes", "_next_id", "_lock")

    def __init__(self, path: Path | str | None = None) -> None:
        self._path: Path = Path(path or settings.MEMORY_FILE)
        self._items: list[Chunk] = []
        self._hashes: set[str] = set()
        self._next_id: int = 1
        self._lock = threading.RLock()

    # ══════════════════════════════════════════════════════════════════
    #  LIFECYCLE
    # ══════════════════════════════════════════════════════════════════

    def load(self) -> int:
        """Load the corpus from disk.  Returns the number of chunks loaded."""
        if not self._path.exists():
            logger.info("No corpus file at %s — starting empty.", self._path)
            return 0

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
            items, next_id = self._parse_payload(payload)
        except (json.JSONDecodeError, OSError, InvalidStoreFileError) as exc:
            logger.warning("Corrupt corpus file %s — starting empty: %s", self._path, exc)
            return 0

        with self._lock:
            self._replace(items, next_id)
        logger.info("Loaded %d chunks from disk.", len(items))
        return len(items)


    def save(self) -> None:
        """Persist the corpus to disk."""
        with self._lock:
            payload = self.export_payload()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        logger.debug("Corpus saved to %s (%d chunks).", self._path, len(payload["items"]))


    def clear(self) -> None:
        """Drop every chunk, reset the id counter and delete the file."""
        with self._lock:
            self._replace([], 1)
        self._path.unlink(missing_ok=True)
        logger.info("Corpus cleared.")

    # ══════════════════════════════════════════════════════════════════
    #  READ SIDE
    # ══════════════════════════════════════════════════════════════════

    def list_all(self) -> tuple[Chunk, ...]:
        """Return a consistent snapshot of every chunk in insertion order."""
        with self._lock:
            return tuple(self._items)


    def get(self, chunk_id: int) -> Chunk | None:
        with self._lock:
            return next((chunk for chunk in self._items if chunk.id == chunk_id), None)


    def list_previews(self, max_chars: int | None = None) -> list[dict[str, int | str]]:
        """Return ``{id, idx, preview}`` rows for listing."""
        limit = settings.PREVIEW_CHARS if max_chars is None else max_chars
        return [{"id": chunk.id, "idx": idx, "preview": preview(chunk.text, limit)} for idx, chunk in enumerate(self.list_all())]


    def known_hashes(self, hashes: Iterable[str]) -> set[str]:
        """Return the subset of *hashes* whose text is already stored."""
        with self._lock:
            return {h for h in hashes if h in self._hashes}


    def size(self) -> int:
        with self._lock:
            return len(self._items)


    count = size

    def __len__(self) -> int:
        return self.size()

    # ══════════════════════════════════════════════════════════════════
    #  WRITE SIDE
    # ══════════════════════════════════════════════════════════════════

    def add_chunks(self, texts: Sequence[str], vectors: Sequence[Sequence[float]], meta: ChunkMeta | None = None) -> list[int]:
        """
        Append embedded chunks and persist.

        Texts already stored (by content hash) are skipped.  Every vector
        must match the corpus dimension.

        Returns
        -------
        list[int]
            Ids assigned to the newly stored chunks.

        Raises
        ------
        ValueError
            If ``texts`` and ``vectors`` have mismatched lengths, or a
            text is blank.  Nothing is stored in that case.
        DimensionMismatchError
            If a vector's length differs from the stored embeddings.
        """
        if len(texts) != len(vectors):
            raise ValueError(f"Length mismatch: {len(texts)} texts vs {len(vectors)} vectors.")

        with self._lock:
            dim = len(self._items[0].embedding) if self._items else None
            next_id = self._next_id
            digests: set[str] = set()
            fresh: list[Chunk] = []

            # validate the whole batch before touching the corpus
            for text, vector in zip(texts, vectors):
                digest = content_hash(text.strip())
                if digest in self._hashes or digest in digests:
                    logger.debug("Duplicate chunk skipped (%s).", digest)
                    continue
                if dim is not None and len(vector) != dim:
                    raise DimensionMismatchError(expected=dim, actual=len(vector))
                dim = len(vector)

                fresh.append(Chunk(id=next_id, text=text, embedding=list(vector), meta=meta))
                digests.add(digest)
                next_id += 1

            if fresh:
                self._items.extend(fresh)
                self._hashes.update(digests)
                self._next_id = next_id
                self.save()

        logger.info("Added %d chunk(s). Corpus now has %d chunks.", len(fresh), self.size())
        return [chunk.id for chunk in fresh]


    def delete(self, chunk_id: int) -> bool:
        """Remove one chunk.  Returns ``True`` if it existed."""
        with self._lock:
            for idx, chunk in enumerate(self._items):
                if chunk.id == chunk_id:
                    del self._items[idx]
                    self._hashes.discard(content_hash(chunk.text))
                    self.save()
                    logger.info("Deleted chunk %d.", chunk_id)
                    return True
        return False

    # ══════════════════════════════════════════════════════════════════
    #  IMPORT / EXPORT
    # ══════════════════════════════════════════════════════════════════

    def export_payload(self) -> StorePayload:
        """Return the ``{"nextId", "items"}`` payload written to disk."""
        with self._lock:
            return {"nextId": self._next_id, "items": [chunk.model_dump(exclude_none=True) for chunk in self._items]}


    def import_payload(self, payload: object) -> int:
        """
        Replace the corpus with *payload* and persist it.

        Raises
        ------
        InvalidStoreFileError
            If the payload is not ``{"nextId"?: int, "items": [...]}`` with
            valid chunk rows.
        """
        items, next_id = self._parse_payload(payload)
        with self._lock:
            self._replace(items, next_id)
            self.save()
        logger.info("Imported %d chunks (nextId=%d).", len(items), next_id)
        return len(items)

    # ── Internal helpers ───────────────────────────────────────────────

    @staticmethod
    def _parse_payload(payload: object) -> tuple[list[Chunk], int]:
        if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
            raise InvalidStoreFileError("Invalid file format: expected an object with an 'items' list.")

        try:
            items = [Chunk.model_validate(row) for row in payload["items"]]
        except ValidationError as exc:
            raise InvalidStoreFileError(f"Invalid chunk row: {exc}") from exc

        ids = [chunk.id for chunk in items]
        if len(ids) != len(set(ids)):
            raise InvalidStoreFileError("Invalid file format: duplicate chunk ids.")

        dims = {len(chunk.embedding) for chunk in items}
        if len(dims) > 1:
            raise InvalidStoreFileError(f"Invalid file format: mixed embedding dimensions {sorted(dims)}.")

        next_id = payload.get("nextId")
        if not isinstance(next_id, int) or next_id < 1:
            next_id = (items[-1].id if items else 0) + 1
        # never hand out an id that is already taken
        next_id = max(next_id, max(ids, default=0) + 1)
        return items, next_id


    def _replace(self, items: list[Chunk], next_id: int) -> None:
        self._items = list(items)
        self._hashes = {content_hash(chunk.text) for chunk in items}
        self._next_id = next_id


    def __repr__(self) -> str:
        return f"MemoryStore(path='{self._path}', chunks={self.size()}, next_id={self._next_id})"
