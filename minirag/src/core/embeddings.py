"""
MiniRAG - Embeddings
=====================
Boundary between MiniRAG and the embedding model.

``Embedder``
    Structural type satisfied by any LangChain embedding model
    (``embed_documents`` + ``embed_query``).
``embed_query`` / ``embed_documents``
    Call the embedder and validate what comes back.  Any failure,
    including an empty, ragged or non-finite vector, surfaces as
    ``EmbeddingUnavailableError`` so callers fail fast.
``build_embedder``
    Creates the Gemini embedder from ``settings``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from minirag.config.settings import settings
from minirag.src.core.exceptions import EmbeddingUnavailableError
from minirag.src.utils.logger import get_logger

logger = get_logger(__name__)

_EMBED_BATCH_SIZE = 64


@runtime_checkable
class Embedder(Protocol):
    """Structural type for any LangChain-compatible embedding model."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    def embed_query(self, text: str) -> list[float]: ...


def _validate_vector(vector: object, expected_dim: int | None = None) -> list[float]:
    """Return *vector* as a list of floats or raise ``EmbeddingUnavailableError``."""
    if vector is None or isinstance(vector, (str, bytes)):
        raise EmbeddingUnavailableError(f"Embedder returned a malformed vector: {type(vector).__name__}")

    try:
        values = [float(x) for x in vector]  # type: ignore[union-attr]
    except (TypeError, ValueError) as exc:
        raise EmbeddingUnavailableError("Embedder returned non-numeric values.") from exc

    if not values:
        raise EmbeddingUnavailableError("Embedder returned an empty vector.")

    if not all(math.isfinite(x) for x in values):
        raise EmbeddingUnavailableError("Embedder returned non-finite values.")
    if expected_dim is not None and len(values) != expected_dim:
        raise EmbeddingUnavailableError(f"Embedder returned {len(values)} dimensions, expected {expected_dim}.")
    return values


def embed_query(embedder: Embedder | None, text: str) -> list[float]:
    """Embed a single query string."""
    if embedder is None:
        raise EmbeddingUnavailableError("No embedder configured.")

    try:
        vector = embedder.embed_query(text)
    except EmbeddingUnavailableError:
        raise
    except Exception as exc:
        logger.error("Failed to embed query: %s", exc)
        raise EmbeddingUnavailableError(f"Embedding failed: {exc}") from exc

    return _validate_vector(vector)


def embed_documents(embedder: Embedder | None, texts: Sequence[str]) -> list[list[float]]:
    """
    Embed *texts* in batches of ``_EMBED_BATCH_SIZE``.

    All returned vectors must share one dimension.
    """
    if embedder is None:
        raise EmbeddingUnavailableError("No embedder configured.")

    vectors: list[list[float]] = []
    for i in range(0, len(texts), _EMBED_BATCH_SIZE):
        batch = list(texts[i : i + _EMBED_BATCH_SIZE])
        try:
            raw = embedder.embed_documents(batch)
        except Exception as exc:
            logger.error("Embedding batch %d–%d failed: %s", i, i + len(batch) - 1, exc)
            raise EmbeddingUnavailableError(f"Embedding failed: {exc}") from exc

        if raw is None or len(raw) != len(batch):
            raise EmbeddingUnavailableError(f"Embedder returned {0 if raw is None else len(raw)} vectors for {len(batch)} texts.")

        expected = len(vectors[0]) if vectors else None
        for vec in raw:
            clean = _validate_vector(vec, expected)
            expected = len(clean)
            vectors.append(clean)

    return vectors


def build_embedder() -> Embedder:
    """
    Initialise the Gemini embedding model via LangChain.

    Raises
    ------
    EmbeddingUnavailableError
        If ``GOOGLE_API_KEY`` is not configured or the client cannot be built.
    """
    if settings.GOOGLE_API_KEY is None:
        raise EmbeddingUnavailableError("GOOGLE_API_KEY is not set — cannot create the embedding model.")

    try:
        from langchain_google_genai import GoogleGenerativeAIEmbeddings

        embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    except Exception as exc:
        logger.exception("Failed to initialise embedding model.")
        raise EmbeddingUnavailableError(f"Cannot initialise embedding model '{settings.EMBEDDING_MODEL}': {exc}") from exc

    logger.info("Embedder initialised: %s", settings.EMBEDDING_MODEL)
    return embedder
