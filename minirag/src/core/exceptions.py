"""MiniRAG error hierarchy."""

from __future__ import annotations


class RAGError(Exception):
    """Base class for every error raised by MiniRAG."""


class DimensionMismatchError(RAGError, ValueError):
    """Two vectors that must share a dimension do not."""

    def __init__(self, expected: int, actual: int, message: str | None = None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(message or f"Embedding dimension mismatch: expected {expected}, got {actual}.")


class EmbeddingUnavailableError(RAGError, RuntimeError):
    """The embedder is missing, failed, or returned a malformed vector."""


class InvalidStoreFileError(RAGError, ValueError):
    """An imported corpus payload does not have the expected shape."""
