"""
MiniRAG - Text Utilities
=========================
Helper functions for text cleaning, sliding-window chunking, query
tokenisation and content hashing.

These utilities are consumed by the ``IngestionPipeline``, the stores
and the ``KeywordReranker`` and must remain stateless and side-effect-free.
"""

from __future__ import annotations

import hashlib
import re
import unicodedata
from collections.abc import Iterable


# ── Non-printable character pattern ────────────────────────────────────
# Matches control characters (C0/C1), except \n, \r, \t which we handle
# separately. Also catches BOM, zero-width chars, soft hyphens, etc.
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\u200b\u200c\u200d\u200e\u200f\u00ad\u2060\ufffe]")

# Anything that is not a letter or digit separates query tokens
_TOKEN_SPLIT_RE = re.compile(r"[\W_]+")


# ── Public API ─────────────────────────────────────────────────────────

def clean_text(text: str) -> str:
    """
    Sanitise raw document text before chunking.

    Steps:
        1. Unicode NFC normalisation (canonical composition).
        2. Strip non-printable / zero-width characters and formatting
           artifacts (BOM, soft hyphens, directional marks).
        3. Collapse runs of horizontal whitespace into a single space,
           *preserving* newlines.
        4. Strip leading / trailing whitespace from every line.
        5. Collapse 3+ consecutive blank lines to 2.
    """
    text = unicodedata.normalize("NFC", text)
    text = _NON_PRINTABLE_RE.sub("", text)
    text = re.sub(r"[^\S\n]+", " ", text)
    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def chunk_text(text: str, chunk_size: int = 800, overlap: int = 120) -> list[str]:
    """
    Split *text* into overlapping fixed-size windows.

    Each window ``[i, min(i + chunk_size, len(text)))`` is trimmed and kept
    only if something remains.  The cursor then moves to
    ``i + chunk_size - overlap``; when the overlap is so large that this
    would not move forward, the next window starts where the previous one
    ended, so the loop always finishes in ``ceil(len(text) / step)`` steps.

    Args:
        text:       Source text (may be empty).
        chunk_size: Window width in characters, must be > 0.
        overlap:    Characters shared by consecutive windows, must be ≥ 0.

    Returns:
        Trimmed, non-empty chunks in source order.

    Raises:
        ValueError: If ``chunk_size`` ≤ 0 or ``overlap`` < 0.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be > 0, got {chunk_size}")
    if overlap < 0:
        raise ValueError(f"overlap must be ≥ 0, got {overlap}")

    chunks: list[str] = []
    length = len(text)
    start = 0

    while start < length:
        end = min(start + chunk_size, length)
        piece = text[start:end].strip()
        if piece:
            chunks.append(piece)
        if end == length:
            break

        next_start = max(0, end - overlap)
        if next_start <= start:
            next_start = end
        start = next_start

    return chunks


def tokenize_query(query: str, stop_words: Iterable[str] = (), min_len: int = 3) -> list[str]:
    """
    Lower-case *query* and split it on non-alphanumeric characters.

    Tokens shorter than *min_len* and members of *stop_words* are dropped.
    Repeated tokens are kept once, in first-seen order.

    Examples::

        tokenize_query("What is the capital of Sweden?", STOP_WORDS)
        → ["capital", "sweden"]
    """
    stop = set(stop_words)
    seen: set[str] = set()
    tokens: list[str] = []

    for token in _TOKEN_SPLIT_RE.split(query.lower()):
        if len(token) < min_len or token in stop or token in seen:
            continue
        seen.add(token)
        tokens.append(token)

    return tokens


def content_hash(text: str) -> str:
    """Return the MD5 hex digest used to detect duplicate chunks."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def preview(text: str, max_chars: int = 200) -> str:
    """Truncate *text* to *max_chars* characters, marking the cut with ``…``."""
    return text if len(text) <= max_chars else text[:max_chars] + "…"
