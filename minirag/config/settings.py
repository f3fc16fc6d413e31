"""
MiniRAG - Centralized Configuration
====================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Secrets
-------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr``.  It is optional so the
  brute-force corpus, listing and export commands work offline; the
  embedding factory refuses to start without it.

Retrieval
---------
``RETRIEVAL_MODE`` selects the candidate source for the whole deployment:
``"memory"`` scans the JSON-backed corpus, ``"index"`` queries the LanceDB
approximate index and re-ranks the wider pool lexically.

The keyword-boost constants are tuning values, not invariants, and can be
overridden like every other field.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Attributes
    ----------
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    GOOGLE_API_KEY : SecretStr | None
        API key for Google AI Studio (Gemini embeddings + generation).
    RETRIEVAL_MODE : Literal["memory", "index"]
        Candidate source used by the retrieval orchestrator.
    CHUNK_SIZE : int
        Sliding-window width (characters) used during ingestion.
    CHUNK_OVERLAP : int
        Characters shared by consecutive windows.
    TOP_K : int
        Default number of chunks returned per query.
    TOP_K_MAX : int
        Upper bound applied to ``k`` at the command-line boundary.
    CANDIDATE_POOL_MIN : int
        Minimum pool requested from the approximate index before re-ranking.
    KEYWORD_BOOST_PER_HIT : float
        Score added per query keyword found in a candidate's text.
    KEYWORD_BOOST_CAP : float
        Maximum total keyword boost per candidate.
    KEYWORD_MIN_TOKEN_LEN : int
        Query tokens shorter than this are ignored by the re-ranker.
    EMBEDDING_DIM : int
        Width of the LanceDB vector column.
    MAX_WORKERS : int
        Thread pool size for multi-file ingestion.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    MEMORY_FILE: Path = DATA_DIR / "memory.json"
    LANCEDB_PATH: Path = DATA_DIR / "lancedb"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── API Keys ───────────────────────────────────────────────────────
    GOOGLE_API_KEY: SecretStr | None = None

    # ── Retrieval ──────────────────────────────────────────────────────
    RETRIEVAL_MODE: Literal["memory", "index"] = "memory"
    TOP_K: int = 4
    TOP_K_MAX: int = 8
    CANDIDATE_POOL_MIN: int = 12
    KEYWORD_BOOST_PER_HIT: float = 0.05
    KEYWORD_BOOST_CAP: float = 0.2
    KEYWORD_MIN_TOKEN_LEN: int = 3

    # ── Ingestion Parameters ───────────────────────────────────────────
    CHUNK_SIZE: int = 800
    CHUNK_OVERLAP: int = 120
    PREVIEW_CHARS: int = 200

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    EMBEDDING_DIM: int = 3072
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.2

    # ── LanceDB ────────────────────────────────────────────────────────
    LANCEDB_TABLE_NAME: str = "minirag_chunks"

    # ── Concurrency ────────────────────────────────────────────────────
    MAX_WORKERS: int = 4

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("CHUNK_SIZE", "TOP_K", "TOP_K_MAX", "CANDIDATE_POOL_MIN", "EMBEDDING_DIM")
    @classmethod
    def _strictly_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"value must be ≥ 1, got {v}")
        return v


    @field_validator("CHUNK_OVERLAP")
    @classmethod
    def _overlap_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"CHUNK_OVERLAP must be ≥ 0, got {v}")
        return v


    @field_validator("KEYWORD_BOOST_PER_HIT", "KEYWORD_BOOST_CAP")
    @classmethod
    def _boost_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"keyword boost values must be ≥ 0, got {v}")
        return v


    @field_validator("MAX_WORKERS")
    @classmethod
    def _workers_range(cls, v: int) -> int:
        if not 1 <= v <= 16:
            raise ValueError(f"MAX_WORKERS must be 1–16, got {v}")
        return v

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from minirag.config.settings import settings
settings = Settings()
