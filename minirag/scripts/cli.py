"""
MiniRAG - Command-Line Interface
=================================
Boundary layer around the retrieval core.  Validates user input, clamps
``k`` to ``[1, TOP_K_MAX]``, opens the store selected by
``RETRIEVAL_MODE`` and prints results.

Commands:
    ping                               Health check (mode, store size)
    ingest --text TEXT | FILE ...      Chunk, embed and store text
    ask QUESTION [--k N] [--json]      Retrieve context and answer
    list                               Show stored chunks (previews)
    delete ID                          Remove one chunk
    clear                              Remove every chunk
    export [--out FILE]                Dump the corpus (memory mode)
    import FILE                        Replace the corpus (memory mode)

Usage:
    minirag ingest --text "Stockholm is the capital of Sweden."
    minirag ask "What is the capital of Sweden?" --k 4
    python -m minirag.scripts.cli list
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from minirag.config.settings import settings
from minirag.src.core.exceptions import RAGError
from minirag.src.utils.logger import get_logger

logger = get_logger(__name__)

_EXIT_OK = 0
_EXIT_FAILURE = 1
_EXIT_USAGE = 2


# ── Boundary helpers ───────────────────────────────────────────────────

def clamp_top_k(raw: object) -> int:
    """
    Parse a user-supplied ``k`` and clamp it to ``[1, TOP_K_MAX]``.

    Missing or non-numeric values fall back to ``settings.TOP_K``.
    """
    try:
        k = int(raw)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return settings.TOP_K
    if k == 0:
        k = settings.TOP_K
    return max(1, min(settings.TOP_K_MAX, k))


def build_store() -> object:
    """Open the store selected by ``settings.RETRIEVAL_MODE``."""
    if settings.RETRIEVAL_MODE == "index":
        from minirag.src.database.vector_store import LanceChunkIndex

        return LanceChunkIndex()

    from minirag.src.database.memory_store import MemoryStore

    store = MemoryStore()
    store.load()
    return store


def _build_generator() -> object | None:
    if settings.GOOGLE_API_KEY is None:
        logger.info("GOOGLE_API_KEY not set — answers fall back to chunk summaries.")
        return None

    from minirag.src.core.generator import GeminiGenerator

    try:
        return GeminiGenerator()
    except Exception:
        logger.exception("Failed to initialise the chat model — answers fall back to chunk summaries.")
        return None


def _require_memory_mode(command: str) -> None:
    if settings.RETRIEVAL_MODE != "memory":
        raise RAGError(f"'{command}' is only supported with RETRIEVAL_MODE=memory.")


# ── Commands ───────────────────────────────────────────────────────────

def cmd_ping(args: argparse.Namespace) -> int:
    store = build_store()
    print(json.dumps({"ok": True, "time": datetime.now(timezone.utc).isoformat(), "mode": settings.RETRIEVAL_MODE, "chunks": store.count()}))  # type: ignore[attr-defined]
    return _EXIT_OK


def cmd_ingest(args: argparse.Namespace) -> int:
    from minirag.src.core.embeddings import build_embedder
    from minirag.src.core.ingestor import IngestionPipeline

    if not args.text and not args.files:
        print("Error: provide --text or at least one file.", file=sys.stderr)
        return _EXIT_USAGE

    try:
        meta = json.loads(args.meta) if args.meta else None
    except json.JSONDecodeError as exc:
        print(f"Error: --meta is not valid JSON: {exc}", file=sys.stderr)
        return _EXIT_USAGE
    if meta is not None and not isinstance(meta, dict):
        print("Error: --meta must be a JSON object.", file=sys.stderr)
        return _EXIT_USAGE

    pipeline = IngestionPipeline(store=build_store(), embedder=build_embedder())  # type: ignore[arg-type]

    if args.text:
        try:
            summary: dict[str, object] = dict(pipeline.ingest_text(args.text, meta=meta))
        except ValueError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return _EXIT_USAGE
    else:
        summary = pipeline.ingest_files(args.files)

    print(json.dumps({"ok": True, **summary}))
    return _EXIT_OK


def cmd_ask(args: argparse.Namespace) -> int:
    from minirag.src.core.embeddings import build_embedder
    from minirag.src.core.rag_engine import RAGManager

    question = (args.question or "").strip()
    if not question:
        print("Error: missing question.", file=sys.stderr)
        return _EXIT_USAGE
    k = clamp_top_k(args.k)

    rag = RAGManager(build_embedder(), build_store(), generator=_build_generator())  # type: ignore[arg-type]
    result = asyncio.run(rag.answer(question, k))

    if args.json:
        print(result.model_dump_json(indent=2))
        return _EXIT_OK

    for chunk in result.chunks:
        print(f"[{chunk['ref']}] score={chunk['score']:.4f}")
        print(chunk["text"])
        print("-" * 80)
    print(result.answer)
    return _EXIT_OK


def cmd_list(args: argparse.Namespace) -> int:
    store = build_store()
    items = store.list_previews()  # type: ignore[attr-defined]
    print(json.dumps({"total": len(items), "items": items}, ensure_ascii=False, indent=2))
    return _EXIT_OK


def cmd_delete(args: argparse.Namespace) -> int:
    store = build_store()
    if not store.delete(args.id):  # type: ignore[attr-defined]
        print(f"Chunk {args.id} not found.", file=sys.stderr)
        return _EXIT_FAILURE
    return _EXIT_OK


def cmd_clear(args: argparse.Namespace) -> int:
    store = build_store()
    store.clear()  # type: ignore[attr-defined]
    return _EXIT_OK


def cmd_export(args: argparse.Namespace) -> int:
    _require_memory_mode("export")
    payload = json.dumps(build_store().export_payload(), ensure_ascii=False, indent=2)  # type: ignore[attr-defined]
    if args.out:
        Path(args.out).write_text(payload, encoding="utf-8")
        logger.info("Corpus exported to %s", args.out)
    else:
        print(payload)
    return _EXIT_OK


def cmd_import(args: argparse.Namespace) -> int:
    _require_memory_mode("import")
    try:
        payload = json.loads(Path(args.file).read_text(encoding="utf-8"))
    except OSError as exc:
        print(f"Error: cannot read {args.file}: {exc}", file=sys.stderr)
        return _EXIT_USAGE
    except json.JSONDecodeError as exc:
        print(f"Error: {args.file} is not valid JSON: {exc}", file=sys.stderr)
        return _EXIT_USAGE

    total = build_store().import_payload(payload)  # type: ignore[attr-defined]
    print(json.dumps({"ok": True, "total": total}))
    return _EXIT_OK


# ── CLI Argument Parsing ───────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="minirag", description="MiniRAG — chunk, embed and retrieve text for grounded answers.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    pp = sub.add_parser("ping", help="Health check")
    pp.set_defaults(func=cmd_ping)

    pi = sub.add_parser("ingest", help="Chunk, embed and store text")
    pi.add_argument("files", nargs="*", help="Text files to ingest (.txt, .md)")
    pi.add_argument("--text", default=None, help="Raw text to ingest instead of files")
    pi.add_argument("--meta", default=None, help="JSON object attached to every chunk of --text")
    pi.set_defaults(func=cmd_ingest)

    pa = sub.add_parser("ask", help="Retrieve context and answer a question")
    pa.add_argument("question", help="Question to answer")
    pa.add_argument("--k", default=None, help=f"Chunks to retrieve (1–{settings.TOP_K_MAX}, default {settings.TOP_K})")
    pa.add_argument("--json", action="store_true", default=False, help="Print the full result as JSON")
    pa.set_defaults(func=cmd_ask)

    pl = sub.add_parser("list", help="List stored chunks")
    pl.set_defaults(func=cmd_list)

    pd = sub.add_parser("delete", help="Delete one chunk by id")
    pd.add_argument("id", type=int)
    pd.set_defaults(func=cmd_delete)

    pc = sub.add_parser("clear", help="Delete every chunk")
    pc.set_defaults(func=cmd_clear)

    pe = sub.add_parser("export", help="Export the corpus as JSON")
    pe.add_argument("--out", default=None, help="Write to this file instead of stdout")
    pe.set_defaults(func=cmd_export)

    pm = sub.add_parser("import", help="Replace the corpus from an exported JSON file")
    pm.add_argument("file")
    pm.set_defaults(func=cmd_import)

    return parser.parse_args(argv)


# ── Entry point ────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    func: Callable[[argparse.Namespace], int] = args.func
    try:
        return func(args)
    except RAGError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return _EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
