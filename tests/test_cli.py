"""Tests for the command-line boundary layer."""

import json

import pytest

from minirag.config.prompt_templates import NO_CONTEXT_RESPONSE
from minirag.config.settings import settings
from minirag.scripts import cli


@pytest.fixture
def memory_env(monkeypatch, tmp_path, embedder_factory):
    """Point the CLI at a throw-away memory store with a fake embedder."""
    monkeypatch.setattr(settings, "RETRIEVAL_MODE", "memory")
    monkeypatch.setattr(settings, "MEMORY_FILE", tmp_path / "memory.json")
    monkeypatch.setattr(settings, "GOOGLE_API_KEY", None)
    monkeypatch.setattr("minirag.src.core.embeddings.build_embedder", embedder_factory)
    return tmp_path


class TestClampTopK:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(None, 4), ("abc", 4), (0, 4), ("3", 3), (-2, 1), (100, 8), (8, 8)],
    )
    def test_clamps(self, raw, expected):
        assert cli.clamp_top_k(raw) == expected


class TestCommands:
    def test_ask_on_empty_store(self, memory_env, capsys):
        assert cli.main(["ask", "What is the capital of Sweden?", "--json"]) == 0
        result = json.loads(capsys.readouterr().out)
        assert result["answer"] == NO_CONTEXT_RESPONSE
        assert result["chunks"] == []

    def test_ingest_then_ask(self, memory_env, capsys):
        assert cli.main(["ingest", "--text", "Stockholm is the capital of Sweden.", "--meta", '{"lang": "en"}']) == 0
        capsys.readouterr()

        assert cli.main(["ask", "What is the capital of Sweden?", "--k", "99", "--json"]) == 0
        result = json.loads(capsys.readouterr().out)
        assert result["top_k"] == 8
        assert result["chunks"][0]["ref"] == "#1"
        assert result["citations"][0]["meta"] == {"lang": "en"}

    def test_ingest_rejects_non_object_meta(self, memory_env):
        assert cli.main(["ingest", "--text", "hello", "--meta", "[1, 2]"]) == 2

    def test_ingest_requires_input(self, memory_env):
        assert cli.main(["ingest"]) == 2

    def test_blank_question_is_usage_error(self, memory_env):
        assert cli.main(["ask", "   "]) == 2

    def test_list_delete_and_export(self, memory_env, capsys):
        cli.main(["ingest", "--text", "Oslo is the capital of Norway."])
        capsys.readouterr()

        assert cli.main(["list"]) == 0
        assert json.loads(capsys.readouterr().out)["total"] == 1

        out = memory_env / "export.json"
        assert cli.main(["export", "--out", str(out)]) == 0
        assert json.loads(out.read_text(encoding="utf-8"))["nextId"] == 2

        assert cli.main(["delete", "1"]) == 0
        assert cli.main(["delete", "1"]) == 1

        assert cli.main(["import", str(out)]) == 0
        assert json.loads(capsys.readouterr().out)["total"] == 1

    def test_clear_removes_corpus(self, memory_env):
        cli.main(["ingest", "--text", "Oslo is the capital of Norway."])
        assert cli.main(["clear"]) == 0
        assert not (memory_env / "memory.json").exists()

    def test_export_requires_memory_mode(self, memory_env, monkeypatch):
        monkeypatch.setattr(settings, "RETRIEVAL_MODE", "index")
        assert cli.main(["export"]) == 1

    def test_import_missing_file_is_usage_error(self, memory_env, capsys):
        assert cli.main(["import", str(memory_env / "missing.json")]) == 2
        assert "cannot read" in capsys.readouterr().err
