"""Unit tests for the command-line interface.

``make_engine`` is monkeypatched so every command runs against the
in-memory store and keyword embeddings from ``conftest.py``.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from conftest import InMemoryVectorStore, KeywordEmbeddings, RecordingSleep

from reqsearch import cli
from reqsearch.engine import SearchEngine
from reqsearch.ingestion.models import ExtractedUnit
from reqsearch.retrieval.models import TextFileSource


@pytest.fixture()
def fake_engine(monkeypatch: pytest.MonkeyPatch, test_settings, store, embeddings, recording_sleep) -> SearchEngine:
    engine = SearchEngine(test_settings, embeddings=embeddings, store_factory=lambda: store, sleep=recording_sleep)
    monkeypatch.setattr(cli, "make_engine", lambda index_path: engine)
    return engine


async def _seed(engine: SearchEngine) -> None:
    ready = await engine.initialize()
    await ready.index_units(
        [
            ExtractedUnit(text="user login and authentication", source=TextFileSource(file_name="auth.txt")),
            ExtractedUnit(text="monthly invoice export", source=TextFileSource(file_name="billing.txt")),
        ]
    )


class TestParser:
    def test_search_defaults(self) -> None:
        args = cli.build_parser().parse_args(["search", "user login"])
        assert args.query == "user login"
        assert args.num_results == 5
        assert args.min_score == 0.0
        assert args.func is cli.cmd_search

    def test_index_flags(self) -> None:
        args = cli.build_parser().parse_args(["index", "-d", "docs", "-r", "--dry-run", "-f", "pdf,txt"])
        assert (args.directory, args.recursive, args.dry_run, args.file_types) == ("docs", True, True, "pdf,txt")

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestCommands:
    def test_status_on_empty_index(self, fake_engine: SearchEngine, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["status"]) == 0
        out = capsys.readouterr().out
        assert "Total chunks: 0" in out
        assert "No documents indexed yet" in out

    def test_search_on_empty_index_fails(self, fake_engine: SearchEngine, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["search", "anything"]) == 1
        assert "No documents in index" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_search_json(self, fake_engine: SearchEngine, capsys: pytest.CaptureFixture[str]) -> None:
        await _seed(fake_engine)
        # main() owns its own event loop, so call the command coroutine directly.
        args = cli.build_parser().parse_args(["search", "invoice", "--json", "-n", "1"])
        assert await cli.cmd_search(args) == 0
        payload = json.loads(capsys.readouterr().out)
        assert len(payload) == 1
        assert payload[0]["file_name"] == "billing.txt"
        assert payload[0]["type"] == "text"

    @pytest.mark.asyncio
    async def test_search_text_matches_display(self, fake_engine: SearchEngine, capsys: pytest.CaptureFixture[str]) -> None:
        await _seed(fake_engine)
        args = cli.build_parser().parse_args(["search", "user authentication", "--text-matches"])
        assert await cli.cmd_search(args) == 0
        out = capsys.readouterr().out
        assert "1. auth.txt" in out
        assert "Text matches: user, authentication" in out
        assert "No direct text matches found" in out

    def test_index_dry_run_lists_files(self, fake_engine: SearchEngine, tmp_path: Path, capsys: pytest.CaptureFixture[str], store: InMemoryVectorStore) -> None:
        docs = tmp_path / "docs"
        docs.mkdir()
        (docs / "a.txt").write_text("user login")
        (docs / "b.md").write_text("invoice")

        assert cli.main(["index", "-d", str(docs), "--dry-run"]) == 0

        out = capsys.readouterr().out
        assert "Found 2 documents" in out
        assert "Dry run complete" in out
        assert store.items == []

    def test_index_reports_failures_and_continues(
        self,
        fake_engine: SearchEngine,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
        store: InMemoryVectorStore,
    ) -> None:
        docs = tmp_path / "docs"
        docs.mkdir()
        (docs / "good.txt").write_text("user login authentication")
        (docs / "bad.xlsx").write_bytes(b"not a workbook")

        assert cli.main(["index", "-d", str(docs), "-y", "-f", "txt,xlsx"]) == 0

        out = capsys.readouterr().out
        assert "FAILED" in out
        assert "Successfully indexed: 1 files" in out
        assert "Failed to index: 1 files" in out
        assert [i.file_name for i in store.items] == ["good.txt"]

    def test_index_missing_directory(self, fake_engine: SearchEngine, tmp_path: Path) -> None:
        assert cli.main(["index", "-d", str(tmp_path / "missing")]) == 1

    def test_clear_with_yes(self, fake_engine: SearchEngine, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["clear", "-y"]) == 0
        assert "Index cleared successfully" in capsys.readouterr().out

    def test_clear_cancelled(self, fake_engine: SearchEngine, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        monkeypatch.setattr("builtins.input", lambda _prompt: "n")
        assert cli.main(["clear"]) == 0
        assert "cancelled" in capsys.readouterr().out

    def test_backup_failure_exit_code(self, fake_engine: SearchEngine, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["backup", "-o", str(tmp_path / "bk")]) == 1
        assert "Backup failed" in capsys.readouterr().out

    def test_interactive_refuses_empty_index(self, fake_engine: SearchEngine) -> None:
        assert cli.main(["interactive"]) == 1

    def test_interactive_session(
        self,
        fake_engine: SearchEngine,
        embeddings: KeywordEmbeddings,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        asyncio.run(_seed(fake_engine))
        answers = iter(["user login", "2", "", "exit"])
        monkeypatch.setattr("builtins.input", lambda _prompt: next(answers))

        assert cli.main(["interactive"]) == 0

        out = capsys.readouterr().out
        assert "Index contains 2 chunks from 2 documents" in out
        assert "Text matches: user, login" in out
        assert "Goodbye!" in out
        assert embeddings.calls[-1] == "user login"


def test_missing_api_key_is_reported(monkeypatch: pytest.MonkeyPatch, test_settings, store: InMemoryVectorStore, recording_sleep: RecordingSleep, capsys) -> None:
    engine = SearchEngine(test_settings, store_factory=lambda: store, sleep=recording_sleep)
    monkeypatch.setattr(cli, "make_engine", lambda index_path: engine)
    store.exists = True
    store.items = []

    assert cli.main(["analyze", "user login"]) == 1
    assert "OPENAI_API_KEY" in capsys.readouterr().out
