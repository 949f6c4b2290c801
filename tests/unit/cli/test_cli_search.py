"""Tests for search, reindex, and export commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from marginalia.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def library_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("marginalia.config._GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml")
    monkeypatch.setenv("MARGINALIA_VECTOR_INDEX", "off")
    assert runner.invoke(app, ["init"]).exit_code == 0
    return tmp_path


def _invoke_json(args: list[str]):
    result = runner.invoke(app, args + ["--json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


@pytest.fixture
def seeded() -> dict:
    book = _invoke_json(["books", "add", "--title", "Meditations", "--author", "Marcus Aurelius"])
    for text in ["The quick brown fox", "slow fox", "zzz"]:
        _invoke_json(["snippets", "add", "--book", book["id"], "--text", text, "--page", "7"])
    return book


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------


def test_search_json(seeded: dict) -> None:
    results = _invoke_json(["search", "quick fox"])
    assert [(h["text"], h["score"]) for h in results["keyword"]] == [
        ("The quick brown fox", 2),
        ("slow fox", 1),
    ]
    assert results["keyword"][0]["bookId"] == seeded["id"]
    assert results["semantic"] == []


def test_search_limit(seeded: dict) -> None:
    results = _invoke_json(["search", "fox", "--limit", "1"])
    assert len(results["keyword"]) == 1


def test_search_tables(seeded: dict) -> None:
    result = runner.invoke(app, ["search", "fox"])
    assert result.exit_code == 0, result.output
    assert "Keyword matches" in result.output
    assert "Semantic matches" in result.output


def test_search_no_matches(seeded: dict) -> None:
    result = runner.invoke(app, ["search", "nonexistentword"])
    assert result.exit_code == 0
    assert "No snippets match" in result.output


def test_search_blank_query() -> None:
    result = runner.invoke(app, ["search", "   "])
    assert result.exit_code == 1
    assert "Query is required" in result.output


def test_search_scoped_to_owner(seeded: dict) -> None:
    results = _invoke_json(["search", "fox", "--owner", "someone-else"])
    assert results == {"keyword": [], "semantic": []}


# ---------------------------------------------------------------------------
# reindex
# ---------------------------------------------------------------------------


def test_reindex_reports_count(seeded: dict) -> None:
    result = runner.invoke(app, ["reindex"])
    assert result.exit_code == 0, result.output
    assert "Reindexed 3/3 snippets" in result.output


def test_reindex_warns_without_key(seeded: dict, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MARGINALIA_VECTOR_INDEX", "on")
    result = runner.invoke(app, ["reindex"])
    assert result.exit_code == 0, result.output
    assert "marginalia reindex" in result.output


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


def test_export_markdown_to_stdout(seeded: dict) -> None:
    result = runner.invoke(app, ["export"])
    assert result.exit_code == 0, result.output
    assert result.stdout.startswith("> zzz\n> — *Meditations — Marcus Aurelius (p. 7)*\n")


def test_export_notion_to_file(seeded: dict, tmp_path: Path) -> None:
    result = runner.invoke(app, ["export", "--format", "notion", "--output", "out/notes.txt"])
    assert result.exit_code == 0, result.output
    content = (tmp_path / "out" / "notes.txt").read_text(encoding="utf-8")
    assert content.splitlines()[0] == '"zzz" — Meditations — Marcus Aurelius (p. 7)'


def test_export_empty() -> None:
    result = runner.invoke(app, ["export", "--format", "obsidian"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "(No snippets to export)"


def test_export_unknown_format() -> None:
    result = runner.invoke(app, ["export", "--format", "pdf"])
    assert result.exit_code == 1
    assert "Unknown export format" in result.output
