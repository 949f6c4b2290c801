"""Tests for marginalia init."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from marginalia.cli.main import app
from marginalia.db.connection import Database
from marginalia.db.schema import schema_version

runner = CliRunner()


@pytest.fixture(autouse=True)
def _workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("marginalia.config._GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml")


def test_init_creates_database(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0, result.output
    assert "Created" in result.output
    conn = Database(tmp_path / ".marginalia.db").connect()
    try:
        assert schema_version(conn) >= 1
    finally:
        conn.close()


def test_init_writes_project_config(tmp_path: Path) -> None:
    runner.invoke(app, ["init"])
    data = yaml.safe_load((tmp_path / "marginalia.yaml").read_text())
    assert data["storage"]["db_path"] == ".marginalia.db"
    assert data["vector"]["enabled"] is True


def test_init_custom_db_path(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init", "--db", "data/lib.db"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "data" / "lib.db").exists()


def test_init_is_idempotent(tmp_path: Path) -> None:
    runner.invoke(app, ["init"])
    (tmp_path / "marginalia.yaml").write_text("search:\n  default_limit: 5\n")
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0, result.output
    assert "Upgraded" in result.output
    assert (tmp_path / "marginalia.yaml").read_text() == "search:\n  default_limit: 5\n"


def test_init_global_config(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init", "--global"])
    assert result.exit_code == 0, result.output
    global_cfg = tmp_path / "home" / "config.yaml"
    assert global_cfg.exists()
    assert oct(global_cfg.stat().st_mode & 0o777) == "0o600"


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.output.startswith("marginalia ")
