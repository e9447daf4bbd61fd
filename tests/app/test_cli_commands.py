from __future__ import annotations

import json

from typer.testing import CliRunner

from iterate_sql.app import AppState, app
from iterate_sql.registry import default_registry


def _patch_state(monkeypatch) -> None:
    monkeypatch.setattr(
        "iterate_sql.app.build_state", lambda verbose: AppState(registry=default_registry())
    )


def test_cli_count(monkeypatch, maps_db) -> None:
    _patch_state(monkeypatch)
    runner = CliRunner()
    result = runner.invoke(app, ["count", "sql://sqlite3?processes=4", str(maps_db)])
    assert result.exit_code == 0, result.output
    assert "Iteration summary" in result.output
    assert "37" in result.output


def test_cli_count_reports_errors(monkeypatch, maps_db, tmp_path) -> None:
    _patch_state(monkeypatch)
    runner = CliRunner()
    result = runner.invoke(app, ["count", "sql://sqlite3", str(tmp_path / "missing.db")])
    assert result.exit_code == 1


def test_cli_count_rejects_bad_uri(monkeypatch, maps_db) -> None:
    _patch_state(monkeypatch)
    runner = CliRunner()
    result = runner.invoke(app, ["count", "sql://sqlite3?processes=many", str(maps_db)])
    assert result.exit_code == 2


def test_cli_emit_plain(monkeypatch, maps_db) -> None:
    _patch_state(monkeypatch)
    runner = CliRunner()
    result = runner.invoke(
        app, ["emit", "sql://sqlite3?include=properties.sfomuseum:uri=2019", str(maps_db)]
    )
    assert result.exit_code == 0, result.output
    lines = [line for line in result.stdout.splitlines() if line.strip()]
    assert len(lines) == 1
    assert json.loads(lines[0])["properties"]["sfomuseum:uri"] == "2019"


def test_cli_emit_json(monkeypatch, maps_db) -> None:
    _patch_state(monkeypatch)
    runner = CliRunner()
    result = runner.invoke(app, ["emit", "--json", "sql://sqlite3", str(maps_db)])
    assert result.exit_code == 0, result.output
    documents = json.loads(result.stdout)
    assert len(documents) == 37


def test_cli_emit_geojson(monkeypatch, maps_db) -> None:
    _patch_state(monkeypatch)
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["emit", "--geojson", "sql://sqlite3?exclude=properties.sfomuseum:uri=2019", str(maps_db)],
    )
    assert result.exit_code == 0, result.output
    collection = json.loads(result.stdout)
    assert collection["type"] == "FeatureCollection"
    assert len(collection["features"]) == 36
