from __future__ import annotations

import sqlite3

import pytest

from iterate_sql.engine import GEOJSON_QUERY, DatabaseEngines, default_engines
from iterate_sql.errors import DatabaseConnectionError


def test_default_engines_open_sqlite(maps_db) -> None:
    engines = default_engines()
    assert engines.names() == ["sqlite", "sqlite3"]
    conn = engines.open("sqlite3", str(maps_db))
    try:
        rows = conn.execute(GEOJSON_QUERY).fetchall()
    finally:
        conn.close()
    assert len(rows) == 37


def test_sqlite_connections_are_read_only(maps_db) -> None:
    conn = default_engines().open("sqlite", str(maps_db))
    try:
        with pytest.raises(sqlite3.OperationalError):
            conn.execute("DELETE FROM geojson")
    finally:
        conn.close()


def test_missing_database_is_a_connection_error(tmp_path) -> None:
    missing = tmp_path / "missing.db"
    with pytest.raises(DatabaseConnectionError):
        default_engines().open("sqlite3", str(missing))
    assert not missing.exists()


def test_unknown_engine() -> None:
    with pytest.raises(DatabaseConnectionError):
        DatabaseEngines().open("postgres", "dbname=whosonfirst")


def test_duplicate_registration() -> None:
    engines = default_engines()
    with pytest.raises(ValueError):
        engines.register("sqlite3", lambda dsn: sqlite3.connect(dsn))
