"""Shared fixtures building throwaway ``geojson`` SQLite databases."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

FIXTURE_ROWS = 37
MATCHING_URI = "2019"


def make_feature(wof_id: int, uri: str) -> dict[str, Any]:
    return {
        "type": "Feature",
        "id": wof_id,
        "properties": {
            "wof:id": wof_id,
            "wof:name": f"map-{wof_id}",
            "sfomuseum:uri": uri,
            "sfomuseum:placetype": "map",
        },
        "geometry": {"type": "Point", "coordinates": [-122.38 + wof_id / 1000, 37.62]},
    }


def write_geojson_db(path: Path, rows: Iterable[tuple[Any, Any]]) -> Path:
    conn = sqlite3.connect(path)
    try:
        conn.execute("CREATE TABLE geojson (id INTEGER, body TEXT)")
        conn.executemany("INSERT INTO geojson (id, body) VALUES (?, ?)", list(rows))
        conn.commit()
    finally:
        conn.close()
    return path


def sample_rows(count: int = FIXTURE_ROWS) -> list[tuple[int, str]]:
    rows = []
    for index in range(count):
        wof_id = 1360000000 + index
        # Exactly one row carries the 2019 URI; the rest cannot match it.
        uri = MATCHING_URI if index == 7 else str(1930 + index)
        rows.append((wof_id, json.dumps(make_feature(wof_id, uri))))
    return rows


@pytest.fixture
def geojson_db_factory(tmp_path: Path) -> Callable[..., Path]:
    counter = {"n": 0}

    def _builder(rows: Iterable[tuple[Any, Any]] | None = None, name: str | None = None) -> Path:
        counter["n"] += 1
        path = tmp_path / (name or f"fixture-{counter['n']}.db")
        return write_geojson_db(path, sample_rows() if rows is None else rows)

    return _builder


@pytest.fixture
def maps_db(geojson_db_factory: Callable[..., Path]) -> Path:
    """A 37 row database where one row has ``sfomuseum:uri`` = 2019."""

    return geojson_db_factory(name="sfomuseum-maps.db")


@pytest.fixture
def rows_factory() -> Callable[[int], list[tuple[int, str]]]:
    return sample_rows
