from __future__ import annotations

import os

import pytest

from iterate_sql.config import parse_iterator_uri
from iterate_sql.errors import ConfigurationError
from iterate_sql.filters import QueryFilters, QueryMode


def test_defaults() -> None:
    options = parse_iterator_uri("sql://sqlite3")
    assert options.engine == "sqlite3"
    assert options.processes == (os.cpu_count() or 1)
    assert options.include == ()
    assert options.exclude == ()
    assert options.build_filters() is None


def test_all_parameters() -> None:
    options = parse_iterator_uri(
        "sql://sqlite3?processes=10"
        "&include=properties.sfomuseum:uri=2019&include=properties.wof:name=map"
        "&exclude=properties.wof:placetype=venue"
        "&include_mode=any&exclude_mode=ALL"
    )
    assert options.processes == 10
    assert options.include == ("properties.sfomuseum:uri=2019", "properties.wof:name=map")
    assert options.exclude == ("properties.wof:placetype=venue",)
    assert options.include_mode is QueryMode.ANY
    assert options.exclude_mode is QueryMode.ALL
    filters = options.build_filters()
    assert isinstance(filters, QueryFilters)
    assert filters.include is not None and len(filters.include.queries) == 2


def test_unknown_parameters_are_ignored() -> None:
    assert parse_iterator_uri("sql://sqlite3?colour=blue").engine == "sqlite3"


@pytest.mark.parametrize(
    "uri",
    [
        "sqlite3",
        "sql://",
        "sql://sqlite3?processes=lots",
        "sql://sqlite3?processes=0",
        "sql://sqlite3?processes=-2",
        "sql://sqlite3?include=no-separator",
        "sql://sqlite3?exclude=properties.x=(",
        "sql://sqlite3?include=a=b&include_mode=sometimes",
    ],
)
def test_invalid_uris(uri: str) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_iterator_uri(uri)
    assert excinfo.value.uri == uri
