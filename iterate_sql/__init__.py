"""Iterate GeoJSON documents stored in SQL ``geojson`` tables."""

from .config import IteratorOptions, parse_iterator_uri
from .errors import (
    ConfigurationError,
    DatabaseConnectionError,
    FilterEvaluationError,
    IterateError,
    QueryError,
    RowScanError,
    StreamConstructionError,
)
from .filters import QueryFilters, QueryMode
from .iterator import SQLIterator, new_sql_iterator
from .record import STDIN, Record
from .registry import IteratorRegistry, default_registry, new_iterator

__version__ = "0.1.0"

__all__ = [
    "STDIN",
    "ConfigurationError",
    "DatabaseConnectionError",
    "FilterEvaluationError",
    "IterateError",
    "IteratorOptions",
    "IteratorRegistry",
    "QueryError",
    "QueryFilters",
    "QueryMode",
    "Record",
    "RowScanError",
    "SQLIterator",
    "StreamConstructionError",
    "default_registry",
    "new_iterator",
    "new_sql_iterator",
    "parse_iterator_uri",
]
