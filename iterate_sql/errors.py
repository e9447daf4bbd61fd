"""Exception hierarchy shared by the iterator, its workers and the CLI."""

from __future__ import annotations


class IterateError(Exception):
    """Base class for every error raised or reported by iterate-sql."""

    def __init__(self, message: str, *, uri: str | None = None, row_id: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.uri = uri
        self.row_id = row_id

    def to_dict(self) -> dict[str, object]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "uri": self.uri,
            "id": self.row_id,
        }


class ConfigurationError(IterateError, ValueError):
    """Invalid iterator URI, ``processes`` value or filter rules."""


class DatabaseConnectionError(IterateError):
    """The database engine could not open a connection for a source."""


class QueryError(IterateError):
    """The ``geojson`` query failed or its cursor broke while scanning."""


class RowScanError(IterateError):
    """A single row could not be read into an ``(id, body)`` pair."""


class StreamConstructionError(IterateError):
    """A rewindable stream could not be built over a row body."""


class FilterEvaluationError(IterateError):
    """Include/exclude rules could not be evaluated against a row body."""


__all__ = [
    "ConfigurationError",
    "DatabaseConnectionError",
    "FilterEvaluationError",
    "IterateError",
    "QueryError",
    "RowScanError",
    "StreamConstructionError",
]
